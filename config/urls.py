from django.urls import include, path
from rest_framework.routers import SimpleRouter

from accounts.views import UserViewSet

router = SimpleRouter(trailing_slash=False)
router.register("users", UserViewSet, basename="user")

urlpatterns = [
    path("api/", include(router.urls)),
    path("api/", include("practice.api.urls")),
]
