from django.urls import path
from .views import SessionDetailView, SessionEventView, SessionListView

urlpatterns = [
    path("practice/sessions", SessionListView.as_view(), name="practice-sessions"),
    path("practice/sessions/<uuid:session_id>", SessionDetailView.as_view(), name="practice-session"),
    path("practice/sessions/<uuid:session_id>/events", SessionEventView.as_view(), name="practice-session-events"),
]
