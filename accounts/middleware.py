import structlog
from django.http import HttpResponse
from rest_framework.authentication import BaseAuthentication

from accounts.models import User

logger = structlog.get_logger()

TRUSTED_USER_HEADER = "X-User-NAME"


# Identity is resolved upstream; the header carries an already-trusted username
class TrustedUserMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.trusted_user = None
        if request.path.startswith("/api"):
            username = request.headers.get(TRUSTED_USER_HEADER)
            if username:
                try:
                    request.trusted_user = User.objects.get(username=username)
                except User.DoesNotExist:
                    logger.info("trusted_user_unknown", username=username)
                    return HttpResponse(
                        "User not found or invalid credentials.", status=401
                    )
        response = self.get_response(request)
        return response


class TrustedUserAuthentication(BaseAuthentication):
    """Hands the user resolved by TrustedUserMiddleware to DRF."""

    def authenticate(self, request):
        user = getattr(request._request, "trusted_user", None)
        if user is None:
            return None
        return (user, None)

    def authenticate_header(self, request):
        return TRUSTED_USER_HEADER
