import structlog
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.serializers import PracticeSettingsSerializer

logger = structlog.get_logger()


def _unauthenticated():
    return Response(
        {"error": "User not authenticated"}, status=status.HTTP_401_UNAUTHORIZED
    )


class UserViewSet(viewsets.ViewSet):
    """
    ViewSet for user-related operations.
    """

    @action(detail=False, methods=["get"])
    def me(self, request):
        """
        Returns the username of the logged-in user.
        """
        if request.user.is_authenticated:
            return Response(
                {"username": request.user.username}, status=status.HTTP_200_OK
            )
        else:
            return _unauthenticated()

    @action(detail=False, methods=["get", "patch"], url_path="me/practice-settings")
    def practice_settings(self, request):
        """
        Reads or updates the daily limits and scheduler knobs. Changes apply
        to sessions created afterwards; running sessions keep their snapshot.
        """
        if not request.user.is_authenticated:
            return _unauthenticated()

        if request.method == "GET":
            return Response(PracticeSettingsSerializer(request.user).data)

        s = PracticeSettingsSerializer(request.user, data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        s.save()
        logger.info("practice_settings_updated",
            user_id=str(request.user.pk),
            fields=sorted(s.validated_data),
        )
        return Response(s.data, status=status.HTTP_200_OK)
