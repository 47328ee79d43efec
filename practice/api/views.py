import uuid

import structlog
from rest_framework import status, views
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..domain.errors import NoEligibleCards
from ..services.sessions import apply_event, create_or_resume_session, get_session_view
from .serializers import EventInSerializer, SessionCreateSerializer, SessionViewQuerySerializer

base_logger = structlog.get_logger()


class PracticeAPIView(views.APIView):
    permission_classes = [IsAuthenticated]

    def request_logger(self, request):
        # Create a unique request_id
        return base_logger.bind(request_id=str(uuid.uuid4()), user_id=str(request.user.pk))


class SessionListView(PracticeAPIView):
    def post(self, request):
        logger = self.request_logger(request)

        s = SessionCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        deck_id = s.validated_data["deck_id"]

        try:
            handle = create_or_resume_session(request.user, deck_id)
        except NoEligibleCards:
            logger.info("session_api_response", deck_id=str(deck_id), empty=True)
            return Response({"empty": True}, status=status.HTTP_200_OK)

        status_code = status.HTTP_200_OK if handle.resumed else status.HTTP_201_CREATED
        logger.info(
            "session_api_response",
            deck_id=str(deck_id),
            session_id=str(handle.session_id),
            resumed=handle.resumed,
            status=status_code,
        )
        return Response(
            {"session_id": str(handle.session_id), "resumed": handle.resumed},
            status=status_code,
        )


class SessionDetailView(PracticeAPIView):
    def get(self, request, session_id):
        logger = self.request_logger(request)

        qs = SessionViewQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)
        reset = qs.validated_data["reset_reveal_state"]

        view = get_session_view(request.user, session_id, reset_reveal_state=reset)
        logger.info(
            "session_view_api_response",
            session_id=str(session_id),
            state=view["state"],
            position=view["position"],
            reset_reveal_state=reset,
        )
        return Response(view)


class SessionEventView(PracticeAPIView):
    def post(self, request, session_id):
        logger = self.request_logger(request)

        s = EventInSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        view = apply_event(
            request.user,
            session_id,
            s.to_event(),
            expected_version=s.validated_data.get("expected_version"),
        )
        logger.info(
            "session_event_api_response",
            session_id=str(session_id),
            event_type=s.validated_data["type"],
            state=view["state"],
            position=view["position"],
            version=view["version"],
        )
        return Response(view)
