import structlog
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from ..domain.errors import PracticeError

logger = structlog.get_logger()


def practice_exception_handler(exc, context):
    """Render practice-engine errors as ``{error, detail, retryable}``; defer the rest to DRF."""
    if isinstance(exc, PracticeError):
        view = context.get("view")
        logger.info("practice_error",
            error=exc.code,
            detail=exc.message,
            view=type(view).__name__ if view else None,
        )
        return Response(
            {"error": exc.code, "detail": exc.message, "retryable": exc.retryable},
            status=exc.status_code,
        )
    return drf_exception_handler(exc, context)
