"""Translation of pipeline errors into HTTP responses."""
import logging

from fastapi import HTTPException

from ..core.exceptions import AnalysisError, ProviderBusyError

logger = logging.getLogger(__name__)

BUSY_DETAIL = "We're experiencing high demand right now. Please try again shortly."
FAILED_DETAIL = "We were unable to process this conversation. Please contact support if this keeps happening."
UNEXPECTED_DETAIL = "Something went wrong while analyzing the conversation."


def http_error_for(exc: Exception, operation: str) -> HTTPException:
    """
    Map an exception raised by the service layer to the HTTPException the
    client sees. Details stay generic; the real cause goes to the log.
    """
    if isinstance(exc, ProviderBusyError):
        logger.warning("%s: provider busy (%s)", operation, exc)
        return HTTPException(status_code=503, detail=BUSY_DETAIL)
    if isinstance(exc, AnalysisError):
        logger.error("%s failed: %s: %s", operation, type(exc).__name__, exc)
        return HTTPException(status_code=502, detail=FAILED_DETAIL)

    logger.error("%s failed unexpectedly", operation, exc_info=exc)
    return HTTPException(status_code=500, detail=UNEXPECTED_DETAIL)
