"""
Global error handling middleware.

Routes translate the errors they expect into HTTPException themselves; this
layer catches whatever escapes them and maps it onto a JSON error body.
"""
import logging
import time
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from landlens.infrastructure.external_api_client import ExternalAPIError


logger = logging.getLogger(__name__)


def _error_body(error: str, detail: str, **extra) -> dict:
    return {"error": error, "detail": detail, **extra}


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Map escaped exceptions to consistent error responses.

    - ExternalAPIError: 502, with the upstream status in the body
      (504 when the upstream itself timed out)
    - KeyError: 404 for an unknown session or shape
    - ValueError: 400
    - anything else: 500 with a generic body
    """

    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        context = {"path": request.url.path, "method": request.method}

        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.debug(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"in {elapsed_ms:.0f} ms"
            )
            return response

        except ExternalAPIError as e:
            logger.error(
                f"Upstream service error: {e.message}",
                extra={**context, "upstream_status": e.status_code},
            )
            status_code = (
                status.HTTP_504_GATEWAY_TIMEOUT
                if e.status_code == status.HTTP_504_GATEWAY_TIMEOUT
                else status.HTTP_502_BAD_GATEWAY
            )
            return JSONResponse(
                status_code=status_code,
                content=_error_body(
                    "Upstream service error", e.message, upstream_status=e.status_code
                ),
            )

        except KeyError as e:
            logger.warning(f"Unknown resource: {e}", extra=context)
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content=_error_body("Not found", f"Unknown identifier {e}"),
            )

        except ValueError as e:
            logger.warning(f"Invalid request: {e}", extra=context)
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=_error_body("Invalid request", str(e)),
            )

        except Exception as e:
            logger.exception(f"Unhandled exception: {e}", extra=context)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=_error_body("Internal server error", "An unexpected error occurred"),
            )
