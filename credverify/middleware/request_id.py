"""
Request ID middleware for FastAPI.

Injects a request_id for each incoming request. The request_id is:
- Taken from an inbound X-Request-ID header (onboarding/admin callers) or generated
- Added to the request state and response headers (X-Request-ID)
- Set in context variables so ALL logs in this request automatically include it
"""

import uuid
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from credverify.core.logging_config import set_request_id, clear_request_id
from credverify.core.sentry import clear_sentry_context, set_sentry_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a request_id to each request and sets it in context.
    """

    async def dispatch(self, request: Request, call_next):
        """Process the request and set request_id in context."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        request.state.request_id = request_id
        set_request_id(request_id)
        set_sentry_context(request_id=request_id)

        try:
            logger.info(f"{request.method} {request.url.path} - Request started")

            response: Response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            logger.info(
                f"{request.method} {request.url.path} - Request completed with status {response.status_code}"
            )

            return response

        except Exception as e:
            logger.error(f"{request.method} {request.url.path} - Request failed: {e}")
            raise
        finally:
            clear_request_id()
            clear_sentry_context()
