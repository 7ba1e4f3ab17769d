from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from fittrack.core.logger import get_logger

logger = get_logger("upload_limit_middleware")


class LimitUploadSizeMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared body is larger than ``max_upload_size`` before reading it."""

    def __init__(self, app, max_upload_size: int):
        super().__init__(app)
        self.max_upload_size = max_upload_size

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            size = int(content_length)
            if size > self.max_upload_size:
                logger.warning(f"Rejected {request.url.path}: Content-Length={size} exceeds {self.max_upload_size} bytes")
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"error": "File too large"},
                )
        return await call_next(request)
