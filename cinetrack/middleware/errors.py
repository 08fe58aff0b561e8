"""
Last-resort error rendering inside the CORS layer
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging

logger = logging.getLogger(__name__)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """
    Turn unhandled exceptions into 500 {"error"} responses.

    Must be registered before CORSMiddleware so 500s carry the CORS headers;
    app-level Exception handlers run outside every user middleware.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled exception on {request.method} {request.url.path}: {str(e)}", exc_info=True)
            return JSONResponse(status_code=500, content={"error": "Internal server error"})
