"""Request body size limit.

Learn: The image size check in the upload route only runs after the
multipart parser has spooled the whole body, so this caps the body itself:
- a declared Content-Length over the limit is answered with 413 right away
- chunked bodies are counted as they stream in, and the request is aborted
  with 413 as soon as the running total passes the limit

Plain ASGI middleware rather than BaseHTTPMiddleware, because it has to
wrap `receive`.
"""

import structlog
from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse

logger = structlog.get_logger()

TOO_LARGE = "Request body too large"


class BodySizeLimitMiddleware:
    def __init__(self, app, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
            logger.info(
                "tasktrack.body_limit.rejected", path=scope["path"], declared=int(declared)
            )
            response = JSONResponse(
                status_code=413, content={"success": False, "message": TOO_LARGE}
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    logger.info("tasktrack.body_limit.exceeded", path=scope["path"])
                    # HTTPException passes through FastAPI's body parsing untouched
                    raise HTTPException(status_code=413, detail=TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)
