"""
ASGI middleware that enforces the request body ceiling.

The declared Content-Length is checked first; bodies without one (chunked
uploads) are counted as they are read. The body is buffered and replayed to
the app, so the route never sees a partial upload.
"""
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import PayloadTooLargeError
from .structured_logging import get_logger

logger = get_logger(__name__)

PAYLOAD_TOO_LARGE = "リクエストのサイズが大きすぎます。"


class BodySizeLimitMiddleware:

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        content_length = headers.get(b"content-length", b"")
        if content_length.isdigit() and int(content_length) > self.max_body_bytes:
            await self._reject(scope, receive, send, int(content_length))
            return

        chunks = []
        received = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, received)
                return
            chunks.append(chunk)
            if not message.get("more_body", False):
                break

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        logger.warning(
            "Request body too large",
            path=scope.get("path"),
            body_bytes=size,
            limit=self.max_body_bytes,
        )
        exc = PayloadTooLargeError(PAYLOAD_TOO_LARGE)
        response = JSONResponse(exc.to_payload(), status_code=exc.status_code)
        await response(scope, receive, send)
