from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse


class PayloadTooLarge(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=413, detail="Payload too large")


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_bytes``.

    A declared Content-Length is checked up front. Bodies without one
    (chunked uploads) are counted as they are read; the read that crosses
    the limit raises ``PayloadTooLarge``, which the app renders as a 413.
    """

    def __init__(self, app, *, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                await JSONResponse({"detail": "Invalid Content-Length"}, status_code=400)(
                    scope, receive, send
                )
                return
            if size > self.max_bytes:
                await self._too_large(scope, receive, send)
                return

        received = 0
        started = False

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise PayloadTooLarge()
            return message

        async def tracking_send(message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except PayloadTooLarge:
            # Raised outside a route, e.g. by another middleware reading the body.
            if started:
                raise
            await self._too_large(scope, receive, send)

    async def _too_large(self, scope, receive, send):
        response = JSONResponse({"detail": "Payload too large"}, status_code=413)
        await response(scope, receive, send)
