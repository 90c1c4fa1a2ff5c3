import uuid
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from retrospect.core.logging import request_id_ctx_var

CORRELATION_HEADER = "x-correlation-id"


class CorrelationIdMiddleware:
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        # Only act on HTTP requests
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        raw = headers.get(CORRELATION_HEADER.encode())
        correlation_id = raw.decode("latin-1") if raw else str(uuid.uuid4())
        token = request_id_ctx_var.set(correlation_id)

        async def send_with_id(message: Message):
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[CORRELATION_HEADER] = correlation_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            request_id_ctx_var.reset(token)
