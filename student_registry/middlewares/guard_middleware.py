import time
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from student_registry.guards.pipeline import GuardContext, GuardPipeline, Reject
from student_registry.utils.errors import guard_rejection_response

FORWARDED_FOR_HEADER = "X-Forwarded-For"


class GuardMiddleware(BaseHTTPMiddleware):
    """Run the guard pipeline before any route sees the request"""

    def __init__(self, app, pipeline: GuardPipeline, trust_forwarded_for: bool = False):
        super().__init__(app)
        self.pipeline = pipeline
        self.trust_forwarded_for = trust_forwarded_for

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = GuardContext(
            method=request.method,
            path=request.url.path,
            origin=request.headers.get("origin"),
            client_key=self._client_key(request),
            now=time.monotonic(),
        )
        outcome = self.pipeline.evaluate(context)

        if isinstance(outcome, Reject):
            return guard_rejection_response(request, outcome.error, outcome.headers)

        response = await call_next(request)
        for header_name, header_value in outcome.headers.items():
            response.headers[header_name] = header_value
        return response

    def _client_key(self, request: Request) -> str:
        if self.trust_forwarded_for:
            forwarded_for = request.headers.get(FORWARDED_FOR_HEADER, "")
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop
        return request.client.host if request.client else "unknown"
