from starlette.middleware.base import BaseHTTPMiddleware

from .observability import correlation_context


CORRELATION_HEADER = "X-Correlation-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        client_host = request.client.host if request.client else None
        request.state.ip = request.headers.get("x-forwarded-for", client_host)
        incoming = request.headers.get(CORRELATION_HEADER)
        with correlation_context(incoming) as correlation_id:
            request.state.correlation_id = correlation_id
            response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
