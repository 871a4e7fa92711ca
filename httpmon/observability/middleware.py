import logging

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from .instrumentor import RequestContext, RequestInstrumentor


def _content_length(request: Request) -> int | None:
    raw = request.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        length = int(raw)
    except ValueError:
        return None
    return length if length >= 0 else None


def metrics_endpoint(collector_registry: CollectorRegistry):
    """Starlette endpoint serving the registry in the Prometheus text format."""

    async def metrics(request: Request) -> Response:
        return Response(
            generate_latest(collector_registry), media_type=CONTENT_TYPE_LATEST
        )

    return metrics


class MetricsMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        instrumentor: RequestInstrumentor,
        trust_forwarded_for: bool = False,
        use_route_template: bool = False,
        access_log: bool = True,
    ):
        super().__init__(app)
        instrumentor.init_metrics()
        self.instrumentor = instrumentor
        self.trust_forwarded_for = trust_forwarded_for
        self.use_route_template = use_route_template
        self.access_log = access_log

    def _client_address(self, request: Request) -> str | None:
        if self.trust_forwarded_for:
            forwarded = request.headers.get("X-Forwarded-For")
            if forwarded:
                return forwarded.split(",")[0].strip()
        client = request.client
        if client is None:
            return None
        return f"{client.host}:{client.port}"

    def _uri(self, request: Request) -> str:
        if self.use_route_template:
            # 路由模板：/users/{id} 代替 /users/42，控制标签基数
            route = request.scope.get("route", None)
            if route is not None and hasattr(route, "path"):
                return route.path
        return request.url.path

    def _record(self, request: Request, status_code: int, elapsed: float) -> RequestContext:
        context = RequestContext(
            uri=self._uri(request),
            method=request.method,
            status_code=status_code,
            elapsed=elapsed,
            client_address=self._client_address(request),
            content_length=_content_length(request),
        )
        self.instrumentor.record(context)
        return context

    async def dispatch(self, request: Request, call_next):
        instrumentor = self.instrumentor
        start = instrumentor.clock()
        path = request.url.path

        if instrumentor.is_scrape_path(path):
            instrumentor.refresh_host_metrics()
            return await call_next(request)
        if instrumentor.is_excluded(path):
            return await call_next(request)

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = instrumentor.clock() - start
            context = self._record(request, 500, elapsed)
            logger = logging.getLogger("http")
            logger.exception(
                "request_error method=%s uri=%s status=%s duration_ms=%.3f client=%s",
                context.method,
                context.uri,
                500,
                round(elapsed * 1000, 3),
                context.client_address or "-",
                extra={
                    "extra": {
                        "method": context.method,
                        "uri": context.uri,
                        "status": 500,
                        "duration_ms": round(elapsed * 1000, 3),
                        "client": context.client_address,
                        "exception": repr(exc),
                    }
                },
            )
            raise

        elapsed = instrumentor.clock() - start
        status_code = response.status_code or 200
        context = self._record(request, status_code, elapsed)

        if self.access_log:
            logger = logging.getLogger("http")
            level = logging.INFO
            if status_code >= 500:
                level = logging.ERROR
            elif status_code >= 400:
                level = logging.WARNING
            duration_ms = round(elapsed * 1000, 3)
            logger.log(
                level,
                "request method=%s uri=%s status=%s duration_ms=%.3f client=%s "
                "content_length=%s user_agent=%s",
                context.method,
                context.uri,
                status_code,
                duration_ms,
                context.client_address or "-",
                context.content_length if context.content_length is not None else "-",
                request.headers.get("User-Agent") or "-",
                extra={
                    "extra": {
                        "method": context.method,
                        "uri": context.uri,
                        "query": request.url.query,
                        "status": status_code,
                        "duration_ms": duration_ms,
                        "client": context.client_address,
                        "content_length": context.content_length,
                        "user_agent": request.headers.get("User-Agent"),
                    }
                },
            )
        return response
