import logging

import uvicorn
from fastapi import FastAPI

from httpmon import __version__
from httpmon.common.config import Settings, get_settings
from httpmon.common.logging import setup_logging
from httpmon.observability.instrumentor import RequestInstrumentor
from httpmon.observability.middleware import MetricsMiddleware, metrics_endpoint


def create_app(
    settings: Settings | None = None,
    instrumentor: RequestInstrumentor | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging()
    app = FastAPI(
        title="httpmon",
        version=__version__,
        description="HTTP request instrumentation demo service",
    )

    # Metrics
    if settings.ENABLE_METRICS:
        if instrumentor is None:
            instrumentor = RequestInstrumentor.from_settings(settings)
        startup_logger = logging.getLogger("httpmon.startup")
        startup_logger.info(
            "metrics enabled [event=metrics_enabled] (path=%s, metadata=%s)",
            settings.METRICS_PATH,
            dict(settings.METRIC_METADATA) or "-",
        )
        # registration errors abort app creation
        instrumentor.init_metrics()
        app.add_middleware(
            MetricsMiddleware,
            instrumentor=instrumentor,
            trust_forwarded_for=settings.TRUST_FORWARDED_FOR,
            use_route_template=settings.USE_ROUTE_TEMPLATE,
            access_log=settings.ACCESS_LOG,
        )
        app.add_route(
            settings.METRICS_PATH,
            metrics_endpoint(instrumentor.registry.collector_registry),
            include_in_schema=False,
        )
        app.state.instrumentor = instrumentor

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("httpmon.main:app", host="0.0.0.0", port=8000, reload=True)
