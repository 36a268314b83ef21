"""
Health, readiness and metrics endpoints served alongside the controller
"""

# Standard
from typing import Callable, Optional

# Third Party
from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse
import uvicorn

# First Party
import alog

# Local
from . import config
from .metrics import PrometheusMetrics
from .threads import ThreadBase

log = alog.use_channel("HLTH")


def make_health_app(
    metrics: Optional[PrometheusMetrics] = None,
    ready_check: Optional[Callable[[], bool]] = None,
) -> FastAPI:
    """Create the health application

    Args:
        metrics:  Optional[PrometheusMetrics]
            Registry exposed on /metrics. Without it /metrics is empty.
        ready_check:  Optional[Callable[[], bool]]
            Reports whether the controller is ready to reconcile. Always ready
            if not given.

    Returns:
        app:  FastAPI
            The configured application
    """
    app = FastAPI(title="MyApp controller", version=config.operator_version)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy", "version": config.operator_version}

    @app.get("/ready")
    async def ready():
        if ready_check is not None and not ready_check():
            return JSONResponse(status_code=503, content={"status": "not ready"})
        return {"status": "ready"}

    @app.get("/metrics")
    async def prometheus_metrics() -> Response:
        if metrics is None:
            return Response(content=b"", media_type="text/plain")
        body, content_type = metrics.render()
        return Response(content=body, media_type=content_type)

    return app


class HealthServerThread(ThreadBase):
    """Serves an application with uvicorn on a background thread"""

    def __init__(self, app: FastAPI, port: Optional[int] = None, host: str = "0.0.0.0"):
        super().__init__(name="health_server", daemon=True)
        self.server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=host,
                port=port or config.metrics.port,
                log_level="warning",
            )
        )

    def run(self):
        log.info("Serving health endpoints on port %s", self.server.config.port)
        self.server.run()

    def stop_thread(self):
        """Ask uvicorn to exit its serve loop"""
        super().stop_thread()
        self.server.should_exit = True
