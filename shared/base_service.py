"""
Base service class for catalog services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import asyncio
import os
import sys
import time

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import CatalogException, ErrorResponse
from shared.lifecycle import LifecycleManager, ManagedResource, UvicornListener

# Taken at import, which happens once at process start
PROCESS_STARTED_AT = time.monotonic()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config(service_name)

        # Configure logging
        configure_logging(
            service_name,
            self.config.effective_log_level,
            json_logs=not self.config.is_dev
        )
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)

        # Create FastAPI app
        self.app = self._create_app()

        # Set up middleware
        self._setup_middleware()

        # Set up routes
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.is_dev else None,
            redoc_url="/redoc" if self.config.is_dev else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        # CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=[self.config.cors_origin],
            allow_methods=["GET", "OPTIONS"],
            allow_headers=["*"],
        )

        # Request timing middleware
        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            start_time = time.time()

            try:
                response = await call_next(request)
            finally:
                duration = time.time() - start_time

            route = request.scope.get("route")
            endpoint = getattr(route, "path", request.url.path)

            self.metrics.record_http_request(
                method=request.method,
                endpoint=endpoint,
                status_code=response.status_code,
                duration=duration
            )

            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2)
            )

            response.headers["X-Request-ID"] = request_id
            for header, value in SECURITY_HEADERS.items():
                response.headers.setdefault(header, value)

            clear_context()
            return response

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint; always 200 while the process serves."""
            dependencies = self._dependency_status()
            self.metrics.record_health_check("ok")

            return {
                "status": "ok",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime": self.get_uptime(),
                **dependencies,
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(
                content=self.metrics.render(),
                media_type=CONTENT_TYPE_LATEST
            )

        # Error handlers
        @self.app.exception_handler(CatalogException)
        async def catalog_exception_handler(request: Request, exc: CatalogException):
            """Handle CatalogException."""
            self.logger.info(
                "Request failed",
                code=exc.code,
                message=exc.message,
                details=exc.details
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump()
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=exc)
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(message="Internal server error").model_dump()
            )

    def _dependency_status(self) -> Dict[str, Any]:
        """Dependency fields merged into the health payload. Override in subclasses."""
        return {}

    def _managed_resource(self) -> ManagedResource:
        """Dependency started and closed by the lifecycle manager. Override in subclasses."""
        raise NotImplementedError

    def get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.monotonic() - PROCESS_STARTED_AT

    def create_lifecycle(self, listener=None, terminate=None) -> LifecycleManager:
        """Wire the HTTP listener and managed dependency into a lifecycle manager."""
        if listener is None:
            listener = UvicornListener(
                self.app,
                host=self.config.host,
                port=self.config.port,
                log_level=self.config.effective_log_level
            )
        return LifecycleManager(
            listener,
            self._managed_resource(),
            shutdown_timeout=self.config.shutdown_timeout,
            metrics=self.metrics,
            terminate=terminate,
            name=self.service_name
        )

    def run(self):
        """Run the service until signalled, then exit with the lifecycle status."""
        lifecycle = self.create_lifecycle(terminate=os._exit)
        self.logger.info(
            "Starting service",
            env=self.config.app_env,
            port=self.config.port
        )
        sys.exit(asyncio.run(lifecycle.run()))
