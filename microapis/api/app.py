"""FastAPI application for the Micro APIs Collection.

Builds the service container once per process and mounts the OCR and tool
routers alongside the info and health endpoints.
"""

import shutil
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from microapis.utils.config import AppConfig, load_config
from microapis.utils.logger import get_logger

from .dependencies import Services, build_services
from .errors import register_error_handlers
from .routes import ocr, tools
from .schemas import HealthResponse, ServiceInfo

logger = get_logger(__name__)

VERSION = "1.0.0"


def create_app(
    config: AppConfig | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Create the application with its shared services.

    Args:
        config: Application configuration; loaded from disk when ``None``.
        services: Prebuilt service container, mainly for tests.

    Returns:
        Configured FastAPI application.
    """
    config = config or (services.config if services else load_config())
    services = services or build_services(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        logger.info("Shutting down, closing HTTP clients")
        app.state.services.close()

    app = FastAPI(
        title="Micro APIs Collection",
        description="OCR, QR codes, base64 conversion, pincode lookup, "
        "web scraping, and colour palettes",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(ocr.router)
    app.include_router(tools.router)

    @app.get("/", response_model=ServiceInfo)
    async def service_info() -> ServiceInfo:
        """Describe the available endpoints."""
        return ServiceInfo(
            message="Micro APIs Collection",
            version=VERSION,
            endpoints=sorted(
                {route.path for route in [*ocr.router.routes, *tools.router.routes]}
            ),
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Return system health status."""
        return HealthResponse(
            status="healthy",
            version=VERSION,
            tesseract_available=shutil.which("tesseract") is not None,
            ocr_cache_entries=len(services.ocr_cache),
            pincode_cache_entries=len(services.pincode_cache),
        )

    return app
