"""FileSync Backend Application.

This is the main entry point for the FileSync backend service.
FileSync rooms share files by uploading them through this relay, which
forwards the bytes to ImageKit and hands back the resulting URL.

Modules:
    - files: upload / delete / lookup relay endpoints
    - imagekit: StorageProvider abstraction and the ImageKit REST client
    - config: YAML + environment configuration and the startup credential check

Run with ``python -m app.main`` (or the ``filesync-backend`` script).  The
process exits with status 1 before binding a port if any ImageKit credential
is missing.
"""
import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import AppSettings, get_config, load_config, missing_credentials, set_config
from app.files.router import router as files_router
from app.files.service import FileRelayService, get_file_service, set_file_service
from app.imagekit import ImageKitProvider

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# httpx/httpcore log every outbound request to ImageKit, including the
# Authorization header at DEBUG level.
for _noisy in (
    "urllib3",
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
    "uvicorn.access",        # requests are logged by log_requests below
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def build_file_service(config: AppSettings) -> FileRelayService:
    """Construct the ImageKit-backed relay service from settings."""
    creds = config.secrets.imagekit
    provider = ImageKitProvider(
        private_key=creds.private_key,
        upload_url=config.imagekit.upload_url,
        api_url=config.imagekit.api_url,
        timeout_seconds=config.imagekit.timeout_seconds,
    )
    return FileRelayService(
        provider,
        folder=config.uploads.folder,
        overwrite_existing=config.uploads.overwrite_existing,
    )


def _credential_status(value: Optional[str]) -> str:
    return "Configured" if value else "Missing"


def _log_missing_credentials(missing: List[str]) -> None:
    logger.critical("Missing required environment variables: %s", ", ".join(missing))
    logger.critical("Please check your environment or filesync.secrets.yaml and set all ImageKit credentials.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    config = get_config()

    configured_level = getattr(logging, config.server.log_level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.server.log_level.upper())

    creds = config.secrets.imagekit
    logger.info(
        "ImageKit configuration: publicKey=%s privateKey=%s urlEndpoint=%s",
        _credential_status(creds.public_key),
        _credential_status(creds.private_key),
        _credential_status(creds.url_endpoint),
    )

    # Also covers `uvicorn app.main:app`, which never goes through main().
    missing = missing_credentials(config)
    if missing:
        _log_missing_credentials(missing)
        raise RuntimeError(f"Missing ImageKit credentials: {', '.join(missing)}")

    built: Optional[FileRelayService] = None
    if get_file_service() is None:
        built = build_file_service(config)
        set_file_service(built)
        logger.info("File relay service ready: folder=%s", config.uploads.folder)

    yield  # Application runs here

    if built is not None:
        built.close()

    logger.info("Application shutdown complete")


def create_app(config: Optional[AppSettings] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings to use.  Defaults to ``get_config()``.
    """
    if config is not None:
        set_config(config)
    config = get_config()

    app = FastAPI(
        title="FileSync API",
        description="File relay between FileSync rooms and ImageKit",
        version="0.1.0",
        lifespan=lifespan,
        # `DELETE /api/delete` must 404 like any unknown route, not redirect
        # to the `/api/delete/` handler.
        redirect_slashes=False,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request and response for troubleshooting."""
        path = request.url.path
        method = request.method
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.exception("ERROR %s %s after %.0fms: %s", method, path, elapsed_ms, e)
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(level, "%s %s %d %.0fms", method, path, response.status_code, elapsed_ms)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods on known paths look the same
        # to clients.
        if exc.status_code in (404, 405):
            return JSONResponse({"error": "Route not found"}, status_code=404)
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"error": "Invalid request", "details": str(exc.errors())},
            status_code=400,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions, log full traceback, return 500."""
        logger.exception("Unhandled exception %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            {"error": "Internal server error", "details": str(exc)},
            status_code=500,
        )

    app.include_router(files_router)

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint.

        Reports whether each ImageKit credential is configured.  Never calls
        ImageKit.
        """
        creds = get_config().secrets.imagekit
        logger.debug("Health check endpoint hit")
        return {
            "status": "OK",
            "message": "FileSync Backend is running",
            "imagekit": {
                "publicKey": _credential_status(creds.public_key),
                "privateKey": _credential_status(creds.private_key),
                "urlEndpoint": _credential_status(creds.url_endpoint),
            },
        }

    return app


app = create_app()


def main() -> None:
    """Validate credentials, then serve the app with uvicorn."""
    config = load_config()
    missing = missing_credentials(config)
    if missing:
        _log_missing_credentials(missing)
        sys.exit(1)

    set_config(config)

    import uvicorn

    logger.info("Server running on port %s", config.server.port)
    logger.info("Health check: http://localhost:%s/health", config.server.port)
    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level,
    )


if __name__ == "__main__":
    main()
