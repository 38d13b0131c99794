"""
ExamGuard Service - FastAPI Application
"""
import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import Settings, settings as default_settings
from .proctor import router as proctor_router
from .proctor.context import ProctorContext, build_context
from .proctor.errors import SessionNotFoundError
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    context: Optional[ProctorContext] = None
) -> FastAPI:
    """
    Build the FastAPI application.
    
    Args:
        settings: Settings override (defaults to environment settings)
        context: Prebuilt proctor context (defaults to one built from settings)
    """
    settings = settings or default_settings
    
    app = FastAPI(
        title=settings.APP_NAME,
        description="Exam proctoring sessions, violation tracking and live monitoring",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None
    )
    app.state.settings = settings
    app.state.proctor = context or build_context(settings)
    
    # ========================================================================
    # Request Logging Middleware
    # ========================================================================
    
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming requests with timing."""
        start = time.time()
        response = await call_next(request)
        duration_ms = int((time.time() - start) * 1000)
        
        if request.url.path not in ["/health", "/favicon.ico"]:
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms}ms")
        
        return response
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    # ========================================================================
    # Error Handlers
    # ========================================================================
    
    @app.exception_handler(SessionNotFoundError)
    async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "Session not found"}
        )
    
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"}
        )
    
    app.include_router(proctor_router)
    
    @app.on_event("shutdown")
    async def shutdown_event():
        """Disconnect live monitors."""
        logger.info(f"Shutting down {settings.APP_NAME}...")
        app.state.proctor.close()
    
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": __version__
        }
    
    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": settings.APP_NAME,
            "docs": "/docs" if settings.DEBUG else "Disabled in production"
        }
    
    return app


setup_logging(
    service_name="examguard",
    level=default_settings.LOG_LEVEL,
    log_to_file=default_settings.LOG_TO_FILE,
    log_dir=default_settings.AUDIT_LOG_DIR
)

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=default_settings.PORT)
