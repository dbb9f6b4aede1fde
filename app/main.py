"""
FastAPI application entry point.
Main application instance with middleware and route configuration.
"""
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
import logging
import asyncio

from app.config import settings
from app.schemas import Config
from app.services.image_files import ImageFileStore
from app.services.initializer import init_buckets
from app.store import KeyValueStore
from app.routes import display, admin

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,  # Cache preflight requests for 1 hour
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests and their response status."""
    method = request.method
    path = request.url.path
    logger.debug(f"Incoming {method} request to {path}")

    try:
        response = await call_next(request)
        # The frame polls the current image constantly; keep that at debug level
        log = logger.debug if path == "/api/image/current" else logger.info
        log(f"Response status: {response.status_code} for {method} {path}")
        return response
    except Exception as e:
        logger.error(
            f"Error processing {method} {path}: {str(e)}\n"
            f"  Error type: {type(e).__name__}",
            exc_info=True
        )
        raise


# Include routers
app.include_router(display.router, prefix="/api", tags=["display"])
app.include_router(admin.router)

# Uploaded images are served straight from the image directory
app.mount(
    "/static/images",
    StaticFiles(directory=settings.IMAGE_DIR, check_dir=False),
    name="images",
)


# Exception Handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions (400, 404, 500, ...) raised by the routes."""
    logger.warning(
        f"HTTPException on {request.method} {request.url.path}: "
        f"status={exc.status_code}, detail={exc.detail}"
    )

    # Handle both string and dict detail formats
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail, "detail": str(exc.detail)}

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """Handle request validation errors."""
    logger.warning(
        f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation error",
            "detail": jsonable_errors(exc)
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw input and context objects, which may not be JSON serializable."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}:\n"
        f"  Error: {str(exc)}\n"
        f"  Error type: {type(exc).__name__}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred"
        }
    )


# Root Endpoints
@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": settings.API_TITLE,
        "status": "healthy",
        "version": settings.API_VERSION
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db(request: Request):
    """
    Key-value store health check endpoint.
    Opens a read transaction and returns status.
    """
    try:
        await request.app.state.store.ping()
        return {
            "database": "connected",
            "status": "healthy"
        }
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}", exc_info=True)
        return {
            "database": "error",
            "status": "unhealthy",
            "error": "Key-value store is not accessible"
        }


@app.on_event("startup")
async def startup_event():
    """
    Open the key-value store and populate empty buckets.
    The frame cannot work without its store, so failures abort startup.
    """
    logger.info("Starting up picture frame server...")
    files = ImageFileStore(settings.IMAGE_DIR)
    store = KeyValueStore(settings.DATABASE_URL, timeout=settings.DATABASE_TIMEOUT_SECONDS)

    try:
        await init_buckets(
            store,
            files,
            Config(
                image_duration=settings.DEFAULT_IMAGE_DURATION,
                random_order=settings.DEFAULT_RANDOM_ORDER,
            ),
            suffix=settings.PREPOPULATE_SUFFIX,
        )
    except Exception as e:
        logger.error(f"Failed to initialize key-value store on startup: {str(e)}", exc_info=True)
        await store.close()
        raise

    app.state.store = store
    app.state.files = files
    logger.info("Key-value store initialized successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Close the key-value store on application shutdown."""
    store = getattr(app.state, "store", None)
    if store is not None:
        try:
            await store.close()
        except Exception as e:
            # Ignore cancellation errors during shutdown - they're expected
            if not isinstance(e, (KeyboardInterrupt, asyncio.CancelledError)):
                logger.warning(f"Error during store shutdown: {str(e)}")
