from contextlib import asynccontextmanager
from dotenv import load_dotenv
import logging
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from credverify.api.routers import api_router
from credverify.core.config import settings
from credverify.core.database import init_database
from credverify.core.logging_config import configure_logging
from credverify.core.sentry import init_sentry
from credverify.middleware import RequestIDMiddleware


# Load environment variables
load_dotenv()

# Configure logging with request_id and verification_run_id support
configure_logging()

# Get logger for this module
logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking
init_sentry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown.

    On startup, initializes the database, then yields control for the
    application to run. If startup fails, the exception is logged and re-raised.
    """
    logger.info("Starting credential verification API...")

    try:
        await init_database()
        logger.info("Database initialized")

        if not settings.PROXYCURL_API_KEY:
            logger.warning(
                "PROXYCURL_API_KEY not configured - LinkedIn profiles will go to manual review"
            )
        if not settings.SERPAPI_KEY:
            logger.warning(
                "SERPAPI_KEY not configured - Google Scholar profiles will go to manual review"
            )

        logger.info("All services started successfully")
        yield

    except Exception:
        logger.exception("Failed to start services")
        raise
    finally:
        logger.info("Shutting down credential verification API...")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
    openapi_url="/openapi.json" if settings.is_local else None,
)

# Add Request ID middleware (must be added first to ensure request_id is available)
app.add_middleware(RequestIDMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Include all API routes
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health_check():
    try:
        return {
            "fastAPI server": {"status": "healthy"},
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Health check failed: {str(e)}")
