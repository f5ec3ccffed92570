# upsc_prep/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import config
from .core.database import get_store, close_store
from .core.ai_services import get_ai_service, close_ai_service
from .core.exceptions import (
    ExternalServiceError, GeneratedContentError, InvalidInputError, NotFoundError,
    OutOfRangeError, PersistenceError,
)
from .core.scraper import close_scraper
from .core.utils import cleanup_all
from .api.routes import router

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info("🚀 UPSC Prep API starting...")

    try:
        # Validate configuration
        validation = config.validate()
        if not validation["valid"]:
            raise RuntimeError(f"Configuration invalid: {validation['issues']}")

        logger.info("✅ Configuration validated")

        # Initialize document store
        logger.info("🔄 Initializing database...")
        await get_store().initialize()
        logger.info("✅ Database connected and validated")

        # Initialize AI service
        logger.info("🔄 Initializing AI service...")
        ai_health = get_ai_service().health_check()

        if ai_health["status"] != "healthy":
            raise RuntimeError(f"AI service validation failed: {ai_health}")

        logger.info("✅ AI service connected and validated")
        logger.info(f"📊 Configuration: {config.DEFAULT_QUESTIONS} questions per test, "
                    f"{config.SECONDS_PER_QUESTION}s per question")

    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        raise

    yield

    # Cleanup on shutdown
    logger.info("👋 Shutting down...")
    try:
        cleanup_all()
        await get_store().flush()
        close_store()
        close_ai_service()
        close_scraper()
        logger.info("✅ Graceful shutdown completed")
    except Exception as e:
        logger.error(f"❌ Shutdown error: {e}")

# Create FastAPI application
app = FastAPI(
    title=config.API_TITLE,
    description=config.API_DESCRIPTION,
    version=config.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)

# Exception handlers
def _error_response(status_code: int, error: str, exc: Exception, error_type: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": str(exc), "type": error_type, **extra}
    )

@app.exception_handler(GeneratedContentError)
async def generated_content_handler(request: Request, exc: GeneratedContentError):
    """Malformed AI output; the request may simply be retried"""
    logger.warning(f"Generated content rejected: {exc}")
    return _error_response(502, "Generated Content Invalid", exc, "generated_content_error", retryable=True)

@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.warning(f"Validation error: {exc}")
    return _error_response(400, "Validation Error", exc, "validation_error")

@app.exception_handler(OutOfRangeError)
async def out_of_range_handler(request: Request, exc: OutOfRangeError):
    logger.warning(f"Out of range: {exc}")
    return _error_response(400, "Out Of Range", exc, "out_of_range_error")

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning(f"Not found: {exc}")
    return _error_response(404, "Resource Not Found", exc, "not_found_error")

@app.exception_handler(ExternalServiceError)
async def external_service_handler(request: Request, exc: ExternalServiceError):
    logger.error(f"External service failure: {exc}")
    return _error_response(502, "External Service Error", exc, "external_service_error", retryable=True)

@app.exception_handler(PersistenceError)
async def persistence_handler(request: Request, exc: PersistenceError):
    logger.error(f"Persistence failure: {exc}")
    return _error_response(503, "Storage Unavailable", exc, "persistence_error")

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "type": "server_error"
        }
    )

# Health check endpoints
@app.get("/health")
async def health_check():
    """Comprehensive health check"""
    health_status = {
        "status": "healthy",
        "service": "upsc_prep_api",
        "version": config.API_VERSION,
    }

    try:
        from .services.test_service import get_test_service
        test_health = get_test_service().health_check()
        health_status["test_service"] = test_health["status"]
        health_status["active_tests"] = test_health.get("active_tests", 0)
    except Exception as e:
        health_status["test_service"] = "error"
        logger.warning(f"Test service health check failed: {e}")

    try:
        ai_health = get_ai_service().health_check()
        health_status["ai_service"] = ai_health["status"]
    except Exception as e:
        health_status["ai_service"] = "error"
        logger.warning(f"AI service health check failed: {e}")

    try:
        db_health = await get_store().validate_connection()
        health_status["database"] = "healthy" if db_health["overall"] else "degraded"
    except Exception as e:
        health_status["database"] = "error"
        logger.warning(f"Database health check failed: {e}")

    if "error" in (health_status["ai_service"], health_status["database"]):
        health_status["status"] = "degraded"

    return health_status

@app.get("/info")
async def api_info():
    """API information and capabilities"""
    return {
        "name": config.API_TITLE,
        "version": config.API_VERSION,
        "description": config.API_DESCRIPTION,
        "features": {
            "ai_question_generation": True,
            "flash_cards": True,
            "study_tracking": True,
            "current_affairs_scraping": True,
            "performance_analytics": True,
            "dummy_data_mode": config.USE_DUMMY_DATA
        },
        "configuration": {
            "default_questions": config.DEFAULT_QUESTIONS,
            "max_questions": config.MAX_QUESTIONS,
            "seconds_per_question": config.SECONDS_PER_QUESTION,
            "correct_marks": config.CORRECT_MARKS,
            "wrong_penalty": config.WRONG_PENALTY
        },
        "endpoints": {
            "generate_test": "POST /api/generate-test",
            "start_test": "POST /api/users/{user_id}/tests",
            "submit_test": "POST /api/users/{user_id}/tests/{test_id}/submit",
            "analytics": "GET /api/users/{user_id}/analytics",
            "current_affairs": "GET /api/scrape-current-affairs",
            "health": "GET /health",
            "docs": "GET /docs"
        }
    }

if __name__ == "__main__":
    import uvicorn

    logger.info("🚀 Starting UPSC Prep API")
    logger.info(f"🌐 Server: http://{config.API_HOST}:{config.API_PORT}")
    logger.info(f"📚 Docs: http://{config.API_HOST}:{config.API_PORT}/docs")

    uvicorn.run(
        "upsc_prep.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=config.DEBUG_MODE,
        log_level=config.LOG_LEVEL.lower(),
        access_log=config.DEBUG_MODE
    )
