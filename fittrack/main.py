import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from fittrack.exceptions.handlers import (
    application_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from fittrack.exceptions.errors import ApplicationException
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from pymongo.errors import PyMongoError
from fittrack.core.config import settings
from fittrack.database import AsyncSessionLocal, Base, build_mongo_client, engine, ensure_indexes
from fittrack.persistence import DataStores
from fittrack.services.analytics_service import AnalyticsService

from fittrack.api.v1.routes import (
    auth_router, profile_router, progress_router, training_plan_router,
    diet_plan_router, analytics_router, transfer_router
)
from fittrack.middlewares.jwt_auth import JWTAuthMiddleware, whitelisted_routes
from fittrack.middlewares.upload_limit import LimitUploadSizeMiddleware

from fittrack.core.logger import get_logger

logger = get_logger("fittrack-backend")

# Multipart framing on top of the file itself
UPLOAD_OVERHEAD = 64 * 1024


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 FastAPI app is starting...")
    mode = settings.STORE_MODE
    mongo_client = None
    mongo_database = None

    if mode.uses_document:
        mongo_client = build_mongo_client()
        mongo_database = mongo_client[settings.MONGODB_DATABASE]
        try:
            await ensure_indexes(mongo_database)
        except PyMongoError as e:
            # Writes to the document store will fail individually and be reported per request
            logger.error(f"Document store unavailable at startup: {e}")

    if mode.uses_relational:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Relational tables ensured.")
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Relational store unavailable at startup: {e}")

    app.state.stores = DataStores(mode, mongo_database, AsyncSessionLocal)
    app.state.analytics = AnalyticsService()
    logger.info(f"Data stores ready in {mode.value} mode")

    yield

    logger.info("🛑 FastAPI app is shutting down...")
    if mongo_client is not None:
        mongo_client.close()
    await engine.dispose()


IS_DEVELOPMENT = settings.ENVIRONMENT == "development"

app = FastAPI(
    title="FitTrack Backend",
    version="1.0.0",
    lifespan=lifespan,
    description="""
    FitTrack API: progress tracking, training and diet plans, health analytics.

    Every write goes to MongoDB and MySQL (or one of them, per DATABASE_MODE).

    ## Authentication

    Obtain a token from `POST /api/v1/auth/login` and send it as:
    ```
    Authorization: Bearer <your-jwt-token>
    ```
    """,
    swagger_ui_parameters={"persistAuthorization": IS_DEVELOPMENT, "displayRequestDuration": True},
)

# CORS configuration
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]

app.add_middleware(
    JWTAuthMiddleware,
    whitelisted_routes=whitelisted_routes
)

app.add_middleware(
    LimitUploadSizeMiddleware,
    max_upload_size=settings.MAX_UPLOAD_SIZE + UPLOAD_OVERHEAD
)

# Added last so it wraps the others and error responses carry CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(profile_router, prefix="/api/v1")
app.include_router(progress_router, prefix="/api/v1")
app.include_router(training_plan_router, prefix="/api/v1")
app.include_router(diet_plan_router, prefix="/api/v1")
app.include_router(analytics_router, prefix="/api/v1")
app.include_router(transfer_router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health(request: Request):
    stores = getattr(request.app.state, "stores", None)
    return {
        "status": "healthy",
        "databaseMode": stores.mode.value if stores else settings.STORE_MODE.value,
        "version": "1.0.0",
    }


@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "FitTrack Backend API",
        "docs": "/docs",
        "version": "1.0.0"
    }


# Exception handlers
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

if __name__ == "__main__":
    uvicorn.run(
        "fittrack.main:app",
        host="127.0.0.1",
        port=8000,
        reload=IS_DEVELOPMENT,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30
    )
