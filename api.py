"""
HireLocal FastAPI Application

Main entry point for the HireLocal auth API.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Common library imports
from common.database import MongoDB, set_main_database
from common.utils import success_response, error_response
from common.utils.exceptions import APIException
from common.utils.responses import api_exception_response

# App-specific imports
from hirelocal import __version__
from hirelocal.config import Settings, settings
from hirelocal.dependencies import init_auth_services
from hirelocal.repositories import MongoUserRepository, MongoOtpCodeStore
from hirelocal.routers import auth_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


# =============================================================================
# Exception Handlers
# =============================================================================
async def handle_api_exception(request: Request, exc: APIException):
    return api_exception_response(exc)


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message),
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder(
            error_response("Validation error", code="VALIDATION_ERROR", errors=errors)
        ),
    )


def make_unhandled_exception_handler(app_settings: Settings):
    async def handle_unhandled_exception(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        details = str(exc) if app_settings.is_development() else None
        return JSONResponse(
            status_code=500,
            content=error_response("Internal server error", code="INTERNAL_ERROR", details=details),
        )

    return handle_unhandled_exception


# =============================================================================
# Application Factory
# =============================================================================
def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to use; defaults to the environment-loaded ones

    The lifespan connects MongoDB and initializes services; tests that wire
    services through ``app.dependency_overrides`` simply skip it.
    """
    app_settings = app_settings or settings
    main_db = MongoDB()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("Starting HireLocal API...")
        app_settings.validate_required()

        await main_db.connect(
            uri=app_settings.MONGODB_URI,
            database_name=app_settings.MONGODB_DATABASE,
        )
        set_main_database(main_db)
        logger.info(f"Connected to database: {app_settings.MONGODB_DATABASE}")

        await MongoUserRepository(main_db.db).ensure_indexes()
        if app_settings.OTP_MODE == "one_time":
            await MongoOtpCodeStore(main_db.db).ensure_indexes()

        init_auth_services(db=main_db.db, settings=app_settings)
        logger.info(f"Auth services initialized (otp_mode={app_settings.OTP_MODE})")

        yield

        # Shutdown
        logger.info("Shutting down HireLocal API...")
        await main_db.disconnect()

    app = FastAPI(
        title="HireLocal API",
        description="Authentication and session management for the HireLocal marketplace",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if app_settings.is_development() else None,
        redoc_url="/redoc" if app_settings.is_development() else None,
    )

    # =========================================================================
    # CORS Middleware
    # =========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.get_cors_origins(),
        allow_credentials=app_settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(APIException, handle_api_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, make_unhandled_exception_handler(app_settings))

    # =========================================================================
    # Routers
    # =========================================================================
    app.include_router(auth_router, prefix=API_PREFIX, tags=["Authentication"])

    # =========================================================================
    # Health Check Endpoint
    # =========================================================================
    @app.get("/health", tags=["Health"])
    async def health():
        """
        Health check endpoint.

        Returns the status of the API and database connection.
        """
        return success_response({
            "status": "ok",
            "version": __version__,
            "database": main_db.is_connected,
        })

    return app


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app()


# =============================================================================
# Run with Uvicorn
# =============================================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
    )
