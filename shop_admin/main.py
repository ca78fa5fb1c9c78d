import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from shop_admin.api import auth_router, products_router
from shop_admin.api.deps import get_session
from shop_admin.config import Settings, get_settings
from shop_admin.core.middleware import SessionMiddleware
from shop_admin.core.security import PasswordHasher
from shop_admin.models.database import Database
from shop_admin.services.auth import AuthService
from shop_admin.services.sessions import FileSessionStore, build_session_store
from shop_admin.services.uploads import ImageStore

logger = logging.getLogger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path"))
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(f"{field}: {message}" if field else message)
    return "; ".join(messages) or "Invalid request"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Product catalog administration API with session-based admin authentication",
        version=settings.VERSION
    )

    # Collaborators built once and shared by every request
    app.state.settings = settings
    app.state.database = Database(settings.DATABASE_URL)
    app.state.password_hasher = PasswordHasher(settings.BCRYPT_ROUNDS)
    app.state.session_store = build_session_store(
        settings.SESSION_BACKEND,
        settings.SESSION_TTL_SECONDS,
        settings.SESSION_DIR
    )
    app.state.image_store = ImageStore(
        settings.UPLOAD_DIR,
        url_path=settings.UPLOAD_URL_PATH,
        allowed_extensions=settings.ALLOWED_IMAGE_EXTENSIONS,
        max_bytes=settings.MAX_UPLOAD_SIZE
    )

    # Middleware: the last one added runs first
    app.add_middleware(
        SessionMiddleware,
        store=app.state.session_store,
        secret=settings.SESSION_SECRET,
        cookie_name=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_TTL_SECONDS,
        secure=settings.SESSION_COOKIE_SECURE,
        same_site=settings.SESSION_COOKIE_SAMESITE,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    # Exception handlers
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": _describe_validation_error(exc)}
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Database error occurred"}
        )

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        content = {"detail": "Internal server error"}
        if settings.is_development:
            content["message"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    # Include routers
    app.include_router(products_router, prefix=f"{settings.API_PREFIX}/products", tags=["products"])
    app.include_router(auth_router, prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])

    # Uploaded images
    app.mount(
        settings.UPLOAD_URL_PATH,
        StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
        name="uploads"
    )

    @app.on_event("startup")
    def startup_event():
        app.state.image_store.ensure_directory()
        store = app.state.session_store
        if isinstance(store, FileSessionStore):
            store.ensure_directory()
            store.reap()

        database = app.state.database
        database.create_all()
        db = database.SessionLocal()
        try:
            AuthService(db, app.state.password_hasher).ensure_default_admin(
                settings.DEFAULT_ADMIN_USERNAME,
                settings.DEFAULT_ADMIN_EMAIL,
                settings.DEFAULT_ADMIN_PASSWORD
            )
        finally:
            db.close()
        logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")

    @app.on_event("shutdown")
    def shutdown_event():
        app.state.database.dispose()

    @app.get("/")
    async def root():
        return {
            "message": f"Welcome to the {settings.PROJECT_NAME}",
            "version": settings.VERSION,
            "endpoints": {
                "products": f"{settings.API_PREFIX}/products",
                "auth": f"{settings.API_PREFIX}/auth",
                "health": "/health"
            }
        }

    @app.get("/health")
    async def health_check(request: Request):
        session = get_session(request)
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.ENVIRONMENT,
            "sessionActive": session.user is not None
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("shop_admin.main:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
