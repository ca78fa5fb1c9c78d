from fastapi import Depends, Request
from sqlalchemy.orm import Session
from typing import Generator

from shop_admin.core.exceptions import UnauthorizedError
from shop_admin.schemas.auth import AdminPublic
from shop_admin.services.auth import AuthService
from shop_admin.services.products import ProductService
from shop_admin.services.sessions import ServerSession

def get_db(request: Request) -> Generator:
    """
    Dependency function to get DB session
    """
    yield from request.app.state.database.session()

def get_session(request: Request) -> ServerSession:
    session = getattr(request.state, "session", None)
    if session is None:
        # Session middleware not installed (should not happen outside tests)
        session = ServerSession()
        request.state.session = session
    return session

def require_admin(session: ServerSession = Depends(get_session)) -> AdminPublic:
    """
    Gate for mutating routes: the request must carry a live admin session.
    """
    user = session.user
    if not user:
        raise UnauthorizedError()
    return AdminPublic(**user)

def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    settings = request.app.state.settings
    return AuthService(db, request.app.state.password_hasher, settings.MIN_PASSWORD_LENGTH)

def get_product_service(request: Request, db: Session = Depends(get_db)) -> ProductService:
    settings = request.app.state.settings
    base_url = settings.PUBLIC_BASE_URL or str(request.base_url)
    return ProductService(db, request.app.state.image_store, base_url.rstrip("/"))
