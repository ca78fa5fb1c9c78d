import hashlib
import hmac
import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from shop_admin.services.sessions import ServerSession, SessionStore, is_valid_session_id

logger = logging.getLogger(__name__)


class CookieSigner:
    """HMAC-SHA256 signature over the session id carried in the cookie."""

    def __init__(self, secret: str):
        self.secret = secret.encode()

    def _signature(self, value: str) -> str:
        return hmac.new(self.secret, value.encode(), hashlib.sha256).hexdigest()

    def sign(self, value: str) -> str:
        return f"{value}.{self._signature(value)}"

    def unsign(self, signed: str) -> Optional[str]:
        value, _, signature = signed.rpartition(".")
        if not value or not signature:
            return None
        if not hmac.compare_digest(signature, self._signature(value)):
            return None
        return value


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Loads the server-side session named by the cookie into
    ``request.state.session`` and writes it back after the handler ran.
    Active sessions are touched on every request (rolling expiry).
    """

    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        secret: str,
        cookie_name: str,
        max_age: int,
        secure: bool = False,
        same_site: str = "lax",
    ):
        super().__init__(app)
        self.store = store
        self.signer = CookieSigner(secret)
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.secure = secure
        self.same_site = same_site

    def _load(self, request: Request) -> ServerSession:
        cookie = request.cookies.get(self.cookie_name)
        if not cookie:
            return ServerSession()
        session_id = self.signer.unsign(cookie)
        if session_id is None or not is_valid_session_id(session_id):
            logger.warning("Rejected session cookie with a bad signature")
            return ServerSession()
        data = self.store.get(session_id)
        if not data:
            return ServerSession()
        return ServerSession(session_id, data)

    def _set_cookie(self, response: Response, session_id: str) -> None:
        response.set_cookie(
            self.cookie_name,
            self.signer.sign(session_id),
            max_age=self.max_age,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite=self.same_site,
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        session = await run_in_threadpool(self._load, request)
        request.state.session = session
        had_cookie = self.cookie_name in request.cookies

        response = await call_next(request)
        await run_in_threadpool(self._save, session, response, had_cookie)
        return response

    def _save(self, session: ServerSession, response: Response, had_cookie: bool) -> None:
        if session.previous_id is not None:
            self.store.destroy(session.previous_id)

        if session.destroyed:
            if had_cookie:
                response.delete_cookie(self.cookie_name, path="/")
        elif session.modified and session.id is not None:
            self.store.set(session.id, session.data)
            self._set_cookie(response, session.id)
        elif session.is_active:
            self.store.touch(session.id)
            self._set_cookie(response, session.id)
        elif had_cookie:
            # Stale or forged cookie: nothing to keep on the client
            response.delete_cookie(self.cookie_name, path="/")
