import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional

from shop_admin.models.admins import Admin
from shop_admin.schemas.auth import AdminPublic, AuthStatus
from shop_admin.core.exceptions import InvalidCredentialsError, UnauthorizedError, ValidationError
from shop_admin.core.security import PasswordHasher
from shop_admin.services.sessions import ServerSession

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session, hasher: PasswordHasher, min_password_length: int = 8):
        self.db = db
        self.hasher = hasher
        self.min_password_length = min_password_length

    def get_admin_by_username(self, username: str) -> Optional[Admin]:
        return self.db.query(Admin).filter(Admin.username == username).first()

    def get_admin(self, admin_id: int) -> Optional[Admin]:
        return self.db.query(Admin).filter(Admin.id == admin_id).first()

    def login(self, session: ServerSession, username: str, password: str) -> AdminPublic:
        """
        Verify credentials and bind the admin to a new session. Unknown
        usernames and wrong passwords fail the same way.
        """
        admin = self.get_admin_by_username(username)
        if not admin or not self.hasher.verify(password, admin.password_hash):
            logger.info(f"Failed login attempt for username '{username}'")
            raise InvalidCredentialsError()

        user = AdminPublic.model_validate(admin)
        session.login(user.model_dump())
        logger.info(f"Admin '{admin.username}' logged in")
        return user

    def logout(self, session: ServerSession) -> None:
        user = session.user
        session.destroy()
        if user:
            logger.info(f"Admin '{user.get('username')}' logged out")

    def check_session(self, session: ServerSession) -> AuthStatus:
        user = session.user
        if not user:
            return AuthStatus(authenticated=False)
        return AuthStatus(authenticated=True, user=AdminPublic(**user))

    def change_password(self, session: ServerSession, current_password: str, new_password: str) -> None:
        user = session.user
        if not user:
            raise UnauthorizedError()

        admin = self.get_admin(user["id"])
        if not admin:
            # The account behind the session is gone
            session.destroy()
            raise UnauthorizedError()

        if not self.hasher.verify(current_password, admin.password_hash):
            raise InvalidCredentialsError()

        if len(new_password) < self.min_password_length:
            raise ValidationError(
                f"New password must be at least {self.min_password_length} characters long"
            )

        admin.password_hash = self.hasher.hash(new_password)
        self.db.add(admin)
        self.db.commit()
        logger.info(f"Password changed for admin '{admin.username}'")

    def ensure_default_admin(self, username: str, email: str, password: str) -> bool:
        """
        Seed the default admin account on first boot. Returns True when a row
        was created.
        """
        if self.get_admin_by_username(username):
            return False
        try:
            admin = Admin(
                username=username,
                email=email,
                password_hash=self.hasher.hash(password)
            )
            self.db.add(admin)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        logger.warning(
            f"Default admin '{username}' created with the default password. Change it immediately!"
        )
        return True
