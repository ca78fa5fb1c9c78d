from fastapi import APIRouter, Depends

from shop_admin.api.deps import get_auth_service, get_session, require_admin
from shop_admin.schemas.auth import AdminPublic, AuthStatus, ChangePasswordRequest, LoginRequest, LoginResponse, MessageResponse
from shop_admin.services.auth import AuthService
from shop_admin.services.sessions import ServerSession

router = APIRouter()

@router.post("/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    session: ServerSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Log an admin in and start a session (returned as a cookie).
    Raises 401 on an unknown username or a wrong password.
    """
    user = auth_service.login(session, credentials.username, credentials.password)
    return LoginResponse(message="Login successful", user=user)

@router.post("/logout", response_model=MessageResponse)
def logout(
    session: ServerSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service)
):
    """End the current session. Calling it without a session is not an error."""
    auth_service.logout(session)
    return MessageResponse(message="Logout successful")

@router.get("/check", response_model=AuthStatus, response_model_exclude_none=True)
def check(
    session: ServerSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Report whether the request carries an authenticated session."""
    return auth_service.check_session(session)

@router.post("/change-password", response_model=MessageResponse)
def change_password(
    passwords: ChangePasswordRequest,
    admin: AdminPublic = Depends(require_admin),
    session: ServerSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Change the logged-in admin's password.
    - 401 without a session or when the current password is wrong
    - 400 when the new password is shorter than the minimum length
    """
    auth_service.change_password(session, passwords.currentPassword, passwords.newPassword)
    return MessageResponse(message="Password changed successfully")
