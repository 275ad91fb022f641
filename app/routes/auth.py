from typing import Optional
from fastapi import APIRouter, Depends

from ..controllers.auth_controller import (
    login_with_google,
    logout,
    get_authenticated_user,
    get_session_state,
)
from ..schemas.auth_schema import (
    GoogleLoginRequest,
    AuthResponse,
    PrincipalOut,
    SessionStateResponse,
    LogoutResponse,
)
from ..services.session_events import SessionHub
from ..utils.auth_utils import (
    SessionContext,
    get_session,
    get_optional_session,
    get_session_hub,
)

router = APIRouter(prefix="/auth", tags=["Auth"])

# --------------
# Sign in / out
# --------------
@router.post("/google", response_model=AuthResponse, summary="Sign in with a Google ID token from the popup")
async def google_login(payload: GoogleLoginRequest, hub: SessionHub = Depends(get_session_hub)):
    return await login_with_google(payload.token_id, hub)

@router.post("/logout", response_model=LogoutResponse, summary="Sign out and revoke this token")
async def sign_out(
    session: SessionContext = Depends(get_session),
    hub: SessionHub = Depends(get_session_hub),
):
    return await logout(session, hub)

# ---------------------
# Current principal
# ---------------------
@router.get("/me", response_model=PrincipalOut, summary="Get the signed-in user and referral count")
async def get_me(session: SessionContext = Depends(get_session)):
    return await get_authenticated_user(session)

@router.get("/session", response_model=SessionStateResponse, summary="Restore session state (never fails)")
async def session_state(session: Optional[SessionContext] = Depends(get_optional_session)):
    return await get_session_state(session)
