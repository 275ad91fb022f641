# app/utils/auth_utils.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import ValidationError

from ..db.mongo import users_collection, sessions_collection
from ..models.auth import UserModel
from ..services.session_events import SessionHub
from .jwt_utils import SECRET_KEY, ALGORITHM

logger = logging.getLogger(__name__)

# Bearer scheme for typical HTTP routes
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class SessionContext:
    """
    The signed-in principal for one request, handed explicitly to controllers.
    """
    principal: UserModel
    session_id: str
    token: str

    @property
    def uid(self) -> str:
        return self.principal.id


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------
def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_session(token: str) -> SessionContext:
    if not SECRET_KEY:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="JWT secret not configured.")

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid or expired token.")

    user_id = payload.get("user_id")
    session_id = payload.get("jti")
    if not user_id or not session_id:
        raise _unauthorized("Invalid token payload.")

    # Signed-out tokens have no session document left
    session = await sessions_collection.find_one({"_id": session_id, "user_id": user_id})
    if not session:
        logger.warning("Rejected revoked session %s for user %s", session_id, user_id)
        raise _unauthorized("Session has ended. Please sign in again.")

    doc = await users_collection.find_one({"_id": user_id})
    if not doc:
        raise _unauthorized("User not found.")
    try:
        principal = UserModel.model_validate(doc)
    except ValidationError:
        logger.exception("Stored user %s is malformed", user_id)
        raise _unauthorized("User not found.")

    return SessionContext(principal=principal, session_id=session_id, token=token)


# ------------------------------------------------------------------
# Public dependencies
# ------------------------------------------------------------------
async def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionContext:
    """
    Validates the Bearer JWT and its server-side session, loads the user.
    """
    if not credentials:
        raise _unauthorized("Not authenticated.")
    return await _resolve_session(credentials.credentials)


async def get_optional_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[SessionContext]:
    """
    Optional auth: returns the session if a valid Bearer token is present, otherwise None.
    Never raises for a missing/invalid token.
    """
    if not credentials:
        return None
    try:
        return await _resolve_session(credentials.credentials)
    except HTTPException:
        return None


def get_session_hub(request: Request) -> SessionHub:
    hub = getattr(request.app.state, "session_hub", None)
    if hub is None or hub.closed:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting up.")
    return hub
