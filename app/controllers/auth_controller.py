import logging
from typing import Optional

from fastapi import HTTPException, status
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from ..models.auth import UserModel
from ..db.mongo import users_collection, sessions_collection
from ..utils.auth_utils import SessionContext
from ..utils.datetime_utils import now_utc
from ..utils.jwt_utils import create_jwt_token, new_session_id, TOKEN_TTL
from ..services.oauth_utils import verify_google_token
from ..services.session_events import SessionHub, SessionChange, SIGNED_IN, SIGNED_OUT
from ..schemas.auth_schema import AuthResponse, PrincipalOut, SessionStateResponse, LogoutResponse

logger = logging.getLogger(__name__)

SIGN_IN_FAILED = "There was a problem signing you in."
SIGNED_OUT_MESSAGE = "You have been successfully logged out."


def _principal_out(user: UserModel) -> PrincipalOut:
    return PrincipalOut(
        id=user.id,
        name=user.name,
        email=user.email,
        photo_url=user.photo_url,
        referral_count=user.referral_count,
    )


# -----------------------
# Sign in with Google (token from the browser popup)
# -----------------------
async def login_with_google(token_id: str, hub: SessionHub) -> AuthResponse:
    payload = verify_google_token(token_id)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=SIGN_IN_FAILED)

    uid = payload["uid"]
    now = now_utc()

    # One atomic upsert: racing first sign-ins still yield a single user record
    try:
        result = await users_collection.update_one(
            {"_id": uid},
            {
                "$setOnInsert": {
                    "name": payload["name"],
                    "email": payload["email"],
                    "referral_count": 0,
                    "created_at": now,
                },
                "$set": {
                    "photo_url": payload.get("photo_url"),
                    "last_login_at": now,
                    "updated_at": now,
                },
            },
            upsert=True,
        )
        created = result.upserted_id is not None
    except DuplicateKeyError:
        # The other racer inserted first; this sign-in is a repeat
        created = False

    doc = await users_collection.find_one({"_id": uid})
    try:
        user = UserModel.model_validate(doc)
        principal = _principal_out(user)
    except ValidationError:
        logger.exception("User %s could not be read back after sign-in", uid)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=SIGN_IN_FAILED)

    session_id = new_session_id()
    expires = now + TOKEN_TTL
    await sessions_collection.insert_one(
        {"_id": session_id, "user_id": uid, "created_at": now, "expires": expires}
    )
    token = create_jwt_token({"user_id": uid, "jti": session_id}, expires_at=expires)

    await hub.publish(SessionChange(kind=SIGNED_IN, user_id=uid, session_id=session_id, name=user.name))
    logger.info("User %s signed in (new=%s)", uid, created)

    return AuthResponse(
        token=token,
        user=principal,
        created=created,
        message=f"Welcome {user.name}!",
    )


# -----------------------
# Sign out: drop the server-side session so the token stops working
# -----------------------
async def logout(session: SessionContext, hub: SessionHub) -> LogoutResponse:
    await sessions_collection.delete_one({"_id": session.session_id})
    await hub.publish(SessionChange(
        kind=SIGNED_OUT,
        user_id=session.uid,
        session_id=session.session_id,
        name=session.principal.name,
    ))
    logger.info("User %s signed out", session.uid)
    return LogoutResponse(message=SIGNED_OUT_MESSAGE)


# -----------------------
# Current principal (for /auth/me)
# -----------------------
async def get_authenticated_user(session: SessionContext) -> PrincipalOut:
    return _principal_out(session.principal)


async def get_session_state(session: Optional[SessionContext]) -> SessionStateResponse:
    if session is None:
        return SessionStateResponse(authenticated=False, user=None)
    return SessionStateResponse(authenticated=True, user=_principal_out(session.principal))
