# app/services/oauth_utils.py
import os
import time
import logging
from typing import Optional, Dict, Any

from google.oauth2 import id_token as google_id_token
from google.auth.transport import requests as google_requests

logger = logging.getLogger(__name__)

# =========
# ENV VARS
# =========
GOOGLE_WEB_CLIENT_ID = os.getenv("GOOGLE_WEB_CLIENT_ID")         # web app client_id used by the sign-in popup
GOOGLE_EXTRA_CLIENT_IDS = os.getenv("GOOGLE_EXTRA_CLIENT_IDS", "")  # comma-separated, optional

_ALLOWED_GOOGLE_AUDS = {
    cid.strip()
    for cid in [GOOGLE_WEB_CLIENT_ID, *GOOGLE_EXTRA_CLIENT_IDS.split(",")]
    if cid and cid.strip()
}
_GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


def verify_google_token(token_id: str) -> Optional[Dict[str, Any]]:
    """
    Verifies a Google ID token coming from the browser sign-in popup.
    Returns the principal {'uid', 'name', 'email', 'photo_url'} on success, else None.
    Never raises: provider/network errors are logged and reported as None.
    """
    try:
        if not _ALLOWED_GOOGLE_AUDS:
            logger.error("Google verification blocked: no GOOGLE_WEB_CLIENT_ID configured.")
            return None
        if not token_id:
            return None

        # Verify signature & expiry against Google's public keys; audiences are checked below.
        req = google_requests.Request()
        payload = google_id_token.verify_oauth2_token(token_id, req, audience=None)

        iss_ok = payload.get("iss") in _GOOGLE_ISSUERS
        aud_ok = payload.get("aud") in _ALLOWED_GOOGLE_AUDS
        uid = payload.get("sub")
        email = payload.get("email")
        email_verified = payload.get("email_verified") in (True, "true", "1", 1)
        not_expired = int(payload.get("exp", "0")) > int(time.time())

        if not (iss_ok and aud_ok and uid and email and email_verified and not_expired):
            logger.warning(
                "Google token rejected. iss_ok=%s, aud_ok=%s, uid=%s, email=%s, email_verified=%s, not_expired=%s",
                iss_ok, aud_ok, bool(uid), bool(email), email_verified, not_expired,
            )
            return None

        return {
            "uid": uid,
            "name": payload.get("name") or payload.get("given_name") or email.split("@")[0],
            "email": email,
            "photo_url": payload.get("picture"),
        }
    except Exception:
        logger.exception("Google token verification failed with exception")
        return None
