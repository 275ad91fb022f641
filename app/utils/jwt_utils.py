import jwt
import os
import uuid
from dotenv import load_dotenv
from datetime import datetime, timedelta, timezone

load_dotenv()


SECRET_KEY = os.getenv("JWT_SECRET_KEY") or os.getenv("JWT_SECRET") or ""
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_TTL = timedelta(days=int(os.getenv("JWT_EXPIRES_DAYS", "7")))


def new_session_id() -> str:
    return uuid.uuid4().hex


def create_jwt_token(data: dict, expires_at: datetime = None):
    to_encode = data.copy()
    expire = expires_at or (datetime.now(timezone.utc) + TOKEN_TTL)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
