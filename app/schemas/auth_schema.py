from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional
from typing_extensions import Annotated
from pydantic.functional_validators import BeforeValidator

PyObjectId = Annotated[str, BeforeValidator(lambda x: str(x))]


# ✅ Request Schemas
class GoogleLoginRequest(BaseModel):
    token_id: str

    @field_validator("token_id", mode="before")
    @classmethod
    def _trim(cls, v):
        return str(v).strip() if v is not None else v


# ✅ Response Schemas
class PrincipalOut(BaseModel):
    id: PyObjectId
    name: str
    email: Optional[EmailStr] = None
    photo_url: Optional[str] = None
    referral_count: int = 0


class AuthResponse(BaseModel):
    token: str
    user: PrincipalOut
    created: bool = False      # True on the very first sign-in for this uid
    message: Optional[str] = None


class SessionStateResponse(BaseModel):
    authenticated: bool
    user: Optional[PrincipalOut] = None


class LogoutResponse(BaseModel):
    message: str
