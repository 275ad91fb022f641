from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator
from typing import Optional
from datetime import datetime
from typing_extensions import Annotated
from pydantic.functional_validators import BeforeValidator

from ..utils.datetime_utils import to_utc_aware

# Provider uids and ObjectIds both end up as plain strings
PyObjectId = Annotated[str, BeforeValidator(lambda x: str(x))]

DEFAULT_DISPLAY_NAME = "Anonymous"


class UserModel(BaseModel):
    """
    A participant, keyed by the identity provider's uid.
    `referral_count` is a cache of how many referrals the user submitted.
    """
    id: PyObjectId = Field(alias="_id")
    name: str = DEFAULT_DISPLAY_NAME
    email: Optional[EmailStr] = None
    photo_url: Optional[str] = None
    referral_count: int = 0
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    model_config = {
        "populate_by_name": True,
        # legacy / bookkeeping keys (updated_at, ...) are not part of the record
        "extra": "ignore",
    }

    @field_validator("name", mode="before")
    @classmethod
    def _name_or_default(cls, v):
        if v is None:
            return DEFAULT_DISPLAY_NAME
        v = str(v).strip()
        return v or DEFAULT_DISPLAY_NAME

    @field_validator("email", mode="wrap")
    @classmethod
    def _email_or_none(cls, v, handler):
        # a stored address that no longer parses is treated as absent
        try:
            return handler(v)
        except ValidationError:
            return None

    @field_validator("referral_count", mode="before")
    @classmethod
    def _count_or_zero(cls, v):
        if v is None:
            return 0
        return max(0, int(v))

    @field_validator("created_at", "last_login_at", mode="after")
    @classmethod
    def _aware(cls, v):
        return to_utc_aware(v)
