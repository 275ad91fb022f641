from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from enum import Enum
from typing import Optional
from typing_extensions import Annotated
from pydantic.functional_validators import BeforeValidator

from ..utils.datetime_utils import to_utc_aware

PyObjectId = Annotated[str, BeforeValidator(lambda x: str(x))]


class ReferralStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReferralModel(BaseModel):
    """
    A claim that `referred_by_uid` brought `referred_name` to the event.
    Created as pending; approval/rejection is done outside this service.
    """
    id: Optional[PyObjectId] = Field(alias="_id", default=None)
    referred_name: str = Field(..., min_length=1)
    referred_email: str
    proof_screenshot_url: Optional[str] = None
    proof_screenshot_id: Optional[str] = None
    referred_by_uid: PyObjectId
    referred_by: Optional[str] = None
    timestamp: datetime
    status: ReferralStatus = ReferralStatus.PENDING

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("status", mode="before")
    @classmethod
    def _status_or_pending(cls, v):
        return ReferralStatus.PENDING if v is None else v

    @field_validator("timestamp", mode="after")
    @classmethod
    def _aware(cls, v):
        return to_utc_aware(v)

    def to_document(self) -> dict:
        doc = self.model_dump(by_alias=True, exclude_none=True)
        doc["status"] = self.status.value
        return doc
