from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from typing_extensions import Annotated
from pydantic.functional_validators import BeforeValidator

from ..models.referral_model import ReferralStatus

# Store ObjectIds as strings in API responses
PyObjectId = Annotated[str, BeforeValidator(lambda x: str(x))]


class ReferralOut(BaseModel):
    id: PyObjectId
    referred_name: str
    referred_email: str
    proof_screenshot_url: Optional[str] = None
    referred_by_uid: PyObjectId
    referred_by: Optional[str] = None
    timestamp: datetime
    status: ReferralStatus


class ReferralSubmitResponse(BaseModel):
    referral: ReferralOut
    referral_count: int
    message: str
    redirect_to: str = "/dashboard"


class ScreenshotCheckResponse(BaseModel):
    ok: bool = True
    filename: Optional[str] = None
    content_type: Optional[str] = None
    size: int


class ReferralHistoryResponse(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    referral_count: int     # cached counter on the user record
    items: List[ReferralOut]
