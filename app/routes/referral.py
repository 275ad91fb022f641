from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ..utils.auth_utils import SessionContext, get_session
from ..schemas.referral_schema import (
    ReferralSubmitResponse,
    ReferralHistoryResponse,
    ScreenshotCheckResponse,
)
from ..controllers.referral_controller import (
    check_screenshot,
    submit_referral,
    list_my_referrals,
)

router = APIRouter(prefix="/referral", tags=["referral"])

# Form fields default to empty so the controller reports one missing field at a time

@router.post(
    "/screenshot/check",
    response_model=ScreenshotCheckResponse,
    summary="Validate a proof screenshot when it is picked",
)
async def screenshot_check(
    screenshot: Optional[UploadFile] = File(None),
    session: SessionContext = Depends(get_session),
):
    return await check_screenshot(screenshot)

@router.post(
    "/submit",
    response_model=ReferralSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a referral with proof of registration",
)
async def submit(
    referred_name: str = Form(""),
    referred_email: str = Form(""),
    screenshot: Optional[UploadFile] = File(None),
    session: SessionContext = Depends(get_session),
):
    return await submit_referral(session, referred_name, referred_email, screenshot)

@router.get("/my", response_model=ReferralHistoryResponse, summary="My referrals, newest first")
async def my_referrals(session: SessionContext = Depends(get_session)):
    return await list_my_referrals(session)
