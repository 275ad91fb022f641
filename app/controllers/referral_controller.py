# app/controllers/referral_controller.py
import logging
from typing import Optional, Tuple

from fastapi import HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from pymongo import ReturnDocument

from ..db.mongo import users_collection, referrals_collection
from ..models.referral_model import ReferralModel, ReferralStatus
from ..schemas.referral_schema import (
    ReferralOut,
    ReferralSubmitResponse,
    ReferralHistoryResponse,
    ScreenshotCheckResponse,
)
from ..services.cloudinary_service import screenshot_key, upload_screenshot
from ..utils.auth_utils import SessionContext
from ..utils.datetime_utils import now_utc, epoch_millis

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────
MAX_SCREENSHOT_BYTES = 5 * 1024 * 1024  # 5 MiB

NAME_REQUIRED = "Please enter the name of the person you're referring"
EMAIL_INVALID = "Please enter a valid email address"
SCREENSHOT_REQUIRED = "Please upload a proof of registration"
SCREENSHOT_NOT_IMAGE = "Please upload an image file"
SCREENSHOT_TOO_LARGE = "File size must be less than 5MB"

SUBMITTED_MESSAGE = "Your referral has been submitted and is pending approval."
SUBMISSION_FAILED = "There was a problem submitting your referral. Please try again."
HISTORY_FAILED = "Could not load referrals."


# ──────────────────────────────────────────────────────────────────────────────
# Validation (fail-fast, one message at a time, no I/O)
# ──────────────────────────────────────────────────────────────────────────────
def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def validate_referral_fields(referred_name: Optional[str], referred_email: Optional[str]) -> Tuple[str, str]:
    """Returns the trimmed (name, email) or raises 400 on the first bad field."""
    name = (referred_name or "").strip()
    if not name:
        raise _bad_request(NAME_REQUIRED)

    email = (referred_email or "").strip()
    if not email or "@" not in email:
        raise _bad_request(EMAIL_INVALID)

    return name, email


def validate_screenshot(filename: Optional[str], content_type: Optional[str], data: Optional[bytes]) -> None:
    # A browser posts an empty part when nothing was picked
    if data is None or (not filename and not data):
        raise _bad_request(SCREENSHOT_REQUIRED)
    if not (content_type or "").lower().startswith("image/"):
        raise _bad_request(SCREENSHOT_NOT_IMAGE)
    if len(data) > MAX_SCREENSHOT_BYTES:
        raise _bad_request(SCREENSHOT_TOO_LARGE)


async def _read_screenshot(screenshot: Optional[UploadFile]) -> Optional[bytes]:
    if screenshot is None:
        return None
    # One byte past the limit is enough to know it is too large
    return await screenshot.read(MAX_SCREENSHOT_BYTES + 1)


async def check_screenshot(screenshot: Optional[UploadFile]) -> ScreenshotCheckResponse:
    """
    Selection-time check: the client calls this as soon as a file is picked.
    """
    data = await _read_screenshot(screenshot)
    filename = screenshot.filename if screenshot else None
    content_type = screenshot.content_type if screenshot else None
    validate_screenshot(filename, content_type, data)
    return ScreenshotCheckResponse(filename=filename, content_type=content_type, size=len(data))


def _to_out(referral: ReferralModel) -> ReferralOut:
    return ReferralOut(**referral.model_dump())


# ──────────────────────────────────────────────────────────────────────────────
# Public controller functions
# ──────────────────────────────────────────────────────────────────────────────
async def submit_referral(
    session: SessionContext,
    referred_name: Optional[str],
    referred_email: Optional[str],
    screenshot: Optional[UploadFile],
) -> ReferralSubmitResponse:
    """
    Validate, upload the proof, write the pending referral, bump the counter.

    Steps after validation are not rolled back: if the record write fails the
    uploaded image is left orphaned, and if the increment fails the counter
    lags until `reconcile_referral_counts` runs.
    """
    name, email = validate_referral_fields(referred_name, referred_email)
    data = await _read_screenshot(screenshot)
    filename = screenshot.filename if screenshot else None
    validate_screenshot(filename, screenshot.content_type if screenshot else None, data)

    uid = session.uid
    submitted_at = now_utc()
    folder, public_id = screenshot_key(uid, filename, epoch_millis(submitted_at))

    try:
        # 1) Upload proof (Cloudinary SDK is blocking)
        url, stored_id = await run_in_threadpool(upload_screenshot, data, folder, public_id)

        # 2) Record the referral, always pending
        referral = ReferralModel(
            referred_name=name,
            referred_email=email,
            proof_screenshot_url=url,
            proof_screenshot_id=stored_id,
            referred_by_uid=uid,
            referred_by=session.principal.name,
            timestamp=submitted_at,
            status=ReferralStatus.PENDING,
        )
        result = await referrals_collection.insert_one(referral.to_document())
        referral.id = str(result.inserted_id)

        # 3) Atomic server-side +1
        updated = await users_collection.find_one_and_update(
            {"_id": uid},
            {"$inc": {"referral_count": 1}, "$set": {"updated_at": now_utc()}},
            projection={"referral_count": 1},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise RuntimeError(f"user {uid} vanished before referral_count increment")
    except Exception:
        logger.exception("Referral submission failed for user %s", uid)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=SUBMISSION_FAILED)

    logger.info("Referral %s submitted by %s", referral.id, uid)
    return ReferralSubmitResponse(
        referral=_to_out(referral),
        referral_count=int(updated.get("referral_count") or 0),
        message=SUBMITTED_MESSAGE,
    )


async def list_my_referrals(session: SessionContext) -> ReferralHistoryResponse:
    """
    All referrals submitted by the caller, newest first.
    Ordering is applied here rather than trusted from the store.
    """
    uid = session.uid
    docs = []
    try:
        async for doc in referrals_collection.find({"referred_by_uid": uid}):
            docs.append(doc)
    except Exception:
        logger.exception("Loading referrals failed for user %s", uid)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=HISTORY_FAILED)

    referrals = []
    for doc in docs:
        try:
            referrals.append(ReferralModel.model_validate(doc))
        except ValidationError as e:
            logger.warning("Skipping malformed referral %s: %s", doc.get("_id"), e.errors())

    referrals.sort(key=lambda r: r.timestamp, reverse=True)

    def _tally(s: ReferralStatus) -> int:
        return sum(1 for r in referrals if r.status == s)

    return ReferralHistoryResponse(
        total=len(referrals),
        pending=_tally(ReferralStatus.PENDING),
        approved=_tally(ReferralStatus.APPROVED),
        rejected=_tally(ReferralStatus.REJECTED),
        referral_count=session.principal.referral_count,
        items=[_to_out(r) for r in referrals],
    )
