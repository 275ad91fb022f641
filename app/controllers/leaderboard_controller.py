import os
import logging
from typing import List

from fastapi import HTTPException, status
from pydantic import ValidationError

from ..db.mongo import users_collection, referrals_collection
from ..models.auth import UserModel
from ..schemas.leaderboard_schema import (
    LeaderboardEntry,
    LeaderboardResponse,
    ReconcileFix,
    ReconcileResponse,
)
from ..utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = int(os.getenv("LEADERBOARD_SIZE", "20"))
LEADERBOARD_FAILED = "Could not load leaderboard."

# Most referrals first; ties go to the earliest sign-up, then the smaller uid
LEADERBOARD_ORDER = [("referral_count", -1), ("created_at", 1), ("_id", 1)]


async def get_leaderboard(limit: int = LEADERBOARD_SIZE) -> LeaderboardResponse:
    limit = max(1, min(limit, LEADERBOARD_SIZE))
    projection = {"name": 1, "referral_count": 1, "created_at": 1}

    entries: List[LeaderboardEntry] = []
    try:
        cursor = users_collection.find({}, projection).sort(LEADERBOARD_ORDER).limit(limit)
        async for doc in cursor:
            try:
                user = UserModel.model_validate(doc)
            except ValidationError:
                logger.warning("Skipping malformed user %s on leaderboard", doc.get("_id"))
                continue
            entries.append(LeaderboardEntry(
                rank=len(entries) + 1,
                uid=user.id,
                name=user.name,
                referral_count=user.referral_count,
            ))
    except Exception:
        logger.exception("Loading leaderboard failed")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=LEADERBOARD_FAILED)

    return LeaderboardResponse(total=len(entries), items=entries)


async def reconcile_referral_counts() -> ReconcileResponse:
    """
    Rebuilds every cached users.referral_count from the referral records,
    which are the source of truth. Only drifted users are written.
    """
    checked = 0
    fixed: List[ReconcileFix] = []

    users = [u async for u in users_collection.find({}, {"referral_count": 1})]
    for user in users:
        checked += 1
        uid = user["_id"]
        stored = user.get("referral_count")
        before = int(stored or 0)
        after = await referrals_collection.count_documents({"referred_by_uid": uid})
        if before == after:
            continue
        # Only overwrite the value that was read; a None filter also matches a missing field
        result = await users_collection.update_one(
            {"_id": uid, "referral_count": stored},
            {"$set": {"referral_count": after, "updated_at": now_utc()}},
        )
        if result.matched_count != 1:
            logger.info("referral_count for %s changed during reconcile; skipped", uid)
            continue
        logger.warning("referral_count drift for %s: %d -> %d", uid, before, after)
        fixed.append(ReconcileFix(uid=str(uid), before=before, after=after))

    return ReconcileResponse(checked=checked, fixed=fixed)
