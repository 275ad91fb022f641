from pydantic import BaseModel
from typing import List


class LeaderboardEntry(BaseModel):
    rank: int           # 1-based position in the result, never stored
    uid: str
    name: str
    referral_count: int


class LeaderboardResponse(BaseModel):
    total: int
    items: List[LeaderboardEntry]


class ReconcileFix(BaseModel):
    uid: str
    before: int
    after: int


class ReconcileResponse(BaseModel):
    checked: int
    fixed: List[ReconcileFix]
