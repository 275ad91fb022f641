# app/db/mongo.py
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
import os

load_dotenv()

MONGO_URL = os.getenv("MONGODB_URL")
if not MONGO_URL:
    raise RuntimeError("MONGODB_URL env var is not set")

MONGO_DB_NAME = os.getenv("MONGODB_DB", "robosoccer_referral")

client = AsyncIOMotorClient(MONGO_URL)
db = client[MONGO_DB_NAME]

# Collections
users_collection = db["users"]          # _id = identity provider uid (Google "sub")
referrals_collection = db["referrals"]  # auto ObjectId keys
sessions_collection = db["sessions"]    # _id = token jti, removed on sign-out or at 'expires'


# Call once at startup to ensure indexes exist.
async def init_db_indexes() -> None:
    # Users: leaderboard ordering (count desc, earliest sign-up first on ties)
    await users_collection.create_index(
        [("referral_count", -1), ("created_at", 1)],
        name="leaderboard_order",
    )
    await users_collection.create_index("email")

    # Referrals: per-owner history and status tallies
    await referrals_collection.create_index(
        [("referred_by_uid", 1), ("timestamp", -1)],
        name="owner_timestamp_desc",
    )
    await referrals_collection.create_index("status")

    # Sessions: lookup by user, auto-expire at 'expires'
    await sessions_collection.create_index("user_id")
    await sessions_collection.create_index("expires", expireAfterSeconds=0)
