# app/scripts/reconcile_referral_counts.py
import asyncio
from app.core.logging_config import setup_logging
from app.controllers.leaderboard_controller import reconcile_referral_counts

async def main():
    result = await reconcile_referral_counts()
    print(f"Checked {result.checked} users, fixed {len(result.fixed)}")
    for fix in result.fixed:
        print(f"  {fix.uid}: {fix.before} -> {fix.after}")

if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
