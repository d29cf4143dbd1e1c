#!/usr/bin/env python3
"""
Seed script to load the plan catalog shown on the plan selection page.

The catalog is a JSON list of plans:

    [
      {"id": "individual-monthly", "name": "Individual", "price_monthly": 99,
       "plan_type": "individual", "features": ["..."],
       "stripe_price_id": "price_..."},
      ...
    ]

Existing plans with the same id are updated in place. Plans missing from the
file are left untouched; set ``"is_active": false`` to retire one.

Run: python scripts/seed_plans.py plans.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import TypeAdapter

from app.domain.subscription import SubscriptionPlan
from app.infrastructure.db.database import get_db_manager
from app.infrastructure.db.repositories import PlanRepository


logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def load_catalog(path: Path) -> list[SubscriptionPlan]:
    with path.open(encoding="utf-8") as f:
        return TypeAdapter(list[SubscriptionPlan]).validate_python(json.load(f))


async def seed_plans(plans: list[SubscriptionPlan]) -> None:
    db = get_db_manager()
    try:
        async with db.session_factory() as session:
            repo = PlanRepository(session)
            for plan in plans:
                await repo.upsert(plan)
                logger.info(f"  ✓ {plan.id} ({plan.plan_type.value}, {plan.price_monthly}/month)")
            await session.commit()
    finally:
        await db.close()

    logger.info(f"Seeded {len(plans)} plans")


def main() -> None:
    parser = argparse.ArgumentParser(description="Load the subscription plan catalog")
    parser.add_argument("catalog", type=Path, help="JSON file with the plan list")
    args = parser.parse_args()

    asyncio.run(seed_plans(load_catalog(args.catalog)))


if __name__ == "__main__":
    main()
