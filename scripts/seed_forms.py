"""Seed the demo user and sample forms into the configured record store."""
import asyncio
import sys
sys.path.insert(0, ".")

from app.config import get_settings
from app.stores.factory import build_store
from app.stores.seed import DEMO_USER, seed_demo_data


async def seed():
    settings = get_settings()
    store = await build_store(settings.model_copy(update={"SEED_DEMO_DATA": False}))
    try:
        user = await seed_demo_data(store)
        print(f"  Demo user {DEMO_USER['username']!r} ready (id={user.id}).")
    finally:
        await store.close()
    print("Done seeding forms.")


if __name__ == "__main__":
    asyncio.run(seed())
