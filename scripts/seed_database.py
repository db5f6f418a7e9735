# scripts/seed_database.py
"""Create the demo accounts when the users table is empty.

Usage: python scripts/seed_database.py
"""
import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy import func, select

# Add project root to sys.path to allow importing from medireminder
project_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_dir))

from medireminder.config.settings import settings as app_settings
from medireminder.core.auth import get_password_hash
from medireminder.db.base import Base, get_engine, get_session_factory
from medireminder.db.models import UserModel

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("seed_database")

COMMON_PASSWORD = "password"
DEMO_USERS = [
    ("Admin User", "admin@example.com"),
    ("Test User", "test@example.com"),
]


async def seed() -> int:
    engine = await get_engine(app_settings.database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        session_factory = await get_session_factory(engine)
        async with session_factory() as session:
            count = await session.scalar(select(func.count(UserModel.id)))
            if count:
                logger.info(f"Users table already has {count} rows, nothing to seed.")
                return 0

            password_hash = get_password_hash(COMMON_PASSWORD)
            session.add_all(
                UserModel(name=name, email=email, password_hash=password_hash)
                for name, email in DEMO_USERS
            )
            await session.commit()
            logger.info(f"Seeded {len(DEMO_USERS)} demo users (password: '{COMMON_PASSWORD}').")
            return len(DEMO_USERS)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
