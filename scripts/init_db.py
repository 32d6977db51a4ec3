"""Script to initialize the database without Alembic (local development)."""

import asyncio

from sqlalchemy import text

from clinic_queue.database import engine
from clinic_queue.models import combined_metadata


async def init_db() -> None:
    """Create every model table."""
    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(combined_metadata().create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
