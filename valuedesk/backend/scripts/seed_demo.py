from __future__ import annotations

import asyncio

from marketdata.db import async_session, engine
from marketdata.models import Base
from marketdata.service_layer.demo_seed import seed_demo


async def _ensure_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    await _ensure_schema()

    async with async_session() as session:
        res = await seed_demo(session)
        await session.commit()

    print(f"Seeded demo configs: {res['created'] or 'nothing new'}")


if __name__ == "__main__":
    asyncio.run(main())
