from __future__ import annotations

import argparse
import asyncio

from recruitment.models import Base
from recruitment.db.session import SessionLocal, engine
from recruitment.services.status_catalog import list_statuses, seed_statuses


async def _run(create_schema: bool) -> None:
    if create_schema:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as session:
        created = await seed_statuses(session)
        await session.commit()
        statuses = await list_statuses(session)
    await engine.dispose()

    print(f"Status catalog seeded ({created} created, {len(statuses)} total).")
    for entry in statuses:
        print(f"  {entry.status_id:>3}  {entry.code:<16} {entry.stage}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Insert missing recruitment status catalog rows.")
    parser.add_argument("--create-schema", action="store_true", help="Create tables before seeding.")
    args = parser.parse_args()
    asyncio.run(_run(args.create_schema))


if __name__ == "__main__":
    main()
