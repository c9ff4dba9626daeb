import asyncio
from datetime import datetime, timedelta, timezone

import campus_events.database as database
from sqlalchemy import func, select

from campus_events.models import Event


async def main() -> None:
    """Create the tables and add a demo event when none exist yet."""

    await database.init_models()
    async with database.SessionLocal() as session:
        count = (await session.execute(select(func.count(Event.id)))).scalar_one()
        if count:
            print(f"Database already has {count} event(s); nothing seeded.")
            return

        starts = (datetime.now(timezone.utc) + timedelta(days=14)).replace(
            hour=17, minute=0, second=0, microsecond=0
        )
        session.add(
            Event(
                title="Welcome Week Mixer",
                description="Meet student clubs, grab snacks and sign up for the term.",
                date=starts,
                location="Student Union, Main Hall",
                image_url="https://placehold.co/1200x630?text=Welcome+Week",
            )
        )
        await session.commit()
    print("Seeded one demo event.")


if __name__ == "__main__":
    asyncio.run(main())
