"""
Database initialization script

Run this script to create all database tables.
Usage: python init_db.py [--drop]
"""
import asyncio
from app.core.database import engine, Base
from app.models import (  # noqa: F401
    Client,
    Dependent,
    Document,
    IntakeLink,
    IntakeResponse,
    IntakeSubmission,
    Task,
    ActivityLog,
)


async def init_database():
    """Create all database tables"""
    print("Creating database tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    print("✅ Database tables created successfully!")
    print("\nTables created:")
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")


async def drop_database():
    """Drop all database tables"""
    print("Dropping all database tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    print("✅ Database tables dropped successfully!")


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1 and sys.argv[1] == "--drop":
        asyncio.run(drop_database())
    else:
        asyncio.run(init_database())
