"""Initialize the database schema for the product vector index.

Enables pgvector and creates the product_vectors table.
Run this before starting the API server with the pgvector backend.
"""

import argparse
import asyncio
import sys

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from catalog.config import settings
from catalog.models import Base


async def init_database(reset: bool = False):
    """Create all database tables."""
    print(f"Initializing database: {settings.db.url.split('@')[-1]}")

    # Plain engine: the pgvector codec cannot be registered before the extension exists
    engine = create_async_engine(settings.db.url, echo=settings.db.echo)
    try:
        async with engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            print("✓ Enabled pgvector extension")

            if reset:
                await conn.run_sync(Base.metadata.drop_all)
                print("✓ Dropped existing tables")

            await conn.run_sync(Base.metadata.create_all)
            print("✓ Created all tables")
    finally:
        await engine.dispose()

    print("\n✅ Database initialization complete!")
    print(f"Tables: {', '.join(Base.metadata.tables.keys())}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reset", action="store_true", help="Drop existing tables first")
    args = parser.parse_args()

    try:
        asyncio.run(init_database(reset=args.reset))
    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
