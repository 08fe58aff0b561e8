"""
Migration script to create all database tables

Run this script to create the tables (idempotent):
    python -m cinetrack.migrations.create_all_tables
"""

from cinetrack.database import engine, Base
# Import all models to ensure they're registered with Base
import cinetrack.models  # noqa: F401


def create_tables():
    """Create all database tables"""
    print("=" * 60)
    print(f"Creating tables on {engine.url.render_as_string(hide_password=True)}...")
    print("=" * 60)

    try:
        Base.metadata.create_all(bind=engine)

        print("\nTables ready:")
        for table_name in Base.metadata.tables:
            print(f"   - {table_name}")
        print("=" * 60)

    except Exception as e:
        print(f"\nError creating tables: {e}")
        raise


if __name__ == "__main__":
    create_tables()
