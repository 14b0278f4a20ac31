"""
Setup the database for the OpenElevate gamification service
"""

import argparse
import os
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# pylint: disable=wrong-import-position
# ruff: noqa: E402
from openelevate.config import settings

# Import models to register them with the declarative base
from openelevate.core.data import models  # noqa: F401
from openelevate.core.data.database import (
    create_tables,
    get_database_info,
    test_database_connection,
)
from openelevate.gamification.definitions import load_definitions_on_startup


def setup_postgresql() -> bool:
    """Create the PostgreSQL database if it does not exist"""

    print("Setting up PostgreSQL database...")

    try:
        # pylint: disable=import-outside-toplevel
        import psycopg2
        from psycopg2 import sql
        from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

        conn = psycopg2.connect(
            host=settings.POSTGRES_HOST,
            port=settings.POSTGRES_PORT,
            user=settings.POSTGRES_USER,
            password=settings.POSTGRES_PASSWORD,
            database="postgres",
        )
        conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)

        cursor = conn.cursor()
        cursor.execute(
            "SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s",
            (settings.POSTGRES_DB,),
        )
        if not cursor.fetchone():
            cursor.execute(
                sql.SQL("CREATE DATABASE {}").format(
                    sql.Identifier(settings.POSTGRES_DB)
                )
            )
            print(f"Database {settings.POSTGRES_DB} created successfully")
        else:
            print(f"Database {settings.POSTGRES_DB} already exists")

        cursor.close()
        conn.close()
        return True
    except ImportError:
        print("❌ psycopg2 is not installed")
        print("   Install: pip install -e .")
        return False
    except Exception as e:  # pylint: disable=broad-exception-caught
        print(f"❌ Error setting up PostgreSQL database: {e}")
        print("\n💡 Check POSTGRES_HOST / POSTGRES_USER and that the server is up")
        return False


def setup_sqlite() -> bool:
    """Make sure the SQLite file's directory exists"""

    print("📁 Setting up SQLite database...")

    try:
        db_path = settings.get_database_url().replace("sqlite:///", "")
        db_dir = os.path.dirname(db_path)

        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
            print(f"📁 Created directory: {db_dir}")

        print(f"📄 SQLite database will be created at: {db_path}")
        return True

    except OSError as e:
        print(f"❌ SQLite setup failed: {e}")
        return False


def main() -> None:
    """DB Setup Script"""
    parser = argparse.ArgumentParser(description="Setup OpenElevate Database")
    parser.add_argument(
        "--db-type",
        choices=["sqlite", "postgresql"],
        help="Database type to use (overrides DATABASE_TYPE env var)",
    )
    parser.add_argument(
        "--skip-badges",
        action="store_true",
        help="Do not load the default badge definitions",
    )
    args = parser.parse_args()

    if args.db_type:
        os.environ["DATABASE_TYPE"] = args.db_type
        settings.DATABASE_TYPE = args.db_type
        print(f"⚙️  Using database type from command line: {args.db_type}")

        # Recreate the engine with the new settings
        import importlib  # pylint: disable=import-outside-toplevel

        from openelevate.core.data import database  # pylint: disable=import-outside-toplevel

        importlib.reload(database)

    print("🚀 OpenElevate Database Setup")
    print(f"Database Type: {settings.DATABASE_TYPE}")
    print(f"Database URL: {settings.get_database_url()}")
    print()

    if settings.DATABASE_TYPE == "sqlite":
        if not setup_sqlite():
            sys.exit(1)
    elif settings.DATABASE_TYPE == "postgresql":
        if not setup_postgresql():
            sys.exit(1)
    else:
        print(f"Unsupported database type: {settings.DATABASE_TYPE}")
        sys.exit(1)

    print("Testing database connection...")
    if not test_database_connection():
        sys.exit(1)

    print("Creating database tables...")
    try:
        create_tables()
    except Exception as e:  # pylint: disable=broad-exception-caught
        print(f"❌ Error creating database tables: {e}")
        sys.exit(1)

    if not args.skip_badges:
        print("Loading badge definitions...")
        loaded = load_definitions_on_startup()
        print(f"🏅 Badges loaded: {', '.join(loaded) or 'none'}")

    print("Verifying database setup...")
    db_info = get_database_info()

    print("✅ Database setup complete")
    print(f"Database: {db_info['type']} ({db_info.get('version', 'Unknown version')})")
    print(f"Tables created: {len(db_info['tables'])}")
    print(f"Tables: {', '.join(db_info['tables'])}")


if __name__ == "__main__":
    main()
