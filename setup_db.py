import sys

from sqlalchemy.exc import SQLAlchemyError

from database import DB_URL, engine, Base


def setup_db():
    print("Setting up database...")
    try:
        # create_all skips tables (and the transaction_type enum) that already exist
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        print(f"❌ Error setting up database at {DB_URL}: {exc}")
        return False
    print("✅ Database setup completed successfully!")
    print(f"Tables created: {', '.join(sorted(Base.metadata.tables))}")
    return True


if __name__ == "__main__":
    sys.exit(0 if setup_db() else 1)
