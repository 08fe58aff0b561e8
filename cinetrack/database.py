from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
import os
from dotenv import load_dotenv
import logging

load_dotenv()
logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cinetrack.db")

engine_options = {
    "pool_pre_ping": True,  # Test connections before using them
    "echo": os.getenv("DB_ECHO", "false").lower() == "true",  # Set to true for SQL debugging
}

if DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared across FastAPI's threadpool
    engine_options["connect_args"] = {"check_same_thread": False}
else:
    # QueuePool settings only apply to server databases
    engine_options.update(
        pool_size=int(os.getenv("DB_POOL_SIZE", 5)),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 10)),
        pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", 30)),
        pool_recycle=int(os.getenv("DB_POOL_RECYCLE", 3600)),
    )

engine = create_engine(DATABASE_URL, **engine_options)


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Log when a new connection is created"""
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# Dependency for FastAPI routes
def get_db():
    """
    Database session dependency for FastAPI.
    Automatically handles session creation and cleanup.

    Usage:
        @router.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db here
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Utility function for manual session management
def get_db_session():
    """
    Get a database session for manual management (scripts, scheduled jobs).
    Remember to close the session after use!
    """
    return SessionLocal()
