from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from feedwatch.config import get_settings
import logging

logger = logging.getLogger(__name__)
settings = get_settings()

db_url = settings.database_url
is_sqlite = db_url.startswith("sqlite")

engine = create_engine(
    db_url,
    connect_args={"check_same_thread": False} if is_sqlite else {},
    pool_pre_ping=not is_sqlite,
)

if is_sqlite:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create missing tables. Only used for SQLite development databases."""
    # Import models so they register on Base.metadata
    import feedwatch.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")


def dispose_engine():
    engine.dispose()
    logger.info("Database connections closed")
