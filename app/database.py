import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError, PendingRollbackError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import sessionmaker, declarative_base
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import settings
from app.core.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

# Support both PostgreSQL and SQLite via centralized settings
DATABASE_URL = settings.database_url

if DATABASE_URL.startswith("postgresql"):
    engine = create_engine(
        DATABASE_URL,
        pool_timeout=settings.db_timeout_seconds,
        connect_args={
            "connect_timeout": settings.db_timeout_seconds,
            "options": f"-c statement_timeout={settings.db_timeout_seconds * 1000}",
        },
    )
else:
    # SQLite configuration for local development/testing
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False, "timeout": settings.db_timeout_seconds},
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Session Provider: Provides a database session per request.
    Transaction management is handled explicitly in the Service Layer.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_errors(db=None):
    """
    Translate driver-level connectivity failures into TransientStoreError.
    The session is rolled back first so a retry starts on a fresh connection
    instead of the invalidated transaction.
    """
    try:
        yield
    except (OperationalError, PendingRollbackError, PoolTimeoutError) as e:
        logger.warning(f"Store unavailable: {e}")
        if db is not None:
            db.rollback()
        raise TransientStoreError() from e


# Read-only aggregation steps only. Writes re-verify their guard instead of retrying.
retry_transient = retry(
    stop=stop_after_attempt(settings.store_retry_attempts),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception_type(TransientStoreError),
    reraise=True,
)


def init_db():
    """
    Registers all domain models and initializes the database schema.
    This should be called during the application startup lifespan.
    """
    import app.models  # noqa: F401  (registers every table on Base.metadata)
    Base.metadata.create_all(bind=engine)
