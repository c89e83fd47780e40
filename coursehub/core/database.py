import logging

from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from coursehub.core.config import settings

logger = logging.getLogger(__name__)

# -----------------------
# Database URL
# -----------------------
DATABASE_URL = settings.sqlalchemy_url
_url = make_url(DATABASE_URL)

# Hide password in logs
logger.info(f"Using database: {_url.render_as_string(hide_password=True)}")

# -----------------------
# SQLAlchemy engine
# -----------------------
if _url.get_backend_name() == "sqlite":
    # A single shared connection keeps in-memory databases alive across sessions
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        echo=settings.debug and not settings.production,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
        connect_args={"connect_timeout": 5},
    )


# -----------------------
# Per-connection setup
# -----------------------
@event.listens_for(engine, "connect")
def configure_connection(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    if engine.dialect.name == "sqlite":
        cursor.execute("PRAGMA foreign_keys=ON")
    else:
        cursor.execute(f"SET timezone='{settings.timezone}'")
    cursor.close()


# -----------------------
# Session and Base
# -----------------------
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def upsert(db: Session, table):
    """
    Return a dialect INSERT supporting ``on_conflict_do_nothing`` /
    ``on_conflict_do_update`` for the session's backend.
    """
    if db.get_bind().dialect.name == "sqlite":
        return sqlite.insert(table)
    return postgresql.insert(table)


# -----------------------
# Dependency for FastAPI
# -----------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Database error occurred: {str(e)}")
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
