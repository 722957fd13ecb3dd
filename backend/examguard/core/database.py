import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

from .config import settings

logger = logging.getLogger(__name__)


def _build_engine(url: str):
    if url.startswith("sqlite"):
        # one shared connection so an in-memory database survives across sessions
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=20,
        max_overflow=40,
        pool_pre_ping=True,
        pool_recycle=1800,
        pool_timeout=20,
        echo=False,
        connect_args={
            "connect_timeout": 10,
            "application_name": "examguard_api"
        }
    )


engine = _build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_db_and_tables():
    # models must be imported so their tables are registered on Base.metadata
    from .. import models  # noqa: F401

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Database tables creation error (may be normal if tables exist): {e}")
