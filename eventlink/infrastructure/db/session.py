# eventlink/infrastructure/db/session.py
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from eventlink.config.settings import settings
from eventlink.domain.errors import TransientStoreError

Base = declarative_base()


def make_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


engine = make_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    One independently retryable unit: commit on success, rollback on any error.
    Driver and pool failures surface as TransientStoreError.
    """
    try:
        yield db
        db.commit()
    except (DBAPIError, PoolTimeoutError) as e:
        db.rollback()
        raise TransientStoreError(str(e)) from e
    except Exception:
        db.rollback()
        raise
