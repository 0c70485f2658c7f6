# eventlink/api/routers/admin.py
"""
Admin utilities: init database.
"""
from fastapi import APIRouter

from eventlink.infrastructure.db.session import Base, engine
import eventlink.infrastructure.models  # noqa: F401  registers tables on Base

router = APIRouter()


@router.post("/init_db", summary="Create all tables in DB")
def init_db():
    """
    Ensure missing tables exist.

    WARNING:
        This does not drop or migrate existing tables.
    """
    Base.metadata.create_all(bind=engine)
    return {"status": "ok", "message": "Database initialized"}
