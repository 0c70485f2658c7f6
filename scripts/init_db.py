# scripts/init_db.py
"""
Script to initialize database tables. Run from project root:
    python scripts/init_db.py
"""
from eventlink.infrastructure.db.session import Base, engine
import eventlink.infrastructure.models  # noqa: F401


def init():
    Base.metadata.create_all(bind=engine)
    print("DB initialized")


if __name__ == "__main__":
    init()
