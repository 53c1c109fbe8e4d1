from .config import settings
from .database import engine, SessionLocal, get_db, Base, unit_of_work, advisory_lock

__all__ = ["settings", "engine", "SessionLocal", "get_db", "Base", "unit_of_work", "advisory_lock"]
