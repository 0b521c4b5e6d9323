"""
Database setup for OrderPick.
Uses SQLAlchemy with SQLite for line-item purchase progress and the completion log.
"""
import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Default DB path: project root / data directory sibling
BASE_DIR = Path(__file__).resolve().parent.parent.parent
DB_PATH = os.environ.get("SQLITE_DB_PATH", str(BASE_DIR / "data" / "orderpick.db"))
DATABASE_URL = f"sqlite:///{DB_PATH}"
# Seconds a writer waits on a locked database before failing
BUSY_TIMEOUT = float(os.environ.get("SQLITE_BUSY_TIMEOUT", "5"))

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": BUSY_TIMEOUT},
    echo=os.environ.get("SQL_ECHO", "").lower() == "true",
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db():
    """Create the data directory and all tables. Call at app startup."""
    from orderpick.models import PurchaseStatus, CompletionLog  # noqa: F401
    Path(DB_PATH).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)
