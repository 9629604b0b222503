# encounter_engine/modules/fight_pkg/database.py
import os
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

# Default to an absolute sqlite path so behaviour doesn't depend on the cwd.
# .parents[0] = fight_pkg
# .parents[1] = modules
# .parents[2] = encounter_engine
# .parents[3] = project root (where encounter.db lives)
BASE_DIR = Path(__file__).resolve().parents[3]
DB_PATH = BASE_DIR / "encounter.db"

DATABASE_URL = os.environ.get("ENCOUNTER_DATABASE_URL", f"sqlite:///{DB_PATH}")


def build_engine(url: str):
    """
    Creates an engine for the given URL.

    sqlite needs check_same_thread disabled because FastAPI may hand the
    session to a different worker thread than the one that opened it.
    """
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = build_engine(DATABASE_URL)

# Every service call gets its own session and commits exactly once.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base is the class our database models inherit from.
Base = declarative_base()
