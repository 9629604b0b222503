# encounter_engine/start_engine.py
"""
Main runner for the encounter engine.

Brings the schema up to date, registers the bus subscribers and serves
the API with uvicorn.
"""
from pathlib import Path
import logging
import os

from alembic import command as alembic_command
from alembic.config import Config as AlembicConfig

from encounter_engine.modules.fight_pkg import database as fight_db
from encounter_engine.modules.fight_pkg import models  # noqa: F401  registers the tables

logger = logging.getLogger("encounter.startup")

PKG_PATH = Path(__file__).resolve().parent / "modules" / "fight_pkg"


def run_migrations(database_url: str) -> None:
    cfg = AlembicConfig(str(PKG_PATH / "alembic.ini"))
    cfg.set_main_option("script_location", str(PKG_PATH / "alembic"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    logger.info("Running alembic upgrade head...")
    alembic_command.upgrade(cfg, "head")
    logger.info("Alembic upgrade complete.")


def init_database(mode: str = None) -> None:
    """
    Prepares the schema according to ENCOUNTER_DB_INIT.

    'auto': try Alembic, fall back to create_all()
    'migrate': Alembic only, fail on error
    'none': leave the database alone
    """
    mode = (mode or os.environ.get("ENCOUNTER_DB_INIT", "auto")).lower()
    logger.info(f"--- Initialising database (mode: {mode}) ---")

    if mode == "none":
        logger.info("Skipping database initialisation as per mode=none.")
        return

    try:
        run_migrations(fight_db.DATABASE_URL)
    except Exception as e:
        logger.exception(f"Alembic migration failed: {e}")
        if mode == "migrate":
            raise RuntimeError("Migration failed in 'migrate' mode.") from e
        logger.warning("Falling back to create_all()...")
        fight_db.Base.metadata.create_all(bind=fight_db.engine)
        logger.info("create_all() successful.")


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] [%(name)s] %(message)s')
    host = os.environ.get("ENCOUNTER_HOST", "127.0.0.1")
    port = int(os.environ.get("ENCOUNTER_PORT", "8000"))
    logger.info(f"--- Encounter engine listening on {host}:{port} ---")
    uvicorn.run("encounter_engine.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
