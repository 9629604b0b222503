import logging
from fastapi import FastAPI

from encounter_engine.event_bus import get_event_bus
from encounter_engine.modules import fight as fight_module

# Initialize Logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] [%(name)s] %(message)s')
logger = logging.getLogger("encounter.api")

app = FastAPI(title="Combat Encounter Engine API", version="1.0.0")


# --- Startup Event ---
@app.on_event("startup")
async def startup_event():
    """Initialises the schema and wires the bus subscribers."""
    from encounter_engine.start_engine import init_database
    from encounter_engine.modules import register_all

    init_database()
    await register_all(get_event_bus())
    logger.info("Encounter engine started via FastAPI.")


app.include_router(fight_module.router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "encounter-engine"}
