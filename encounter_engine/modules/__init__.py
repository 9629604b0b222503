"""
Container for the engine's modules.

register_all() wires every module that listens on the event bus.
"""
import logging

logger = logging.getLogger("encounter.modules")


async def register_all(bus, session_factory=None) -> None:
    """
    Subscribes all module handlers to the bus.

    Imported lazily so importing the package doesn't open the database.
    """
    from . import broadcast

    await broadcast.register(bus, session_factory)
    logger.info("All encounter modules registered")
