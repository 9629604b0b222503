import asyncio

from encounter_engine.event_bus import ENCOUNTER_RENDERED, FIGHT_UPDATED, CAMPAIGN_UPDATED, EventBus
from encounter_engine.modules import broadcast

from .factories import add_shot, make_campaign, make_character, make_fight


def test_publish_reaches_subscribers():
    received = []

    async def handler(topic, payload):
        received.append((topic, payload))

    async def scenario():
        bus = EventBus()
        await bus.subscribe("fight.updated", handler)
        await bus.publish("fight.updated", {"fight_id": "f1"})
        await bus.publish("other.topic", {"ignored": True})
        await bus.drain()

    asyncio.run(scenario())
    assert received == [("fight.updated", {"fight_id": "f1"})]


def test_failing_handler_does_not_break_others():
    received = []

    async def broken(topic, payload):
        raise RuntimeError("boom")

    async def fine(topic, payload):
        received.append(payload)

    async def scenario():
        bus = EventBus()
        await bus.subscribe("t", broken)
        await bus.subscribe("t", fine)
        await bus.publish("t", 1)
        await bus.drain()

    asyncio.run(scenario())
    assert received == [1]


def test_unsubscribe():
    async def handler(topic, payload):
        pass

    async def scenario():
        bus = EventBus()
        await bus.subscribe("t", handler)
        await bus.unsubscribe("t", handler)
        await bus.unsubscribe("t", handler)
        return bus.subscriber_count("t")

    assert asyncio.run(scenario()) == 0


def test_fight_update_publishes_rendered_encounter(session_factory, db):
    fight = make_fight(db, "Rooftop")
    add_shot(db, fight, character=make_character(db, "Hero"), shot=14)
    fight_id = fight.id
    rendered = []

    async def capture(topic, payload):
        rendered.append(payload)

    async def scenario():
        bus = EventBus()
        await broadcast.register(bus, session_factory)
        await bus.subscribe(ENCOUNTER_RENDERED, capture)
        await bus.publish(FIGHT_UPDATED, {"fight_id": fight_id})
        await bus.drain()

    asyncio.run(scenario())
    assert len(rendered) == 1
    assert rendered[0]["fight_id"] == fight_id
    assert rendered[0]["encounter"]["shots"][0]["shot"] == 14
    assert rendered[0]["encounter"]["shots"][0]["characters"][0]["name"] == "Hero"


def test_campaign_update_renders_each_active_fight(session_factory, db):
    campaign = make_campaign(db, name="Campaign")
    live = make_fight(db, "Live", campaign_id=campaign.id)
    make_fight(db, "Over", campaign_id=campaign.id, active=False)
    live_id, campaign_id = live.id, campaign.id
    rendered = []

    async def capture(topic, payload):
        rendered.append(payload["fight_id"])

    async def scenario():
        bus = EventBus()
        await broadcast.register(bus, session_factory)
        await bus.subscribe(ENCOUNTER_RENDERED, capture)
        await bus.publish(CAMPAIGN_UPDATED, {"campaign_id": campaign_id})
        await bus.drain()

    asyncio.run(scenario())
    assert rendered == [live_id]
