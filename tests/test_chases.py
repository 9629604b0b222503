import unittest

from encounter_engine.modules.fight_pkg import chases
from encounter_engine.modules.fight_pkg.errors import ConstraintViolation, InvalidAction, NotFound

from .factories import add_shot, make_character, make_fight, make_session_factory, make_vehicle


class TestChaseRelationships(unittest.TestCase):
    def setUp(self):
        self.Session = make_session_factory()
        self.db = self.Session()
        self.fight = make_fight(self.db, "Highway Chase")
        self.car = add_shot(self.db, self.fight, vehicle=make_vehicle(self.db, "Muscle Car"), shot=12)
        self.van = add_shot(self.db, self.fight, vehicle=make_vehicle(self.db, "Armored Van"), shot=9)
        self.bike = add_shot(self.db, self.fight, vehicle=make_vehicle(self.db, "Motorbike"), shot=7)

    def tearDown(self):
        self.db.close()

    def test_create_defaults_to_far(self):
        rel = chases.create_relationship(self.db, self.fight, self.car.id, self.van.id)
        self.assertEqual(rel.position, "far")
        self.assertTrue(rel.active)

    def test_duplicate_active_pair_is_rejected(self):
        chases.create_relationship(self.db, self.fight, self.car.id, self.van.id)
        with self.assertRaises(ConstraintViolation):
            chases.create_relationship(self.db, self.fight, self.car.id, self.van.id)

    def test_reversed_pair_is_the_same_pair(self):
        chases.create_relationship(self.db, self.fight, self.car.id, self.van.id)
        with self.assertRaises(ConstraintViolation):
            chases.create_relationship(self.db, self.fight, self.van.id, self.car.id)

    def test_pair_can_chase_again_after_deactivation(self):
        first = chases.create_relationship(self.db, self.fight, self.car.id, self.van.id)
        chases.deactivate_relationship(self.db, first)
        second = chases.create_relationship(self.db, self.fight, self.van.id, self.car.id, "near")
        self.assertNotEqual(first.id, second.id)
        history = chases.list_relationships(self.db, fight_id=self.fight.id, active=None)
        self.assertEqual(len(history), 2)

    def test_self_chase_is_rejected(self):
        with self.assertRaises(ConstraintViolation):
            chases.create_relationship(self.db, self.fight, self.car.id, self.car.id)

    def test_unknown_shot_is_not_found(self):
        with self.assertRaises(NotFound):
            chases.create_relationship(self.db, self.fight, self.car.id, "ghost")

    def test_character_shot_cannot_be_chased(self):
        runner = add_shot(self.db, self.fight, character=make_character(self.db, "Runner"), shot=5)
        with self.assertRaises(InvalidAction):
            chases.create_relationship(self.db, self.fight, self.car.id, runner.id)

    def test_bad_position_is_invalid(self):
        rel = chases.create_relationship(self.db, self.fight, self.car.id, self.van.id)
        with self.assertRaises(InvalidAction):
            chases.update_position(self.db, rel, "adjacent")
        rel = chases.update_position(self.db, rel, "near")
        self.assertEqual(rel.position, "near")

    def test_relationships_for_vehicle_only_active_and_tagged(self):
        chases.create_relationship(self.db, self.fight, self.car.id, self.van.id)
        old = chases.create_relationship(self.db, self.fight, self.bike.id, self.van.id)
        chases.deactivate_relationship(self.db, old)
        chases.create_relationship(self.db, self.fight, self.bike.id, self.car.id)

        views = chases.relationships_for_vehicle(self.db, self.fight, self.van.id)
        self.assertEqual(len(views), 1)
        self.assertFalse(views[0]["is_pursuer"])

        views = chases.relationships_for_vehicle(self.db, self.fight, self.car.id)
        self.assertEqual(sorted(v["is_pursuer"] for v in views), [False, True])

    def test_get_or_create_reuses_active_row(self):
        rel = chases.create_relationship(self.db, self.fight, self.car.id, self.van.id)
        again = chases.get_or_create_relationship(self.db, self.fight, self.van.id, self.car.id)
        self.assertEqual(rel.id, again.id)


if __name__ == "__main__":
    unittest.main()
