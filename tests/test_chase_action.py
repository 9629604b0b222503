import unittest

from encounter_engine.modules.fight_pkg import chases, crud
from encounter_engine.modules.fight_pkg.chase_action import apply_chase_action, merge_action_values
from encounter_engine.modules.fight_pkg.errors import InvalidAction

from .factories import add_shot, make_character, make_fight, make_session_factory, make_vehicle


class TestChaseAction(unittest.TestCase):
    def setUp(self):
        self.Session = make_session_factory()
        self.db = self.Session()
        self.fight = make_fight(self.db, "Highway Chase")
        self.car = make_vehicle(self.db, "Muscle Car", **{"Chase Points": 5, "Condition Points": 2, "Handling": 8})
        self.van = make_vehicle(self.db, "Armored Van")
        self.car_shot = add_shot(self.db, self.fight, vehicle=self.car, shot=12)
        self.van_shot = add_shot(self.db, self.fight, vehicle=self.van, shot=9)
        self.driver = make_character(self.db, "Wheelman", "PC")
        self.driver_shot = add_shot(self.db, self.fight, character=self.driver, shot=12)

    def tearDown(self):
        self.db.close()

    def test_merge_adds_chase_and_condition_points(self):
        merged = merge_action_values(
            {"Chase Points": 5, "Condition Points": "2", "Handling": 8},
            {"Chase Points": 3, "Condition Points": 4, "Handling": 9},
        )
        self.assertEqual(merged, {"Chase Points": 8, "Condition Points": 6, "Handling": 9})

    def test_chase_action_updates_vehicle_relationship_and_shots(self):
        apply_chase_action(self.db, self.fight, [{
            "vehicle_id": self.car.id,
            "shot_id": self.car_shot.id,
            "action_values": {"Chase Points": 4},
            "position": "near",
            "target_shot_id": self.van_shot.id,
            "character_id": self.driver.id,
            "shot_cost": 3,
        }])
        self.db.refresh(self.car)
        self.db.refresh(self.driver_shot)
        self.assertEqual(self.car.action_values["Chase Points"], 9)
        self.assertEqual(self.car.action_values["Handling"], 8)
        self.assertEqual(self.driver_shot.shot, 9)

        rel = chases.get_active_relationship(self.db, self.fight, self.car_shot.id, self.van_shot.id)
        self.assertEqual(rel.pursuer_id, self.car_shot.id)
        self.assertEqual(rel.position, "near")

        events = crud.list_fight_events(self.db, self.fight.id)
        self.assertEqual([e.event_type for e in events], ["chase_action"])

    def test_evader_role_flips_the_pair_and_reuses_existing(self):
        existing = chases.create_relationship(self.db, self.fight, self.van_shot.id, self.car_shot.id)
        apply_chase_action(self.db, self.fight, [{
            "id": self.car.id,
            "position": "near",
            "target_shot_id": self.van_shot.id,
            "role": "evader",
        }])
        rels = chases.list_relationships(self.db, fight_id=self.fight.id)
        self.assertEqual(len(rels), 1)
        self.assertEqual(rels[0].id, existing.id)
        self.assertEqual(rels[0].position, "near")

    def test_unknown_vehicle_is_skipped(self):
        apply_chase_action(self.db, self.fight, [
            {"vehicle_id": "ghost", "action_values": {"Chase Points": 1}},
            {"vehicle_id": self.car.id, "action_values": {"Condition Points": 1}},
        ])
        self.db.refresh(self.car)
        self.assertEqual(self.car.action_values["Condition Points"], 3)

    def test_bad_position_rolls_back_everything(self):
        with self.assertRaises(InvalidAction):
            apply_chase_action(self.db, self.fight, [
                {"vehicle_id": self.car.id, "action_values": {"Chase Points": 10}},
                {"vehicle_id": self.car.id, "position": "sideways", "target_shot_id": self.van_shot.id},
            ])
        self.db.refresh(self.car)
        self.assertEqual(self.car.action_values["Chase Points"], 5)
        self.assertEqual(crud.list_fight_events(self.db, self.fight.id), [])


if __name__ == "__main__":
    unittest.main()
