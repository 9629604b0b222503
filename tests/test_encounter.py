import unittest

from encounter_engine.modules.fight_pkg import chases, crud, effects, encounter, fights

from .factories import add_shot, make_character, make_fight, make_session_factory, make_vehicle


class TestEncounterProjection(unittest.TestCase):
    def setUp(self):
        self.Session = make_session_factory()
        self.db = self.Session()
        self.fight = make_fight(self.db, "Dockside Shootout")

    def tearDown(self):
        self.db.close()

    def _project(self):
        self.db.expire_all()
        return encounter.project(crud.require_fight(self.db, self.fight.id))

    def test_groups_sort_descending_with_hidden_last(self):
        add_shot(self.db, self.fight, character=make_character(self.db, "A"), shot=10)
        add_shot(self.db, self.fight, character=make_character(self.db, "B"), shot=None)
        add_shot(self.db, self.fight, character=make_character(self.db, "C"), shot=5)

        view = self._project()
        self.assertEqual([group.shot for group in view.shots], [10, 5, None])

    def test_characters_sort_by_type_then_speed_then_name(self):
        for name, char_type, speed in [
            ("mook squad", "Mook", 9),
            ("zed", "PC", 7),
            ("Amy", "PC", 7),
            ("Big Boss", "Boss", 5),
            ("Speedy", "PC", 9),
            ("Nobody", None, 20),
            ("Oddball", "Sidekick", 20),
        ]:
            add_shot(self.db, self.fight, character=make_character(self.db, name, char_type, Speed=speed), shot=12)

        names = [c.name for c in self._project().shots[0].characters]
        self.assertEqual(names, ["Big Boss", "Speedy", "Amy", "zed", "Nobody", "mook squad", "Oddball"])

    def test_pc_impairments_come_from_character_others_from_shot(self):
        pc = make_character(self.db, "Hurt Hero", "PC", Speed=8, impairments=3)
        ally = make_character(self.db, "Hurt Ally", "Ally", Speed=8)
        add_shot(self.db, self.fight, character=pc, shot=12, impairments=0)
        add_shot(self.db, self.fight, character=ally, shot=12, impairments=2)

        entries = {c.name: c for c in self._project().shots[0].characters}
        self.assertEqual(entries["Hurt Hero"].impairments, 3)
        self.assertEqual(entries["Hurt Ally"].impairments, 2)

    def test_slower_pc_with_impairments_sorts_after(self):
        add_shot(self.db, self.fight, character=make_character(self.db, "Alpha", "PC", Speed=8, impairments=2), shot=12)
        add_shot(self.db, self.fight, character=make_character(self.db, "Bravo", "PC", Speed=7), shot=12)
        names = [c.name for c in self._project().shots[0].characters]
        self.assertEqual(names, ["Bravo", "Alpha"])

    def test_driven_vehicle_is_nested_under_driver(self):
        car = make_vehicle(self.db, "Getaway Car", **{"Chase Points": 4})
        car_shot = add_shot(self.db, self.fight, vehicle=car, shot=12)
        driver = make_character(self.db, "Wheelman", "PC")
        driver_shot = add_shot(self.db, self.fight, character=driver, shot=12)
        bike_shot = add_shot(self.db, self.fight, vehicle=make_vehicle(self.db, "Bike"), shot=12)
        fights.assign_driver(self.db, driver_shot, car_shot)

        group = self._project().shots[0]
        self.assertEqual([v.name for v in group.vehicles], ["Bike"])
        wheelman = group.characters[0]
        self.assertEqual(wheelman.driving_id, car_shot.id)
        self.assertEqual(wheelman.driving.name, "Getaway Car")
        self.assertEqual(wheelman.driving.driver.name, "Wheelman")
        self.assertEqual(wheelman.driving.driver.shot_id, driver_shot.id)
        self.assertIsNone(next(v for v in group.vehicles if v.shot_id == bike_shot.id).driver)

    def test_vehicle_entries_carry_active_chases(self):
        car_shot = add_shot(self.db, self.fight, vehicle=make_vehicle(self.db, "Car"), shot=12)
        van_shot = add_shot(self.db, self.fight, vehicle=make_vehicle(self.db, "Van"), shot=12)
        bike_shot = add_shot(self.db, self.fight, vehicle=make_vehicle(self.db, "Bike"), shot=12)
        chases.create_relationship(self.db, self.fight, car_shot.id, van_shot.id, "near")
        old = chases.create_relationship(self.db, self.fight, bike_shot.id, van_shot.id)
        chases.deactivate_relationship(self.db, old)

        vehicles = {v.name: v for v in self._project().shots[0].vehicles}
        self.assertEqual(len(vehicles["Car"].chase_relationships), 1)
        self.assertTrue(vehicles["Car"].chase_relationships[0].is_pursuer)
        self.assertFalse(vehicles["Van"].chase_relationships[0].is_pursuer)
        self.assertEqual(vehicles["Bike"].chase_relationships, [])

    def test_effects_appear_on_entries_and_top_level_maps(self):
        hero = make_character(self.db, "Hero", "PC")
        hero_shot = add_shot(self.db, self.fight, character=hero, shot=10)
        effects.create_character_effect(
            self.db, hero_shot, "Blinded", severity="error", action_value="Guns", change="-2"
        )

        view = self._project()
        entry = view.shots[0].characters[0]
        self.assertEqual([e.name for e in entry.effects], ["Blinded"])
        self.assertEqual([e.change for e in view.character_effects[hero.id]], ["-2"])
        self.assertEqual(view.vehicle_effects, {})
        self.assertEqual(view.character_ids, [hero.id])

    def test_effects_past_their_end_are_not_shown(self):
        self.fight.sequence = 2
        self.fight.current_shot = 5
        self.db.commit()
        hero = make_character(self.db, "Hero", "PC")
        hero_shot = add_shot(self.db, self.fight, character=hero, shot=10)
        effects.create_character_effect(self.db, hero_shot, "Dazed", end_sequence=1, end_shot=3)
        effects.create_character_effect(self.db, hero_shot, "Winded", end_sequence=2, end_shot=6)
        effects.create_character_effect(self.db, hero_shot, "Blessed", end_sequence=3)

        view = self._project()
        self.assertEqual([e.name for e in view.shots[0].characters[0].effects], ["Blessed"])
        self.assertEqual([e.name for e in view.character_effects[hero.id]], ["Blessed"])
        # Still stored until the shot counter next moves.
        self.assertEqual(len(effects.list_effects_for_fight(self.db, self.fight.id)), 3)

    def test_projection_does_not_write(self):
        add_shot(self.db, self.fight, character=make_character(self.db, "A"), shot=10)
        fight = crud.require_fight(self.db, self.fight.id)
        encounter.project(fight)
        self.assertFalse(self.db.dirty)
        self.assertFalse(self.db.new)


if __name__ == "__main__":
    unittest.main()
