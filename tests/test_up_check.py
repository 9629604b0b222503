import unittest

from encounter_engine.modules.fight_pkg import crud
from encounter_engine.modules.fight_pkg.errors import NotFound
from encounter_engine.modules.fight_pkg.up_check import apply_up_check

from .factories import add_shot, make_character, make_fight, make_session_factory


class TestUpCheck(unittest.TestCase):
    def setUp(self):
        self.Session = make_session_factory()
        self.db = self.Session()
        self.fight = make_fight(self.db)
        self.hero = make_character(
            self.db, "Jack Chan", "PC", Wounds=38, status=["up_check_required", "cheesing_it"]
        )
        self.hero_shot = add_shot(self.db, self.fight, character=self.hero, shot=12, impairments=2)
        self.boss = make_character(self.db, "Big Bruiser", "Uber-Boss", status=["up_check_required"])
        self.boss_shot = add_shot(self.db, self.fight, character=self.boss, shot=10, count=55)

    def tearDown(self):
        self.db.close()

    def test_success_clears_tag_without_healing(self):
        apply_up_check(self.db, self.fight, self.hero.id, success=True, result=9)
        self.db.refresh(self.hero)
        self.db.refresh(self.hero_shot)
        self.assertEqual(self.hero.action_values["Wounds"], 38)
        self.assertEqual(self.hero.status, ["cheesing_it"])
        self.assertEqual(self.hero_shot.impairments, 2)

    def test_success_keeps_boss_count(self):
        apply_up_check(self.db, self.fight, self.boss.id, success=True)
        self.db.refresh(self.boss)
        self.db.refresh(self.boss_shot)
        self.assertEqual(self.boss_shot.count, 55)
        self.assertEqual(self.boss.status, [])

    def test_failure_takes_character_out_once(self):
        self.hero.status = ["up_check_required", "out_of_fight"]
        self.db.commit()

        apply_up_check(self.db, self.fight, self.hero.id, success=False, result=2)
        self.db.refresh(self.hero)
        self.assertEqual(self.hero.status, ["out_of_fight"])

        apply_up_check(self.db, self.fight, self.hero.id, success=False, result=1)
        self.db.refresh(self.hero)
        self.assertEqual(self.hero.status.count("out_of_fight"), 1)

    def test_event_is_recorded(self):
        apply_up_check(self.db, self.fight, self.hero.id, success=True, result=9)
        events = crud.list_fight_events(self.db, self.fight.id)
        self.assertEqual([e.event_type for e in events], ["up_check"])
        self.assertEqual(events[0].details, {"character_id": self.hero.id, "result": 9, "success": True})

    def test_unknown_character_is_fatal(self):
        with self.assertRaises(NotFound):
            apply_up_check(self.db, self.fight, "nobody", success=True)

    def test_character_outside_the_fight_is_fatal(self):
        bystander = make_character(self.db, "Bystander", "Ally")
        with self.assertRaises(NotFound):
            apply_up_check(self.db, self.fight, bystander.id, success=True)
        self.assertEqual(crud.list_fight_events(self.db, self.fight.id), [])


if __name__ == "__main__":
    unittest.main()
