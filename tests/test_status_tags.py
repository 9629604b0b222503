import pytest

from encounter_engine.modules.fight_pkg.status_tags import add_tags, has_tag, remove_tags


def test_add_appends_only_missing_tags():
    assert add_tags(["cheesing_it"], ["up_check_required", "cheesing_it"]) == [
        "cheesing_it",
        "up_check_required",
    ]


def test_add_collapses_duplicates_in_new_tags():
    assert add_tags([], ["out_of_fight", "out_of_fight"]) == ["out_of_fight"]


def test_remove_drops_every_occurrence_and_keeps_the_rest():
    assert remove_tags(["a", "up_check_required", "b", "up_check_required"], ["up_check_required"]) == ["a", "b"]


def test_none_is_treated_as_empty():
    assert add_tags(None, None) == []
    assert remove_tags(None, ["x"]) == []
    assert not has_tag(None, "x")


def test_helpers_do_not_mutate_their_input():
    current = ["a"]
    add_tags(current, ["b"])
    remove_tags(current, ["a"])
    assert current == ["a"]


@pytest.mark.parametrize("op, tags", [
    (add_tags, ["up_check_required"]),
    (add_tags, ["cheesed_it", "out_of_fight"]),
    (remove_tags, ["cheesing_it"]),
    (remove_tags, ["missing"]),
])
def test_repeated_application_is_idempotent(op, tags):
    start = ["cheesing_it", "impaired"]
    once = op(start, tags)
    twice = op(once, tags)
    thrice = op(twice, tags)
    assert once == twice == thrice
    # Tags the operation didn't name survive.
    for tag in start:
        if tag not in tags:
            assert tag in thrice
