from datetime import date

import pytest

from app.utils.sanitize import (
    MAX_INSTRUCTIONS_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_WORKOUT_NAME_LENGTH,
    default_workout_name,
    sanitize_exercise_notes,
    sanitize_set_details,
    sanitize_special_instructions,
    sanitize_workout_name,
)

SANITIZERS = [sanitize_special_instructions, sanitize_workout_name, sanitize_exercise_notes]

SAMPLES = [
    "",
    "   ",
    "<b>hi</b> there",
    "<script>alert('x')</script>Leg day",
    "please DROP table users; select * from workouts",
    "DR#OP everything",
    "Wow!!!!! so ,,,, much ???",
    "!!DROP!!",
    "Knees @ 90° #form <i>always</i>",
    "x" * 134 + " SELECTION",
    "a" * 2000,
    "Tabs\tand\nnewlines (ok)",
    "émoji 💪 and ünïcode",
]


def test_strips_tags():
    result = sanitize_special_instructions("<b>hi</b> there")
    assert result == "hi there"
    assert "<" not in result and ">" not in result


def test_strips_script_blocks_with_content():
    assert sanitize_special_instructions("<script>alert('x')</script>Leg day") == "Leg day"


def test_strips_sql_keywords_case_insensitively():
    result = sanitize_special_instructions("please DROP table and delete rows")
    assert "DROP" not in result
    assert "delete" not in result
    assert "table" in result


def test_keeps_words_that_only_contain_keywords():
    assert sanitize_special_instructions("dropsets and selection") == "dropsets and selection"


def test_keyword_hidden_by_disallowed_character_is_removed():
    assert sanitize_special_instructions("DR#OP") is None


def test_collapses_repeated_punctuation():
    assert sanitize_special_instructions("Go!!!!! now") == "Go!! now"


def test_drops_characters_outside_whitelist():
    result = sanitize_special_instructions("Knees @ 90° #form")
    assert not set("@°#") & set(result)
    assert result.startswith("Knees")


def test_notes_keep_basic_punctuation():
    text = 'Keep elbows tucked; slow (3s) eccentric, "squeeze" at top: done!'
    assert sanitize_exercise_notes(text) == text


def test_workout_name_drops_punctuation():
    assert sanitize_workout_name("Push Day! (heavy)") == "Push Day heavy"


@pytest.mark.parametrize("value", [None, "", "   ", "<b></b>", 42])
def test_empty_input_falls_back(value):
    assert sanitize_special_instructions(value) is None
    assert sanitize_exercise_notes(value) is None
    assert sanitize_workout_name(value) == default_workout_name()


def test_default_workout_name_format():
    assert default_workout_name(date(2024, 3, 5)) == "Workout Mar 5 2024"


@pytest.mark.parametrize("sanitizer,limit", [
    (sanitize_special_instructions, MAX_INSTRUCTIONS_LENGTH),
    (sanitize_workout_name, MAX_WORKOUT_NAME_LENGTH),
    (sanitize_exercise_notes, MAX_NOTES_LENGTH),
])
def test_length_bound(sanitizer, limit):
    for sample in SAMPLES + ["word " * 400]:
        result = sanitizer(sample)
        assert result is None or len(result) <= limit


@pytest.mark.parametrize("sanitizer", SANITIZERS)
@pytest.mark.parametrize("sample", SAMPLES)
def test_idempotent(sanitizer, sample):
    once = sanitizer(sample)
    assert sanitizer(once) == once


def test_set_details_keep_usable_entries_in_order():
    details = sanitize_set_details([
        {"set_number": 3, "reps": "8", "weight_kg": 60.4567, "rest_seconds": 90.9},
        {"set_number": 1.7, "reps": 10, "weight_kg": "", "notes": "  <i>easy</i> warm-up  "},
        {"set_number": 2, "reps": None},
    ])
    assert [d.set_number for d in details] == [1, 2, 3]
    assert details[0].reps == 10
    assert details[0].weight_kg is None
    assert details[0].notes == "easy warm-up"
    assert details[1].reps is None
    assert details[2].reps == 8
    assert details[2].weight_kg == 60.46
    assert details[2].rest_seconds == 90


@pytest.mark.parametrize("entry", [
    None,
    "set 1",
    {},
    {"set_number": 0, "reps": 5},
    {"set_number": "first", "reps": 5},
    {"set_number": 1, "reps": -1},
    {"set_number": 1, "weight_kg": "heavy"},
    {"set_number": 1, "rest_seconds": float("inf")},
    {"set_number": True, "reps": 5},
])
def test_set_details_skip_invalid_entries(entry):
    assert sanitize_set_details([entry, {"set_number": 1, "reps": 5}]) == sanitize_set_details(
        [{"set_number": 1, "reps": 5}]
    )


@pytest.mark.parametrize("details", [None, "[]", {"set_number": 1}, []])
def test_set_details_need_a_list(details):
    assert sanitize_set_details(details) == []


def test_set_detail_notes_are_bounded():
    [detail] = sanitize_set_details([{"set_number": 1, "notes": "n" * 2000}])
    assert len(detail.notes) == MAX_NOTES_LENGTH
