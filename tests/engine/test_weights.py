from __future__ import annotations

import json

import pytest

from exam_trainer.engine.errors import PersistenceError
from exam_trainer.engine.weights import (
    DEFAULT_WEIGHT,
    MAX_WEIGHT,
    MIN_WEIGHT,
    WeightStore,
    next_weight,
    weight_of,
)


@pytest.fixture
def store(tmp_path) -> WeightStore:
    return WeightStore(tmp_path / "History" / "QuestionStats.json")


def test_unseen_identity_gets_maximum_weight() -> None:
    assert weight_of({}, "missing") == MAX_WEIGHT == 20


def test_weight_of_clamps_out_of_range_values() -> None:
    assert weight_of({"low": -4, "high": 99}, "low") == MIN_WEIGHT
    assert weight_of({"low": -4, "high": 99}, "high") == MAX_WEIGHT


def test_load_missing_table_returns_empty(store: WeightStore) -> None:
    assert store.load() == {}


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", '"text"'])
def test_load_corrupt_table_returns_empty(store: WeightStore, content) -> None:
    store.path.parent.mkdir(parents=True)
    store.path.write_text(content, encoding="utf-8")

    assert store.load() == {}


def test_load_drops_non_integer_entries(store: WeightStore) -> None:
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps({"a": 3, "b": "x", "c": True, "d": 1.5}), encoding="utf-8"
    )

    assert store.load() == {"a": 3}


def test_incorrect_then_correct_outcome(store: WeightStore) -> None:
    store.apply_outcomes([("q", False)])
    assert store.load()["q"] == 15

    store.apply_outcomes([("q", True)])
    assert store.load()["q"] == 14


def test_unseen_outcome_starts_from_default(store: WeightStore) -> None:
    table = store.apply_outcomes([("fresh", True)])

    assert table["fresh"] == DEFAULT_WEIGHT - 1


def test_repeated_incorrect_outcomes_stay_at_ceiling() -> None:
    weight = DEFAULT_WEIGHT
    for _ in range(10):
        weight = next_weight(weight, False)
    assert weight == MAX_WEIGHT
    assert next_weight(weight, False) == MAX_WEIGHT


def test_repeated_correct_outcomes_stay_at_floor() -> None:
    weight = DEFAULT_WEIGHT
    for _ in range(30):
        weight = next_weight(weight, True)
    assert weight == MIN_WEIGHT
    assert next_weight(weight, True) == MIN_WEIGHT


def test_duplicate_outcomes_apply_cumulatively(store: WeightStore) -> None:
    table = store.apply_outcomes([("q", False), ("q", True), ("q", True)])

    assert table["q"] == 13


def test_apply_outcomes_keeps_other_entries(store: WeightStore) -> None:
    store.save({"kept": 7})

    store.apply_outcomes([("new", False)])

    assert store.load() == {"kept": 7, "new": 15}


def test_round_trip_preserves_every_weight(store: WeightStore) -> None:
    table = {f"id-{value}": value for value in range(MIN_WEIGHT, MAX_WEIGHT + 1)}

    store.save(table)
    reloaded = store.load()

    for identity, value in table.items():
        assert weight_of(reloaded, identity) == value


def test_apply_outcomes_releases_lock(store: WeightStore) -> None:
    store.apply_outcomes([("q", True)])

    assert not store.path.with_name(store.path.name + ".lock").exists()


def test_save_failure_raises_persistence_error(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    store = WeightStore(blocker / "QuestionStats.json")

    with pytest.raises(PersistenceError):
        store.save({"q": 3})


def test_lock_timeout_raises_persistence_error(tmp_path) -> None:
    store = WeightStore(tmp_path / "QuestionStats.json", lock_timeout=0.1)
    (tmp_path / "QuestionStats.json.lock").write_text("", encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.apply_outcomes([("q", True)])


def test_updating_discards_changes_when_block_fails(store) -> None:
    store.save({"q": 4})

    with pytest.raises(ValueError):
        with store.updating() as table:
            table["q"] = 19
            raise ValueError("boom")

    assert store.load() == {"q": 4}
    assert not store.lock_path.exists()
