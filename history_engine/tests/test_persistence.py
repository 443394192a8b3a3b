from __future__ import annotations

import json

import pytest

from history_engine.commands import CompositeCommand
from history_engine.errors import InvalidState, UnknownCommandType
from history_engine.models import ExportedState
from history_engine.tests.helpers import Counter, IncrementCommand, RecordingCommand, make_engine


@pytest.fixture
def journal():
    return []


@pytest.fixture
def populated(journal):
    engine = make_engine(journal, max_stack_size=50, snapshot_interval=3)
    for name in "ABC":
        engine.execute(RecordingCommand(name, journal))
    engine.undo()
    return engine


def test_export_state_shape(populated):
    state = populated.export_state().model_dump(by_alias=True)

    assert state["undoStack"] == [
        {"kind": "record", "data": {"name": "A"}},
        {"kind": "record", "data": {"name": "B"}},
    ]
    assert state["redoStack"] == [{"kind": "record", "data": {"name": "C"}}]
    assert state["maxStackSize"] == 50
    assert state["snapshotInterval"] == 3
    assert state["compressThreshold"] == 100
    assert state["mergeWindow"] == 1000


def test_export_import_round_trip(populated, journal):
    restored = make_engine(journal)
    restored.import_state(populated.export_state())

    assert restored.status() == populated.status()
    assert [cmd.name for cmd in restored.undo_stack] == ["A", "B"]
    assert restored.config.max_stack_size == 50
    assert restored.config.snapshot_interval == 3


def test_import_accepts_camel_case_mapping(populated, journal):
    restored = make_engine(journal)
    calls = []
    restored.add_listener(calls.append)

    restored.import_state(populated.export_state().model_dump(by_alias=True))

    assert restored.can_undo and restored.can_redo
    assert calls[-1].redo_stack_size == 1


def test_import_falls_back_for_missing_or_falsy_config(journal):
    engine = make_engine(journal, max_stack_size=7, merge_window=250)
    engine.import_state({"undoStack": [], "redoStack": [], "maxStackSize": 0, "mergeWindow": None})

    assert engine.config.max_stack_size == 7
    assert engine.config.merge_window == 250
    assert engine.config.snapshot_interval == 10


def test_import_resets_transient_state(journal):
    engine = make_engine(journal, snapshot_interval=1)
    engine.execute(RecordingCommand("A", journal))
    engine.begin_transaction()
    assert len(engine.snapshots) == 1

    engine.import_state({"undoStack": [], "redoStack": []})

    assert engine.transactions.active is False
    assert len(engine.snapshots) == 0
    assert engine.busy is False


def test_import_resets_merge_timer():
    counter = Counter()
    engine = make_engine(counter=counter)
    engine.execute(IncrementCommand(counter))
    engine.import_state({"undoStack": [{"kind": "increment", "data": {"amount": 1}}], "redoStack": []})

    engine.execute(IncrementCommand(counter))

    assert len(engine.undo_stack) == 2


@pytest.mark.parametrize("bad", [None, "text", 42, ["list"]])
def test_import_rejects_non_objects(bad):
    engine = make_engine()
    with pytest.raises(InvalidState):
        engine.import_state(bad)


def test_import_rejects_missing_stacks():
    engine = make_engine()
    with pytest.raises(InvalidState):
        engine.import_state({"undoStack": []})


def test_failed_import_leaves_engine_untouched(populated):
    before = populated.status()
    undo_before = list(populated.undo_stack)
    payload = {
        "undoStack": [{"kind": "record", "data": {"name": "Z"}}],
        "redoStack": [{"kind": "unknown", "data": None}],
        "maxStackSize": 3,
    }

    with pytest.raises(UnknownCommandType):
        populated.import_state(payload)

    assert populated.status() == before
    assert populated.undo_stack == undo_before
    assert populated.config.max_stack_size == 50


def test_failing_factory_is_wrapped(journal):
    engine = make_engine(journal)

    def explode(data=None):
        raise KeyError("bad data")

    engine.register_command("explode", explode)
    with pytest.raises(InvalidState, match="Failed to import state"):
        engine.import_state({"undoStack": [{"kind": "explode"}], "redoStack": []})


def test_serialize_and_deserialize_state(populated, journal):
    text = populated.serialize_state()
    assert json.loads(text)["undoStack"][0] == {"kind": "record", "data": {"name": "A"}}

    restored = make_engine(journal)
    restored.deserialize_state(text)
    assert restored.status() == populated.status()


def test_deserialize_state_rejects_bad_json():
    engine = make_engine()
    with pytest.raises(InvalidState, match="Failed to deserialize state"):
        engine.deserialize_state("{not json")
    with pytest.raises(InvalidState):
        engine.deserialize_state("null")


def test_composite_entries_survive_round_trip(journal):
    engine = make_engine(journal)
    engine.begin_transaction()
    engine.execute(RecordingCommand("X", journal))
    engine.execute(RecordingCommand("Y", journal))
    engine.commit_transaction()

    restored = make_engine(journal)
    restored.import_state(ExportedState.model_validate_json(engine.serialize_state()))

    assert isinstance(restored.undo_stack[0], CompositeCommand)
    restored.undo()
    assert journal[-2:] == ["Y.undo", "X.undo"]
