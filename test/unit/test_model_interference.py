"""Unit tests ensuring history tracking leaves the tracked model's behavior intact."""

from __future__ import annotations

from contextlib import closing

import pytest
from sqlalchemy import Column, Integer, Text, event
from sqlalchemy.orm import declarative_base, validates

from temporal_history import attach_history, history_model_for


def _build_tracked_note(calls: list[str]):
    base = declarative_base()

    class Note(base):
        __tablename__ = "notes"

        id = Column(Integer, primary_key=True)
        body = Column(Text)

        def shout(self) -> str:
            return (self.body or "").upper()

        @validates("body")
        def _track_body(self, key: str, value: str) -> str:
            calls.append(f"validate:{value}")
            return value

    @event.listens_for(Note, "before_insert")
    def _before_insert(mapper, connection, target) -> None:
        calls.append("before_insert")

    @event.listens_for(Note, "before_update")
    def _before_update(mapper, connection, target) -> None:
        calls.append("before_update")

    attach_history(Note, base)
    return base, Note


def test_instance_methods_are_preserved() -> None:
    """Attaching history adds attributes but replaces none of the model's own."""
    base, note = _build_tracked_note([])

    assert note(body="hi").shout() == "HI"
    assert history_model_for(note).__name__ == "NoteHistory"
    assert not hasattr(history_model_for(note), "shout")
    assert base.metadata.tables["notes_history"] is history_model_for(note).__table__


def test_existing_listeners_fire_once(session_factory_for, count_rows) -> None:
    """Listeners registered before attaching still run exactly once per event."""
    calls: list[str] = []
    base, note = _build_tracked_note(calls)
    session_factory = session_factory_for(base)

    with closing(session_factory()) as session:
        record = note(body="first")
        session.add(record)
        session.commit()

        record.body = "second"
        session.commit()

        assert calls == [
            "validate:first",
            "before_insert",
            "validate:second",
            "before_update",
        ]
        assert count_rows(session, history_model_for(note)) == 1


def test_validation_failure_blocks_archive(session_factory_for, count_rows) -> None:
    """A validator rejecting a value stops the change before anything is archived."""
    base = declarative_base()

    class Tag(base):
        __tablename__ = "tags"

        id = Column(Integer, primary_key=True)
        label = Column(Text)

        @validates("label")
        def _check_label(self, key: str, value: str) -> str:
            if not value:
                raise ValueError("label required")
            return value

    attach_history(Tag, base)
    session_factory = session_factory_for(base)

    with closing(session_factory()) as session:
        tag = Tag(label="ok")
        session.add(tag)
        session.commit()

        with pytest.raises(ValueError):
            tag.label = ""
        session.commit()

        assert count_rows(session, history_model_for(Tag)) == 0
        assert tag.label == "ok"
