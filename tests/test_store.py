"""Tests for the single-slot file-backed Theme Store."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from themehook.errors import StorageFailure
from themehook.models import StoredLatest, ThemeEnvelope
from themehook.presentation import render_css_variables
from themehook.store import ThemeStore


def _latest(payload: dict, **envelope_updates) -> StoredLatest:
    envelope = ThemeEnvelope.model_validate({**payload, **envelope_updates})
    return StoredLatest(
        envelope=envelope,
        css_variables=render_css_variables(envelope.theme),
        received_at="2026-10-19T12:00:00.000Z",
    )


class TestThemeStore:
    def test_empty_store_returns_none(self, store):
        assert store.get() is None

    def test_put_then_get(self, store, payload):
        latest = _latest(payload, timestamp="2026-10-19T12:00:00Z")
        store.put(latest)
        assert store.get() == latest

    def test_creates_parent_directories(self, tmp_path, payload):
        store = ThemeStore(tmp_path / "a" / "b" / "theme.json")
        store.put(_latest(payload))
        assert (tmp_path / "a" / "b" / "theme.json").exists()

    def test_put_replaces_wholesale(self, store, payload):
        store.put(_latest(payload, themeId="first", themeName="First"))
        store.put(_latest(payload, themeId="second", themeName=None))
        stored = store.get()
        assert stored.envelope.theme_id == "second"
        assert stored.envelope.theme_name is None

    def test_document_is_camel_case_json(self, store, data_file, payload):
        store.put(_latest(payload))
        document = json.loads(data_file.read_text())
        assert document["envelope"]["themeId"] == "t1"
        assert "cssVariables" in document
        assert "receivedAt" in document

    def test_no_temp_files_left_behind(self, store, data_file, payload):
        store.put(_latest(payload))
        store.put(_latest(payload))
        assert sorted(p.name for p in data_file.parent.iterdir()) == [data_file.name]

    def test_clear_returns_to_empty(self, store, payload):
        store.put(_latest(payload))
        store.clear()
        assert store.get() is None
        store.clear()

    def test_corrupt_document_raises(self, store, data_file):
        data_file.parent.mkdir(parents=True)
        data_file.write_text("{not json")
        with pytest.raises(StorageFailure):
            store.get()

    def test_wrong_shape_raises(self, store, data_file):
        data_file.parent.mkdir(parents=True)
        data_file.write_text(json.dumps({"themeId": "t1"}))
        with pytest.raises(StorageFailure):
            store.get()

    def test_write_failure_raises_and_keeps_previous(self, store, payload):
        previous = _latest(payload, themeId="kept")
        store.put(previous)
        with patch("themehook.store.os.replace", side_effect=OSError(28, "No space left on device")):
            with pytest.raises(StorageFailure, match="No space left"):
                store.put(_latest(payload, themeId="lost"))
        assert store.get() == previous
        assert len(list(store.path.parent.iterdir())) == 1

    def test_unwritable_location_raises(self, tmp_path, payload):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = ThemeStore(blocker / "theme.json")
        with pytest.raises(StorageFailure):
            store.put(_latest(payload))


_colors = st.sampled_from(["#000", "#8b5cf6", "rgb(1, 2, 3)", "oklch(70% 0.1 200)", "tomato"])
_radius = st.one_of(st.integers(min_value=0, max_value=64), st.floats(min_value=0, max_value=64))


@st.composite
def envelopes(draw) -> dict:
    roles = ["primary", "secondary", "accent", "neutral", "info", "success", "warning", "error"]
    return {
        "theme": {
            "colors": {role: draw(_colors) for role in roles},
            "radius": {name: draw(_radius) for name in ("box", "field", "selector")},
            "effects": {"depth": draw(st.booleans()), "noise": draw(st.booleans())},
        },
        "themeId": draw(st.one_of(st.text(min_size=1, max_size=20), st.integers())),
        "themeName": draw(st.one_of(st.none(), st.text(max_size=30))),
        "timestamp": "2026-10-19T12:00:00.000Z",
    }


@settings(max_examples=50, deadline=None)
@given(wire=envelopes())
def test_round_trip_fidelity(wire):
    """For any valid envelope E, put(E) then get() returns E."""
    with tempfile.TemporaryDirectory() as tmp:
        store = ThemeStore(Path(tmp) / "latest.json")
        latest = _latest(wire)
        store.put(latest)
        assert store.get() == latest
        assert store.get().envelope.to_wire() == ThemeEnvelope.model_validate(wire).to_wire()


def test_reader_never_sees_partial_write(store, payload):
    """os.replace swaps whole documents; a reader mid-write sees the old one."""
    store.put(_latest(payload, themeId="old"))
    seen: list[str] = []
    real_replace = os.replace

    def replace_and_peek(src, dst):
        seen.append(store.get().envelope.theme_id)
        real_replace(src, dst)

    with patch("themehook.store.os.replace", side_effect=replace_and_peek):
        store.put(_latest(payload, themeId="new"))

    assert seen == ["old"]
    assert store.get().envelope.theme_id == "new"
