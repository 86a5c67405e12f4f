"""Tests for the command-line interface."""

from __future__ import annotations

import json
import logging

import pytest
from click.testing import CliRunner
from pydantic import TypeAdapter

from project_governance.catalog import event_types as et
from project_governance.cli import main
from project_governance.core.enums import EventStatus
from project_governance.domain.events import Event, EventDisplayHints

_EVENTS = TypeAdapter(list[Event])


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def files(tmp_path, p1_snapshot, event_factory):
    events = [
        event_factory(et.TITLE_CHANGED, {"title": "Beta"}, actor_id="alice", seconds=1),
        event_factory(
            et.PROJECT_ROLE_ASSIGNED, {"person_id": "X", "project_role_id": "R1"},
            actor_id="bob", seconds=2,
            display=EventDisplayHints(person_name="Xander", role_name="Researcher"),
        ),
        event_factory(et.DESCRIPTION_CHANGED, {"description": "Done"}, seconds=3,
                      status=EventStatus.APPROVED),
    ]
    snapshot_path = tmp_path / "snapshot.json"
    snapshot_path.write_text(p1_snapshot.model_dump_json())
    events_path = tmp_path / "events.json"
    events_path.write_bytes(_EVENTS.dump_json(events))
    return snapshot_path, events_path


class TestEventTypes:

    def test_table(self, runner):
        result = runner.invoke(main, ["event-types"])
        assert result.exit_code == 0
        assert et.PROJECT_ROLE_ASSIGNED in result.output
        assert "Project Role Assignment" in result.output

    def test_json(self, runner):
        result = runner.invoke(main, ["event-types", "--json"])
        assert result.exit_code == 0
        entries = json.loads(result.output)
        assert len(entries) == 14
        assert entries[0]["event_type"] == et.PROJECT_STARTED


class TestProject:

    def test_folds_pending_events(self, runner, files):
        snapshot_path, events_path = files
        result = runner.invoke(
            main, ["project", str(snapshot_path), str(events_path), "--log-level", "WARNING"],
        )
        assert result.exit_code == 0, result.output
        view = json.loads(result.stdout)
        assert view["title"] == "Beta"
        assert view["description"] == "First project"
        assert view["members"][0]["pending"] is True

    def test_requester_filter(self, runner, files):
        snapshot_path, events_path = files
        result = runner.invoke(main, [
            "project", str(snapshot_path), str(events_path),
            "--requester", "bob", "--log-level", "WARNING",
        ])
        assert result.exit_code == 0, result.output
        view = json.loads(result.stdout)
        assert view["title"] == "Alpha"
        assert len(view["members"]) == 1

    def test_bad_snapshot(self, runner, tmp_path, files):
        _, events_path = files
        bad = tmp_path / "bad.json"
        bad.write_text('{"title": "no id"}')
        result = runner.invoke(main, ["project", str(bad), str(events_path)])
        assert result.exit_code != 0
        assert "not a project snapshot" in result.output

    def test_missing_config(self, runner, tmp_path, files):
        snapshot_path, events_path = files
        result = runner.invoke(main, [
            "project", str(snapshot_path), str(events_path),
            "--config", str(tmp_path / "missing.toml"),
        ])
        assert result.exit_code != 0
        assert "Config file not found" in result.output


class TestRender:

    def test_one_line_per_event(self, runner, files):
        _, events_path = files
        result = runner.invoke(main, ["render", str(events_path), "--log-level", "WARNING"])
        assert result.exit_code == 0, result.output
        lines = result.stdout.strip().splitlines()
        assert lines == [
            "2024-01-01 00:00  pending   Title Change: Title changed to Beta",
            "2024-01-01 00:00  pending   Project Role Assignment: Xander assigned as Researcher",
            "2024-01-01 00:00  approved  Description Change: Description changed to Done",
        ]

    def test_not_a_list(self, runner, tmp_path):
        path = tmp_path / "events.json"
        path.write_text('{"event_type": "x"}')
        result = runner.invoke(main, ["render", str(path)])
        assert result.exit_code != 0
        assert "not a list of events" in result.output
