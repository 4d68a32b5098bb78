from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from mindcontext.context import ContextProgress, build_context, percentage, render_json, render_text
from mindcontext.identity import MachineIdentity
from mindcontext.ledger import ProgressSnapshot, UpdateContext, UpdateLedger, UpdateRecord

M1 = MachineIdentity(name="ada-laptop", id="11111111")
M2 = MachineIdentity(name="bob-desktop", id="22222222")


def seed_openspec(root: Path) -> None:
    change_dir = root / "openspec" / "changes" / "add-search"
    change_dir.mkdir(parents=True)
    (change_dir / "tasks.md").write_text(
        "- [x] index\n- [x] query\n- [ ] ranking\n- [ ] ui\n- [ ] docs\n",
        encoding="utf-8",
    )


def seed_ledger(directory: Path) -> None:
    directory.mkdir(parents=True)
    rows = [
        (M1, "2025-01-02T09:00:00.000Z", "starting", "old.json"),
        (M1, "2025-01-02T10:00:00.000Z", "indexing", "m1.json"),
        (M2, "2025-01-02T10:05:00.000Z", "reviewing", "m2.json"),
    ]
    for identity, timestamp, status, filename in rows:
        record = UpdateRecord(
            timestamp=timestamp,
            machine=identity.name,
            machine_id=identity.id,
            context=UpdateContext(status=status, notes=["note"], next=["step"]),
            progress=ProgressSnapshot(source="manual"),
        )
        (directory / filename).write_text(record.to_json(), encoding="utf-8")


def test_percentage_rounding() -> None:
    assert percentage(2, 5) == 40
    assert percentage(0, 0) == 0
    assert percentage(1, 8) == 13
    assert percentage(1, 3) == 33
    assert percentage(3, 3) == 100


def test_context_for_connected_project(tmp_path: Path) -> None:
    project_root = tmp_path / "search"
    seed_openspec(project_root)
    seed_ledger(tmp_path / "updates")

    output = build_context("search", project_root, True, UpdateLedger(tmp_path / "updates"))
    payload = output.to_dict()

    assert payload["project"] == "search"
    assert payload["connected"] is True
    assert payload["progress"] == {
        "source": "openspec",
        "change": "add-search",
        "tasks_done": 2,
        "tasks_total": 5,
        "percentage": 40,
    }
    assert payload["lastUpdate"]["machine"] == "bob-desktop"
    assert payload["lastUpdate"]["status"] == "reviewing"
    team = sorted(payload["team"], key=lambda member: member["machine"])
    assert team == [
        {"machine": "ada-laptop", "timestamp": "2025-01-02T10:00:00.000Z", "status": "indexing"},
        {"machine": "bob-desktop", "timestamp": "2025-01-02T10:05:00.000Z", "status": "reviewing"},
    ]


def test_context_without_structure_or_connection(tmp_path: Path) -> None:
    output = build_context("bare", tmp_path, False, UpdateLedger(tmp_path / "unused"))
    payload = json.loads(render_json(output))

    assert payload == {
        "project": "bare",
        "connected": False,
        "progress": {"source": "manual", "tasks_done": 0, "tasks_total": 0, "percentage": 0},
        "team": [],
    }


def test_render_text_mirrors_json(tmp_path: Path) -> None:
    project_root = tmp_path / "search"
    seed_openspec(project_root)
    seed_ledger(tmp_path / "updates")
    output = build_context("search", project_root, True, UpdateLedger(tmp_path / "updates"))

    text = render_text(output)

    assert "Project: search" in text
    assert "Connected: Yes" in text
    assert "Change: add-search" in text
    assert "Progress: 2/5 (40%)" in text
    assert "Last Update: 2025-01-02T10:05:00.000Z" in text
    assert "  Notes: note" in text
    assert "  Next: step" in text
    assert "Team Activity:" in text
    assert "  ada-laptop: indexing (2025-01-02T10:00:00.000Z)" in text


def test_render_text_without_active_change(tmp_path: Path) -> None:
    text = render_text(build_context("bare", tmp_path, False))
    assert "Progress: No active change" in text
    assert "Last Update" not in text
    assert "Team Activity" not in text


def test_context_progress_source_is_restricted() -> None:
    assert ContextProgress(source="openspec", change="add-search", tasks_done=1, tasks_total=2).source == "openspec"
    with pytest.raises(ValidationError):
        ContextProgress(source="jira")
