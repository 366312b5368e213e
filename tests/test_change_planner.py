from __future__ import annotations

from voyager.changes.models import FileChange
from voyager.changes.planner import plan_changes


def test_plan_changes_first_occurrence_wins() -> None:
    changes = [
        FileChange(path="src/App.tsx", content="first"),
        FileChange(path="src/main.tsx", content="main"),
        FileChange(path="src/App.tsx", content="second"),
    ]
    planned = plan_changes(changes)
    assert [(c.path, c.content) for c in planned] == [("src/App.tsx", "first"), ("src/main.tsx", "main")]


def test_plan_changes_empty() -> None:
    assert plan_changes([]) == []
