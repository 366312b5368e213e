from __future__ import annotations

import pytest
from pydantic import ValidationError

from voyager.changes.models import FileChange
from voyager.changes.models import RejectionReason
from voyager.changes.models import ValidationPolicy
from voyager.changes.validator import check_change
from voyager.changes.validator import is_safe_repo_relative_path
from voyager.changes.validator import partition_changes
from voyager.changes.validator import resolve_import_path
from voyager.changes.validator import resolve_import_paths
from voyager.changes.validator import validate_changes

POLICY = ValidationPolicy()


def _change(path: str, content: str = "export {}\n") -> FileChange:
    return FileChange(path=path, content=content)


@pytest.mark.parametrize("path", ["App.tsx", "lib/App.tsx", "components/src/App.tsx", "source/App.tsx"])
def test_rejects_paths_outside_allowed_root(path: str) -> None:
    reason = check_change(change=_change(path), policy=POLICY, issue_body="anything")
    assert reason is RejectionReason.OUT_OF_ROOT


def test_import_style_path_is_exempt_from_root_check() -> None:
    assert check_change(change=_change("@/components/Counter.tsx"), policy=POLICY, issue_body="") is None


def test_import_path_exemption_is_configurable() -> None:
    policy = ValidationPolicy(import_aliases={})
    reason = check_change(change=_change("@/components/Counter.tsx"), policy=policy, issue_body="")
    assert reason is RejectionReason.OUT_OF_ROOT


def test_css_requires_mention_in_issue_body() -> None:
    change = _change("src/App.css", "#root { color: red; }")
    assert check_change(change=change, policy=POLICY, issue_body="Increase counter to 42") is (
        RejectionReason.SENSITIVE_NOT_REQUESTED
    )
    assert check_change(change=change, policy=POLICY, issue_body="Please update App.CSS colors") is None


def test_env_file_is_sensitive() -> None:
    change = _change("src/.env.local", "API_URL=x")
    assert check_change(change=change, policy=POLICY, issue_body="fix it") is RejectionReason.SENSITIVE_NOT_REQUESTED
    assert check_change(change=change, policy=POLICY, issue_body="update the .env file") is None


def test_incomplete_change_is_rejected() -> None:
    blank_content = FileChange.model_construct(path="src/App.tsx", content="   ")
    blank_path = FileChange.model_construct(path="", content="x")
    assert check_change(change=blank_content, policy=POLICY, issue_body="") is RejectionReason.INCOMPLETE
    assert check_change(change=blank_path, policy=POLICY, issue_body="") is RejectionReason.INCOMPLETE


@pytest.mark.parametrize("path", ["src/../secrets.ts", "src\\App.tsx", "src/.git/config", "src//App.tsx"])
def test_unsafe_paths_are_rejected(path: str) -> None:
    assert check_change(change=_change(path), policy=POLICY, issue_body="") is RejectionReason.UNSAFE_PATH


def test_absolute_path_is_rejected() -> None:
    assert check_change(change=_change("/src/App.tsx"), policy=POLICY, issue_body="") is RejectionReason.UNSAFE_PATH


def test_is_safe_repo_relative_path() -> None:
    assert is_safe_repo_relative_path("src/components/App.tsx")
    assert not is_safe_repo_relative_path("./src/App.tsx")
    assert not is_safe_repo_relative_path("C:/src/App.tsx")
    assert not is_safe_repo_relative_path("src/")


def test_validate_changes_preserves_order() -> None:
    changes = [
        _change("src/b.tsx"),
        _change("README.md"),
        _change("src/a.ts"),
        _change("src/index.css"),
    ]
    accepted = validate_changes(changes=changes, policy=POLICY, issue_body="bump the counter")
    assert [c.path for c in accepted] == ["src/b.tsx", "src/a.ts"]


def test_partition_changes_reports_reasons() -> None:
    changes = [_change("src/App.tsx"), _change("package.json"), _change("src/data.json")]
    accepted, rejected = partition_changes(changes=changes, policy=POLICY, issue_body="")
    assert [c.path for c in accepted] == ["src/App.tsx"]
    assert [(r.change.path, r.reason) for r in rejected] == [
        ("package.json", RejectionReason.OUT_OF_ROOT),
        ("src/data.json", RejectionReason.SENSITIVE_NOT_REQUESTED),
    ]


def test_custom_roots_and_extensions() -> None:
    policy = ValidationPolicy(allowed_roots=("app/", "lib/"), sensitive_extensions=("TOML",))
    assert check_change(change=_change("lib/util.py"), policy=policy, issue_body="") is None
    assert check_change(change=_change("app/pyproject.toml"), policy=policy, issue_body="") is (
        RejectionReason.SENSITIVE_NOT_REQUESTED
    )
    assert policy.sensitive_extensions == (".toml",)


def test_resolve_import_path_maps_alias_to_root() -> None:
    assert resolve_import_path("@/components/Counter.tsx", POLICY) == "src/components/Counter.tsx"
    assert resolve_import_path("src/App.tsx", POLICY) == "src/App.tsx"
    policy = ValidationPolicy(import_aliases={"~/": "src/lib/"})
    assert resolve_import_path("~/math.ts", policy) == "src/lib/math.ts"
    assert resolve_import_path("@/App.tsx", policy) == "@/App.tsx"


def test_resolve_import_paths_keeps_order_and_content() -> None:
    changes = [_change("src/App.tsx", "first"), _change("@/App.tsx", "second"), _change("src/main.tsx")]
    resolved = resolve_import_paths(changes=changes, policy=POLICY)
    assert [(c.path, c.content) for c in resolved] == [
        ("src/App.tsx", "first"),
        ("src/App.tsx", "second"),
        ("src/main.tsx", "export {}\n"),
    ]


def test_alias_path_escaping_the_root_is_rejected() -> None:
    reason = check_change(change=_change("@/../package.json"), policy=POLICY, issue_body="")
    assert reason is RejectionReason.UNSAFE_PATH


def test_file_change_rejects_blank_path() -> None:
    with pytest.raises(ValidationError):
        FileChange(path="  ", content="x")


def test_file_change_rejects_blank_content() -> None:
    with pytest.raises(ValidationError):
        FileChange(path="src/a.ts", content="  \n")


def test_file_change_strips_path() -> None:
    assert FileChange(path="  src/a.ts\n", content="x").path == "src/a.ts"
