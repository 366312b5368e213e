"""
Issue source：读取 GitHub Actions 写在 `GITHUB_EVENT_PATH` 的事件 JSON。

只读一次；payload 不合法属于输入错误，在任何网络调用之前直接失败（ValueError）。
"""

from __future__ import annotations

import json

import anyio
from pydantic import ValidationError

from voyager.github.schemas import GitHubIssueEvent


def parse_issue_event(raw: str) -> GitHubIssueEvent:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("Event payload is not valid JSON") from exc
    try:
        return GitHubIssueEvent.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Event payload is not an issue event: {exc}") from exc


async def load_issue_event(event_path: str) -> GitHubIssueEvent:
    try:
        raw = await anyio.Path(event_path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read event payload at {event_path}: {exc}") from exc
    return parse_issue_event(raw=raw)


def should_handle(event: GitHubIssueEvent, trigger_label: str) -> bool:
    """和 workflow 的 `if: contains(labels, 'voyager')` 对齐：只处理带触发 label 的 issue。"""
    if event.label is not None and event.label.name == trigger_label:
        return True
    return event.issue.has_label(trigger_label)
