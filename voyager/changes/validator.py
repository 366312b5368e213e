"""
Validator：按 `ValidationPolicy` 过滤候选变更（纯函数，保持顺序）。

每条规则独立判定，命中即拒绝，并带一个可区分的原因写日志：
- incomplete change：path 或 content 为空
- unsafe path：绝对路径、`..`、反斜杠、盘符、`.git/`
- out of policy root：不在允许的根目录下（import 风格伪路径除外）
- sensitive extension not requested：敏感扩展名，且 issue 正文没有提到该扩展名

被拒绝不是错误，只是过滤决定，这里不抛异常。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import PurePosixPath

from voyager.changes.models import FileChange
from voyager.changes.models import RejectedChange
from voyager.changes.models import RejectionReason
from voyager.changes.models import ValidationPolicy

logger = logging.getLogger(__name__)

_DRIVE_PREFIX_RE = re.compile(r"^[A-Za-z]:")


def is_safe_repo_relative_path(path: str) -> bool:
    """仓库内相对 POSIX 路径检查（不允许逃出仓库根目录或写进 .git）。"""
    raw = path.strip()
    if not raw:
        return False
    if "\\" in raw or raw.startswith("/") or _DRIVE_PREFIX_RE.match(raw):
        return False
    segments = raw.split("/")
    if ".." in segments or ".git" in segments:
        return False
    # 规范化后必须不变（拒绝 './x'、'a//b'、结尾 '/'）
    return str(PurePosixPath(raw)) == raw


def is_import_style_path(path: str, policy: ValidationPolicy) -> bool:
    return any(path.startswith(alias) for alias in policy.import_aliases)


def resolve_import_path(path: str, policy: ValidationPolicy) -> str:
    """`@/App.tsx` -> `src/App.tsx`；不是伪路径时原样返回。"""
    for alias, root in policy.import_aliases.items():
        if path.startswith(alias):
            return root + path[len(alias) :]
    return path


def resolve_import_paths(changes: Sequence[FileChange], policy: ValidationPolicy) -> list[FileChange]:
    """
    把通过校验的伪路径换成真实路径（planner 之前调用），保持顺序。

    这样 `src/App.tsx` 和 `@/App.tsx` 在 planner 里是同一个 path，只会写一次。
    """
    resolved: list[FileChange] = []
    for change in changes:
        path = resolve_import_path(change.path, policy)
        if path != change.path:
            logger.info(f"Resolved import path {change.path!r} -> {path!r}")
            change = FileChange(path=path, content=change.content)
        resolved.append(change)
    return resolved


def sensitive_extension_of(path: str, policy: ValidationPolicy) -> str | None:
    """返回命中的敏感扩展名（例如 `.css`、`.env`），未命中返回 None。"""
    name = PurePosixPath(path).name.lower()
    for ext in policy.sensitive_extensions:
        if name.endswith(ext) or name.startswith(f"{ext}."):
            return ext
    return None


def check_change(change: FileChange, policy: ValidationPolicy, issue_body: str) -> RejectionReason | None:
    """对单个变更做策略检查；通过返回 None，否则返回拒绝原因。"""
    path = (change.path or "").strip()
    if not path or not (change.content or "").strip():
        return RejectionReason.INCOMPLETE

    if not is_safe_repo_relative_path(path):
        return RejectionReason.UNSAFE_PATH

    if not is_import_style_path(path, policy) and not any(path.startswith(root) for root in policy.allowed_roots):
        return RejectionReason.OUT_OF_ROOT

    ext = sensitive_extension_of(path, policy)
    if ext is not None and ext not in (issue_body or "").lower():
        return RejectionReason.SENSITIVE_NOT_REQUESTED

    return None


def partition_changes(
    changes: Sequence[FileChange],
    policy: ValidationPolicy,
    issue_body: str,
) -> tuple[list[FileChange], list[RejectedChange]]:
    """返回 (通过的变更, 被拒绝的变更)，两者都保持输入顺序。"""
    accepted: list[FileChange] = []
    rejected: list[RejectedChange] = []
    for change in changes:
        reason = check_change(change=change, policy=policy, issue_body=issue_body)
        if reason is None:
            accepted.append(change)
            continue
        logger.info(f"Skipping change for {change.path!r}: {reason.value}")
        rejected.append(RejectedChange(change=change, reason=reason))
    return accepted, rejected


def validate_changes(changes: Sequence[FileChange], policy: ValidationPolicy, issue_body: str) -> list[FileChange]:
    accepted, _ = partition_changes(changes=changes, policy=policy, issue_body=issue_body)
    return accepted
