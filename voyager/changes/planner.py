"""
Change Planner：把通过校验的变更整理成最终写入列表。

规则：按 path 去重，第一次出现的胜出，保持原始顺序。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from voyager.changes.models import FileChange

logger = logging.getLogger(__name__)


def plan_changes(changes: Sequence[FileChange]) -> list[FileChange]:
    seen: set[str] = set()
    planned: list[FileChange] = []
    for change in changes:
        if change.path in seen:
            logger.info(f"Dropping duplicate change for {change.path} (first occurrence wins)")
            continue
        seen.add(change.path)
        planned.append(change)
    return planned
