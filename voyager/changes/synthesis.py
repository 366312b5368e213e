from __future__ import annotations

"""
Synthesis（汇总输出）。

注意：
- 这里是**确定性输出**（不依赖 LLM），便于稳定回写 GitHub
- PR 正文里附上模型原文，方便 reviewer 对照
"""

from collections.abc import Sequence

from voyager.changes.models import ApplyResult
from voyager.github.schemas import GitHubIssue

NO_CHANGES_COMMENT = (
    "I couldn't determine any specific file changes from the AI response. Please provide more details."
)


def pull_request_title(issue: GitHubIssue) -> str:
    return f"Fix for: {issue.title}"


def pull_request_body(issue: GitHubIssue, results: Sequence[ApplyResult], raw_response: str) -> str:
    """
    PR 正文：关联 issue + 每个文件的处理结果 + 模型原文。

    - results：applied/skipped/failed 都列出来（skipped/failed 带原因）
    """
    lines: list[str] = [f"Addresses issue #{issue.number}", ""]
    if results:
        lines.append("### Files")
        for r in results:
            suffix = f": {r.detail}" if r.detail else ""
            lines.append(f"- **{r.status}** `{r.path}`{suffix}")
        lines.append("")
    lines.append("Suggested changes:")
    lines.append("")
    lines.append(raw_response)
    return "\n".join(lines)


def pull_request_comment(pull_request_number: int) -> str:
    return f"I've created PR #{pull_request_number} with suggested changes."
