"""
Prompt 构造（LLM 单次调用，不 loop）。

目标：
- 让模型只输出“完整文件内容”的 code block，并且每个 block 都带上文件路径
- 输出格式必须和 extractor 的两级规则对得上（info string 或 block 第一行写路径）
"""

from __future__ import annotations

from voyager.github.schemas import GitHubIssue
from voyager.llm.client import ChatMessage


def _system_prompt(project_description: str) -> str:
    return (
        f"You are a senior engineer making minimal, focused changes to a {project_description}. "
        "You answer only with complete file contents in markdown code blocks."
    )


def _user_prompt(issue: GitHubIssue, project_description: str) -> str:
    return (
        f"Based on the following issue, suggest code changes for a {project_description}:\n\n"
        f"Title: {issue.title}\n"
        f"Description: {issue.body}\n\n"
        "CRITICAL INSTRUCTIONS:\n"
        "1. Only modify the specific values or code mentioned in the issue\n"
        "2. Do not change file structure or delete any files\n"
        "3. Do not modify CSS files unless specifically requested\n"
        "4. Keep all existing imports and functionality\n"
        "5. Make minimal, focused changes\n\n"
        "Format your response using markdown code blocks. "
        "Each block MUST start with the file path on its own line, like this:\n\n"
        "```typescript\n"
        "src/App.tsx\n"
        "// file content here\n"
        "```\n\n"
        "IMPORTANT: Provide the complete file content, not just the changed parts.\n"
        "The file path must be a valid path like 'src/App.tsx' or 'src/components/Counter.tsx'.\n"
        "If you're unsure about any part of the existing code, preserve it as-is.\n"
    )


def build_change_request_messages(issue: GitHubIssue, project_description: str) -> list[ChatMessage]:
    """system + user 两条消息。"""
    return [
        ChatMessage(role="system", content=_system_prompt(project_description=project_description)),
        ChatMessage(role="user", content=_user_prompt(issue=issue, project_description=project_description)),
    ]
