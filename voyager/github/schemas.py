"""
GitHub 事件 / API response schemas（Pydantic）。

说明：
- 字段只覆盖当前闭环需要的子集（issues 事件 + refs/contents/pulls/comments）
- schema 校验失败会立刻暴露问题（比“默默 None”安全）
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class GitHubLabel(BaseModel):
    name: str


class GitHubIssue(BaseModel):
    """issue 子结构；GitHub 在正文为空时给的是 null，这里统一成空字符串。"""

    number: int
    title: str
    body: str = ""
    labels: list[GitHubLabel] = Field(default_factory=list)

    @field_validator("body", mode="before")
    @classmethod
    def _none_body_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    def has_label(self, name: str) -> bool:
        return any(label.name == name for label in self.labels)


class GitHubIssueEvent(BaseModel):
    """
    GitHub `issues` 事件（GitHub Actions 写在 `GITHUB_EVENT_PATH` 里的 JSON）。

    action: opened/labeled/edited 等；label 只在 labeled/unlabeled 时出现
    """

    action: str | None = None
    issue: GitHubIssue
    label: GitHubLabel | None = None


class GitHubRepository(BaseModel):
    """GET /repos/{owner}/{repo}（只取 default_branch）。"""

    full_name: str
    default_branch: str


class GitHubGitObject(BaseModel):
    sha: str
    type: str = "commit"


class GitHubRef(BaseModel):
    """GET /git/ref/heads/{branch} 与 POST /git/refs 的返回结构。"""

    ref: str
    object: GitHubGitObject


class GitHubFileContent(BaseModel):
    """GET /contents/{path}（单文件），content 为 base64。"""

    path: str
    sha: str
    content: str = ""
    encoding: str = "base64"


class GitHubCommitInfo(BaseModel):
    sha: str


class GitHubFileWriteResult(BaseModel):
    """PUT /contents/{path} 的返回结构（content 在删除时为 null，这里只关心 commit）。"""

    commit: GitHubCommitInfo


class GitHubPullRequest(BaseModel):
    number: int
    html_url: str


class GitHubIssueComment(BaseModel):
    id: int
    body: str
