"""
GitHub API 客户端（外部系统连接器，repository host）。

约定：
- 这里只做 HTTP 调用 + 错误处理 + schema 校验，不做业务决策
- 出错直接抛错（不要吞），便于定位与告警；只有“文件不存在”这种正常情况返回 None
- stale sha（409）单独抛 `StaleFileVersionError`，上游可以区分
"""

from __future__ import annotations

import base64
from urllib.parse import quote

import httpx

from voyager.github.schemas import GitHubFileContent
from voyager.github.schemas import GitHubFileWriteResult
from voyager.github.schemas import GitHubIssueComment
from voyager.github.schemas import GitHubPullRequest
from voyager.github.schemas import GitHubRef
from voyager.github.schemas import GitHubRepository


class GitHubAPIError(RuntimeError):
    """GitHub API 返回 >= 400。"""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code


class StaleFileVersionError(GitHubAPIError):
    """create-or-update 时传入的 sha 已经不是文件的最新版本。"""


def _raise_for_status(response: httpx.Response) -> None:
    if response.status_code == 409:
        raise StaleFileVersionError(response.status_code, response.text)
    if response.status_code >= 400:
        raise GitHubAPIError(response.status_code, response.text)


def decode_file_content(file: GitHubFileContent) -> str:
    """contents API 返回的 base64（带换行）-> 文本。"""
    if file.encoding != "base64":
        raise ValueError(f"Unsupported content encoding for {file.path}: {file.encoding}")
    return base64.b64decode(file.content).decode("utf-8", errors="replace")


class GitHubClient:
    """最小 GitHub REST client（branch / contents / pull request / issue comment）。"""

    def __init__(self, api_base_url: str, token: str, http_client: httpx.AsyncClient) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self._api_base_url}/repos/{owner}/{repo}"

    async def get_default_branch(self, owner: str, repo: str) -> str:
        response = await self._http_client.get(self._repo_url(owner, repo), headers=self._headers())
        _raise_for_status(response)
        return GitHubRepository.model_validate(response.json()).default_branch

    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str:
        """把 `heads/<branch>` 解析成 commit sha。"""
        url = f"{self._repo_url(owner, repo)}/git/ref/heads/{branch}"
        response = await self._http_client.get(url, headers=self._headers())
        _raise_for_status(response)
        return GitHubRef.model_validate(response.json()).object.sha

    async def create_branch(self, owner: str, repo: str, branch: str, sha: str) -> GitHubRef:
        url = f"{self._repo_url(owner, repo)}/git/refs"
        payload = {"ref": f"refs/heads/{branch}", "sha": sha}
        response = await self._http_client.post(url, headers=self._headers(), json=payload)
        _raise_for_status(response)
        return GitHubRef.model_validate(response.json())

    async def get_file(self, owner: str, repo: str, path: str, ref: str) -> GitHubFileContent | None:
        """
        获取文件当前内容与 blob sha。

        - 404：文件不存在，返回 None（新建文件时不需要 sha）
        - 返回 list：path 是目录，直接抛错
        """
        url = f"{self._repo_url(owner, repo)}/contents/{quote(path, safe='/')}"
        response = await self._http_client.get(url, headers=self._headers(), params={"ref": ref})
        if response.status_code == 404:
            return None
        _raise_for_status(response)
        data = response.json()
        if not isinstance(data, dict):
            raise RuntimeError(f"Unexpected GitHub response shape for contents of {path}: not a file")
        return GitHubFileContent.model_validate(data)

    async def create_or_update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        branch: str,
        message: str,
        sha: str | None,
    ) -> GitHubFileWriteResult:
        """
        写入文件全文（一次写入 = 一个 commit）。

        sha 为上一个版本的 blob sha；更新已有文件时必填，过期会得到 `StaleFileVersionError`。
        """
        url = f"{self._repo_url(owner, repo)}/contents/{quote(path, safe='/')}"
        payload: dict[str, str] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha is not None:
            payload["sha"] = sha
        response = await self._http_client.put(url, headers=self._headers(), json=payload)
        _raise_for_status(response)
        return GitHubFileWriteResult.model_validate(response.json())

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> GitHubPullRequest:
        url = f"{self._repo_url(owner, repo)}/pulls"
        payload = {"title": title, "body": body, "head": head, "base": base}
        response = await self._http_client.post(url, headers=self._headers(), json=payload)
        _raise_for_status(response)
        return GitHubPullRequest.model_validate(response.json())

    async def create_issue_comment(self, owner: str, repo: str, issue_number: int, body: str) -> GitHubIssueComment:
        url = f"{self._repo_url(owner, repo)}/issues/{issue_number}/comments"
        response = await self._http_client.post(url, headers=self._headers(), json={"body": body})
        _raise_for_status(response)
        return GitHubIssueComment.model_validate(response.json())
