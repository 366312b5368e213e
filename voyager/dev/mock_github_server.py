"""
本地 Mock GitHub API server（只覆盖 issue -> PR 闭环用到的接口）。

用途：
- 在没有真实 GitHub 的情况下，本地跑通：
  get default branch -> create branch -> get/put contents -> create PR -> issue comment
- 单元测试里通过 `httpx.ASGITransport` 直接挂载（不需要起端口）

启动：
  python -m voyager.dev.mock_github_server
"""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import uvicorn
from fastapi import FastAPI
from fastapi import HTTPException
from pydantic import BaseModel


class CreateRefRequest(BaseModel):
    ref: str
    sha: str


class PutContentRequest(BaseModel):
    message: str
    content: str
    branch: str
    sha: str | None = None


class CreatePullRequest(BaseModel):
    title: str
    body: str
    head: str
    base: str


class CreateCommentRequest(BaseModel):
    body: str


def blob_sha(content: str) -> str:
    """和 git 一样的 blob sha：sha1("blob <len>\\0<content>")。"""
    data = content.encode("utf-8")
    return hashlib.sha1(b"blob %d\x00" % len(data) + data).hexdigest()


@dataclass
class MockGitHubState:
    """内存里的仓库：branch -> {path -> content}，外加 PR / 评论 / 提交记录。"""

    default_branch: str
    branches: dict[str, dict[str, str]]
    heads: dict[str, str]
    stale_paths: set[str] = field(default_factory=set)
    commits: list[dict[str, str]] = field(default_factory=list)
    pulls: list[dict[str, object]] = field(default_factory=list)
    comments: list[dict[str, object]] = field(default_factory=list)

    def branch_files(self, branch: str) -> dict[str, str]:
        if branch not in self.branches:
            raise HTTPException(status_code=404, detail=f"Branch not found: {branch}")
        return self.branches[branch]


def build_mock_github_app(
    files: Mapping[str, str],
    default_branch: str = "main",
    stale_paths: Iterable[str] = (),
) -> FastAPI:
    """
    创建一个带初始文件的 mock GitHub。

    - files：默认分支上的初始文件
    - stale_paths：对这些 path 的 PUT 一律返回 409（模拟 sha 过期）
    """
    state = MockGitHubState(
        default_branch=default_branch,
        branches={default_branch: dict(files)},
        heads={default_branch: "0" * 40},
        stale_paths=set(stale_paths),
    )
    app = FastAPI(title="Mock GitHub API", version="0.1.0")
    app.state.github = state

    @app.get("/repos/{owner}/{repo}")
    async def get_repository(owner: str, repo: str) -> dict[str, object]:
        return {"full_name": f"{owner}/{repo}", "default_branch": state.default_branch}

    @app.get("/repos/{owner}/{repo}/git/ref/heads/{branch:path}")
    async def get_branch_ref(owner: str, repo: str, branch: str) -> dict[str, object]:
        _ = (owner, repo)
        if branch not in state.heads:
            raise HTTPException(status_code=404, detail="Not Found")
        return {"ref": f"refs/heads/{branch}", "object": {"sha": state.heads[branch], "type": "commit"}}

    @app.post("/repos/{owner}/{repo}/git/refs", status_code=201)
    async def create_ref(owner: str, repo: str, req: CreateRefRequest) -> dict[str, object]:
        _ = (owner, repo)
        branch = req.ref.removeprefix("refs/heads/")
        if branch in state.branches:
            raise HTTPException(status_code=422, detail="Reference already exists")
        source = next((b for b, sha in state.heads.items() if sha == req.sha), None)
        if source is None:
            raise HTTPException(status_code=422, detail="Object does not exist")
        state.branches[branch] = dict(state.branches[source])
        state.heads[branch] = req.sha
        return {"ref": req.ref, "object": {"sha": req.sha, "type": "commit"}}

    @app.get("/repos/{owner}/{repo}/contents/{path:path}")
    async def get_content(owner: str, repo: str, path: str, ref: str | None = None) -> dict[str, object]:
        _ = (owner, repo)
        files_on_branch = state.branch_files(ref or state.default_branch)
        if path not in files_on_branch:
            raise HTTPException(status_code=404, detail="Not Found")
        content = files_on_branch[path]
        return {
            "type": "file",
            "path": path,
            "sha": blob_sha(content),
            "encoding": "base64",
            "content": base64.encodebytes(content.encode("utf-8")).decode("ascii"),
        }

    @app.put("/repos/{owner}/{repo}/contents/{path:path}")
    async def put_content(owner: str, repo: str, path: str, req: PutContentRequest) -> dict[str, object]:
        _ = (owner, repo)
        files_on_branch = state.branch_files(req.branch)
        current = files_on_branch.get(path)
        if path in state.stale_paths:
            raise HTTPException(status_code=409, detail=f"{path} does not match {req.sha}")
        if current is not None and req.sha is None:
            raise HTTPException(status_code=422, detail='"sha" wasn\'t supplied.')
        if current is not None and req.sha != blob_sha(current):
            raise HTTPException(status_code=409, detail=f"{path} does not match {req.sha}")
        content = base64.b64decode(req.content).decode("utf-8")
        files_on_branch[path] = content
        commit_sha = hashlib.sha1(f"{req.branch}:{path}:{len(state.commits)}".encode("utf-8")).hexdigest()
        state.commits.append({"branch": req.branch, "path": path, "message": req.message, "sha": commit_sha})
        state.heads[req.branch] = commit_sha
        return {"content": {"path": path, "sha": blob_sha(content)}, "commit": {"sha": commit_sha}}

    @app.post("/repos/{owner}/{repo}/pulls", status_code=201)
    async def create_pull(owner: str, repo: str, req: CreatePullRequest) -> dict[str, object]:
        state.branch_files(req.head)
        number = len(state.pulls) + 100
        pull = {
            "number": number,
            "html_url": f"https://github.com/{owner}/{repo}/pull/{number}",
            **req.model_dump(),
        }
        state.pulls.append(pull)
        return pull

    @app.post("/repos/{owner}/{repo}/issues/{issue_number}/comments", status_code=201)
    async def create_comment(owner: str, repo: str, issue_number: int, req: CreateCommentRequest) -> dict[str, object]:
        _ = (owner, repo)
        comment = {"id": len(state.comments) + 1, "issue_number": issue_number, "body": req.body}
        state.comments.append(comment)
        return comment

    @app.get("/__debug__/state")
    async def debug_state() -> dict[str, object]:
        return {
            "branches": sorted(state.branches),
            "commits": state.commits,
            "pulls": state.pulls,
            "comments": state.comments,
        }

    return app


app = build_mock_github_app(
    files={
        "src/App.tsx": (
            "import { useState } from 'react'\n"
            "\n"
            "function App() {\n"
            "  const [count, setCount] = useState(0)\n"
            "  return <button onClick={() => setCount(count + 1)}>count is {count}</button>\n"
            "}\n"
            "\n"
            "export default App\n"
        ),
        "src/App.css": "#root {\n  text-align: center;\n}\n",
    }
)


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9002)


if __name__ == "__main__":
    main()
