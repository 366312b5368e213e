"""
Issue Orchestrator（核心流程编排）。

关键思想：
- **流程由工程代码控制**：严格顺序的状态机，每一步都 await 完才进入下一步
- **LLM 只负责“生成 markdown”**：提取/校验/去重都是确定性代码

状态：
FetchingIssue -> RequestingCompletion -> Extracting -> Validating -> Planning
-> CreatingBranch -> ApplyingChanges -> ReportingResult -> PRCreated | NoChangesCommented
任意一步抛错 -> Failed（记录日志后继续往上抛，由入口决定退出码）

例外：ApplyingChanges 里单个文件写入失败只记录为 failed，不影响其他文件。
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import httpx

from voyager.changes.extractor import extract_file_changes
from voyager.changes.models import ApplyResult
from voyager.changes.models import FileChange
from voyager.changes.models import RunReport
from voyager.changes.models import ValidationPolicy
from voyager.changes.planner import plan_changes
from voyager.changes.prompt import build_change_request_messages
from voyager.changes.synthesis import NO_CHANGES_COMMENT
from voyager.changes.synthesis import pull_request_body
from voyager.changes.synthesis import pull_request_comment
from voyager.changes.synthesis import pull_request_title
from voyager.changes.validator import partition_changes
from voyager.changes.validator import resolve_import_paths
from voyager.config import AppConfig
from voyager.github.client import GitHubClient
from voyager.github.client import decode_file_content
from voyager.github.event import load_issue_event
from voyager.github.event import should_handle
from voyager.github.schemas import GitHubIssue
from voyager.llm.client import OpenAICompatLLMClient

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    FETCHING_ISSUE = "FetchingIssue"
    REQUESTING_COMPLETION = "RequestingCompletion"
    EXTRACTING = "Extracting"
    VALIDATING = "Validating"
    PLANNING = "Planning"
    CREATING_BRANCH = "CreatingBranch"
    APPLYING_CHANGES = "ApplyingChanges"
    REPORTING_RESULT = "ReportingResult"
    PR_CREATED = "PRCreated"
    NO_CHANGES_COMMENTED = "NoChangesCommented"
    FAILED = "Failed"


def _now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class IssueOrchestrator:
    """一次运行的全部依赖（配置快照 + 外部 client）。"""

    llm_client: OpenAICompatLLMClient
    github_client: GitHubClient
    owner: str
    repo: str
    policy: ValidationPolicy
    branch_prefix: str
    project_description: str
    clock: Callable[[], int] = _now_millis


def build_issue_orchestrator(config: AppConfig, http_client: httpx.AsyncClient) -> IssueOrchestrator:
    """按配置装配 LLM client + GitHub client（共享同一个 httpx.AsyncClient）。"""
    llm_client = OpenAICompatLLMClient(
        api_key=config.llm.api_key,
        base_url=str(config.llm.base_url).rstrip("/"),
        http_client=http_client,
        model=config.llm.model,
    )
    github_client = GitHubClient(
        api_base_url=str(config.github.api_base_url).rstrip("/"),
        token=config.github.token,
        http_client=http_client,
    )
    return IssueOrchestrator(
        llm_client=llm_client,
        github_client=github_client,
        owner=config.github.owner,
        repo=config.github.repo,
        policy=config.policy,
        branch_prefix=config.branch_prefix,
        project_description=config.project_description,
    )


def create_branch_name(prefix: str, issue_number: int, timestamp_ms: int) -> str:
    """`voyager/issue-<n>-<millis>`：带时间戳，同一个 issue 重复触发也不会撞分支名。"""
    return f"{prefix.rstrip('-')}-{issue_number}-{timestamp_ms}"


class _StateTracker:
    def __init__(self, issue_number: int) -> None:
        self._issue_number = issue_number
        self.state = RunState.FETCHING_ISSUE

    def enter(self, state: RunState) -> None:
        logger.info(f"Issue #{self._issue_number}: {self.state.value} -> {state.value}")
        self.state = state

    def skip(self, state: RunState) -> None:
        logger.info(f"Issue #{self._issue_number}: skipping {state.value} (nothing planned)")


async def _apply_change(
    orchestrator: IssueOrchestrator,
    change: FileChange,
    branch: str,
    issue_number: int,
) -> ApplyResult:
    gh = orchestrator.github_client
    existing = await gh.get_file(owner=orchestrator.owner, repo=orchestrator.repo, path=change.path, ref=branch)
    if existing is not None and decode_file_content(existing) == change.content:
        logger.info(f"Skipping {change.path}: content unchanged")
        return ApplyResult(path=change.path, status="skipped", detail="content unchanged")

    verb = "Update" if existing is not None else "Create"
    await gh.create_or_update_file(
        owner=orchestrator.owner,
        repo=orchestrator.repo,
        path=change.path,
        content=change.content,
        branch=branch,
        message=f"{verb} {change.path} as per issue #{issue_number}",
        sha=existing.sha if existing is not None else None,
    )
    logger.info(f"{verb}d {change.path} on {branch}")
    return ApplyResult(path=change.path, status="applied")


async def apply_changes(
    orchestrator: IssueOrchestrator,
    changes: list[FileChange],
    branch: str,
    issue_number: int,
) -> list[ApplyResult]:
    """
    按 plan 顺序逐个写入（不并发：后面的写入不能和前面的抢同一个 branch ref）。

    单个文件失败（例如 stale sha）只记录为 failed，继续处理剩下的文件。
    """
    results: list[ApplyResult] = []
    for change in changes:
        try:
            result = await _apply_change(
                orchestrator=orchestrator,
                change=change,
                branch=branch,
                issue_number=issue_number,
            )
        except (RuntimeError, ValueError, httpx.HTTPError) as exc:
            logger.error(f"Error updating {change.path}: {exc}")
            result = ApplyResult(path=change.path, status="failed", detail=str(exc))
        results.append(result)
    return results


async def run_issue_pipeline(orchestrator: IssueOrchestrator, issue: GitHubIssue) -> RunReport:
    """
    跑一次完整流程，返回 `RunReport`。

    - 有至少一个文件 applied：开 PR，并在 issue 下回复 PR 编号
    - 否则：在 issue 下回复“无法确定变更”（这不是错误）
    - 其余任何异常：进入 Failed 并向上抛
    """
    tracker = _StateTracker(issue_number=issue.number)
    gh = orchestrator.github_client
    try:
        tracker.enter(RunState.REQUESTING_COMPLETION)
        messages = build_change_request_messages(issue=issue, project_description=orchestrator.project_description)
        raw_response = await orchestrator.llm_client.complete_text(messages=messages)

        tracker.enter(RunState.EXTRACTING)
        candidates = extract_file_changes(raw_response)

        tracker.enter(RunState.VALIDATING)
        accepted, rejected = partition_changes(changes=candidates, policy=orchestrator.policy, issue_body=issue.body)

        tracker.enter(RunState.PLANNING)
        planned = plan_changes(resolve_import_paths(changes=accepted, policy=orchestrator.policy))
        logger.info(
            f"Planned {len(planned)} change(s) "
            f"({len(candidates)} extracted, {len(rejected)} rejected by policy)"
        )

        results: list[ApplyResult] = []
        branch: str | None = None
        if planned:
            tracker.enter(RunState.CREATING_BRANCH)
            default_branch = await gh.get_default_branch(owner=orchestrator.owner, repo=orchestrator.repo)
            base_sha = await gh.get_branch_sha(owner=orchestrator.owner, repo=orchestrator.repo, branch=default_branch)
            branch = create_branch_name(
                prefix=orchestrator.branch_prefix,
                issue_number=issue.number,
                timestamp_ms=orchestrator.clock(),
            )
            await gh.create_branch(owner=orchestrator.owner, repo=orchestrator.repo, branch=branch, sha=base_sha)

            tracker.enter(RunState.APPLYING_CHANGES)
            results = await apply_changes(
                orchestrator=orchestrator,
                changes=planned,
                branch=branch,
                issue_number=issue.number,
            )
        else:
            tracker.skip(RunState.CREATING_BRANCH)
            tracker.skip(RunState.APPLYING_CHANGES)
        results.extend(
            ApplyResult(path=r.change.path, status="skipped", detail=r.reason.value) for r in rejected
        )

        tracker.enter(RunState.REPORTING_RESULT)
        if branch is not None and any(r.status == "applied" for r in results):
            pr = await gh.create_pull_request(
                owner=orchestrator.owner,
                repo=orchestrator.repo,
                title=pull_request_title(issue),
                body=pull_request_body(issue=issue, results=results, raw_response=raw_response),
                head=branch,
                base=default_branch,
            )
            await gh.create_issue_comment(
                owner=orchestrator.owner,
                repo=orchestrator.repo,
                issue_number=issue.number,
                body=pull_request_comment(pr.number),
            )
            tracker.enter(RunState.PR_CREATED)
            return RunReport(
                outcome="pr_created",
                branch=branch,
                pull_request_number=pr.number,
                pull_request_url=pr.html_url,
                results=results,
            )

        await gh.create_issue_comment(
            owner=orchestrator.owner,
            repo=orchestrator.repo,
            issue_number=issue.number,
            body=NO_CHANGES_COMMENT,
        )
        tracker.enter(RunState.NO_CHANGES_COMMENTED)
        return RunReport(outcome="no_changes_commented", branch=branch, results=results)
    except Exception as exc:
        logger.error(f"Issue #{issue.number} failed during {tracker.state.value}: {exc}")
        tracker.enter(RunState.FAILED)
        raise


async def handle_issue_event(orchestrator: IssueOrchestrator, event_path: str, trigger_label: str) -> RunReport | None:
    """FetchingIssue：读事件 -> label 过滤 -> 跑 pipeline；没有触发 label 时返回 None（不做任何事）。"""
    event = await load_issue_event(event_path=event_path)
    if not should_handle(event=event, trigger_label=trigger_label):
        logger.info(f"Issue #{event.issue.number} has no {trigger_label!r} label, nothing to do")
        return None
    logger.info(f"Handling issue #{event.issue.number}: {event.issue.title}")
    return await run_issue_pipeline(orchestrator=orchestrator, issue=event.issue)
