from __future__ import annotations

from voyager.changes.models import ApplyResult
from voyager.changes.prompt import build_change_request_messages
from voyager.changes.synthesis import pull_request_body
from voyager.changes.synthesis import pull_request_title
from voyager.github.schemas import GitHubIssue


def test_pull_request_body_lists_results_and_raw_response() -> None:
    issue = GitHubIssue(number=5, title="Make it blue", body="use .css")
    results = [
        ApplyResult(path="src/App.tsx", status="applied"),
        ApplyResult(path="src/b.tsx", status="failed", detail="GitHub API error 409: stale"),
    ]
    body = pull_request_body(issue=issue, results=results, raw_response="RAW")
    assert body.startswith("Addresses issue #5\n")
    assert "- **applied** `src/App.tsx`" in body
    assert "- **failed** `src/b.tsx`: GitHub API error 409: stale" in body
    assert body.endswith("Suggested changes:\n\nRAW")
    assert pull_request_title(issue) == "Fix for: Make it blue"


def test_prompt_carries_issue_and_format_instructions() -> None:
    issue = GitHubIssue(number=5, title="Make it blue", body="Change the header color")
    messages = build_change_request_messages(issue=issue, project_description="Vite React TypeScript application")
    assert [m.role for m in messages] == ["system", "user"]
    user = messages[1].content
    assert "Title: Make it blue" in user
    assert "Description: Change the header color" in user
    assert "```typescript\nsrc/App.tsx\n" in user
