from __future__ import annotations

import httpx
import pytest

from voyager.dev.mock_openai_server import build_mock_openai_app
from voyager.llm.client import ChatMessage
from voyager.llm.client import OpenAICompatLLMClient


@pytest.mark.anyio
async def test_complete_text_returns_content() -> None:
    app = build_mock_openai_app(response_text="```ts:src/a.ts\nexport {}\n```")
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        client = OpenAICompatLLMClient(api_key="k", base_url="http://llm.test", http_client=http_client, model="m")
        text = await client.complete_text(messages=[ChatMessage(role="user", content="hi")])
    assert text.startswith("```ts:src/a.ts")
    assert app.state.requests[0].model == "m"


@pytest.mark.anyio
async def test_default_mock_response_uses_issue_title() -> None:
    app = build_mock_openai_app()
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http_client:
        client = OpenAICompatLLMClient(api_key="k", base_url="http://llm.test/v1/", http_client=http_client, model="m")
        text = await client.complete_text(messages=[ChatMessage(role="user", content="Title: Bump counter\n")])
    assert "Bump counter" in text
    assert "typescript:src/App.tsx" in text
