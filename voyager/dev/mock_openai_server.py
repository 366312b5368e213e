"""
本地 Mock OpenAI-compatible LLM server。

用途：
- 在没有真实 LLM 网关的情况下，本地跑通闭环（返回带 code block 的 markdown）
- 测试里可以传入固定的 response_text，覆盖各种“模型输出格式”

启动：
  python -m voyager.dev.mock_openai_server
"""

from __future__ import annotations

import time
from collections.abc import Sequence

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel, Field

from voyager.llm.client import ChatMessage


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessage] = Field(default_factory=list)


def _extract_title_from_prompt(prompt: str) -> str:
    for line in prompt.splitlines():
        stripped = line.strip()
        if stripped.startswith("Title: "):
            return stripped.removeprefix("Title: ").strip()
    raise ValueError("Cannot find `Title: ...` in user prompt")


def _build_mock_markdown_response(title: str) -> str:
    return (
        f"Here is the change for **{title}**:\n\n"
        "```typescript:src/App.tsx\n"
        "import { useState } from 'react'\n"
        "\n"
        "function App() {\n"
        "  // [MOCK] generated change\n"
        "  const [count, setCount] = useState(42)\n"
        "  return <button onClick={() => setCount(count + 1)}>count is {count}</button>\n"
        "}\n"
        "\n"
        "export default App\n"
        "```\n"
    )


def _decide_mock_response(messages: Sequence[ChatMessage]) -> str:
    user_texts = [m.content for m in messages if m.role == "user"]
    if not user_texts:
        raise ValueError("Mock server expects at least one user message")
    return _build_mock_markdown_response(title=_extract_title_from_prompt("\n".join(user_texts)))


def build_mock_openai_app(response_text: str | None = None) -> FastAPI:
    """response_text 为 None 时根据 prompt 生成默认回复；收到的请求记录在 `app.state.requests`。"""
    app = FastAPI(title="Mock OpenAI-compatible LLM", version="0.1.0")
    app.state.requests = []

    @app.post("/v1/chat/completions")
    async def chat_completions(req: ChatCompletionRequest) -> dict[str, object]:
        app.state.requests.append(req)
        content = response_text if response_text is not None else _decide_mock_response(messages=req.messages)
        return {
            "id": f"chatcmpl-mock-{len(app.state.requests)}",
            "object": "chat.completion",
            "created": int(time.time()),
            "model": req.model,
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "stop",
                    "message": {"role": "assistant", "content": content},
                }
            ],
        }

    return app


app = build_mock_openai_app()


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9001)


if __name__ == "__main__":
    main()
