"""
进程入口（GitHub Actions 里执行 `voyager`）。

这里做三件事：
- 加载配置（严格校验环境变量，缺失直接失败，不产生任何网络副作用）
- 组装外部依赖（共享的 httpx.AsyncClient / LLM client / GitHub client）
- 跑一次 issue 流程，并把结果映射成退出码（0 = PR 或说明评论，1 = Failed）

注意：业务流程不写在这里（由 `changes/orchestrator.py` 负责）
"""

from __future__ import annotations

import logging
import os
import sys

import anyio
import httpx

from voyager.config import AppConfig
from voyager.config import load_config_from_env
from voyager.changes.orchestrator import build_issue_orchestrator
from voyager.changes.orchestrator import handle_issue_event

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def run(config: AppConfig) -> int:
    """跑一次完整流程，返回进程退出码。"""
    async with httpx.AsyncClient(timeout=httpx.Timeout(60.0)) as http_client:
        orchestrator = build_issue_orchestrator(config=config, http_client=http_client)
        try:
            report = await handle_issue_event(
                orchestrator=orchestrator,
                event_path=config.event_path,
                trigger_label=config.trigger_label,
            )
        except Exception:
            logger.exception("Run failed")
            return 1

    if report is not None:
        logger.info(f"Run finished: {report.outcome} (applied: {', '.join(report.applied_paths) or 'none'})")
    return 0


def main() -> None:
    try:
        config = load_config_from_env(os.environ)
    except ValueError as exc:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {exc}")
        sys.exit(1)

    configure_logging(config.log_level)
    sys.exit(anyio.run(run, config))


if __name__ == "__main__":
    main()
