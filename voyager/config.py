"""
应用配置加载。

设计目标：
- **严格**：缺少必要环境变量就直接报错（在任何网络调用之前失败）
- **类型安全**：使用 Pydantic 校验 URL/字符串等，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试
- **只读一次**：进程启动时把环境变量固化成 `AppConfig`，后续组件只接收配置对象
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import BaseModel, HttpUrl, ValidationError, field_validator

from voyager.changes.models import ValidationPolicy

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_TRIGGER_LABEL = "voyager"
DEFAULT_BRANCH_PREFIX = "voyager/issue"
DEFAULT_PROJECT_DESCRIPTION = "Vite React TypeScript application"


class GitHubConfig(BaseModel):
    """GitHub 仓库 + 鉴权（GitHub Actions 会自动注入这些变量）。"""

    api_base_url: HttpUrl
    token: str
    repository: str

    @field_validator("repository")
    @classmethod
    def _check_repository(cls, value: str) -> str:
        parts = value.split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"GITHUB_REPOSITORY must look like 'owner/repo', got: {value!r}")
        return value

    @property
    def owner(self) -> str:
        return self.repository.split("/")[0]

    @property
    def repo(self) -> str:
        return self.repository.split("/")[1]


class LLMConfig(BaseModel):
    """OpenAI-compatible LLM 网关配置。"""

    base_url: HttpUrl
    api_key: str
    model: str


class AppConfig(BaseModel):
    """一次运行所需的全部配置。"""

    github: GitHubConfig
    llm: LLMConfig
    policy: ValidationPolicy
    event_path: str
    trigger_label: str = DEFAULT_TRIGGER_LABEL
    branch_prefix: str = DEFAULT_BRANCH_PREFIX
    project_description: str = DEFAULT_PROJECT_DESCRIPTION
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL, got: {value!r}")
        return level


def _split_list(raw: str) -> tuple[str, ...]:
    """逗号分隔 -> tuple（去空白、去空项）。"""
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _split_aliases(raw: str) -> dict[str, str]:
    """`@/=src/,~/=src/` -> {"@/": "src/", "~/": "src/"}；空字符串表示关闭 alias。"""
    aliases: dict[str, str] = {}
    for item in _split_list(raw):
        alias, sep, root = item.partition("=")
        if not sep or not alias.strip() or not root.strip():
            raise ValueError(f"VOYAGER_IMPORT_ALIASES entries must look like 'alias=root', got: {item!r}")
        aliases[alias.strip()] = root.strip()
    return aliases


def _load_policy(environ: Mapping[str, str]) -> ValidationPolicy:
    """策略是数据，不是代码：每一项都可以用环境变量覆盖，未设置则用默认值。"""
    overrides: dict[str, object] = {}
    if environ.get("VOYAGER_ALLOWED_ROOTS"):
        overrides["allowed_roots"] = _split_list(environ["VOYAGER_ALLOWED_ROOTS"])
    if environ.get("VOYAGER_SENSITIVE_EXTENSIONS"):
        overrides["sensitive_extensions"] = _split_list(environ["VOYAGER_SENSITIVE_EXTENSIONS"])
    if "VOYAGER_IMPORT_ALIASES" in environ:
        overrides["import_aliases"] = _split_aliases(environ["VOYAGER_IMPORT_ALIASES"])
    return ValidationPolicy(**overrides)


def load_config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`AppConfig`
    - **失败**：缺失/为空/格式非法统一抛 `ValueError`
    """

    required_keys: tuple[str, ...] = (
        "GITHUB_TOKEN",
        "GITHUB_REPOSITORY",
        "GITHUB_EVENT_PATH",
        "LLM_BASE_URL",
        "LLM_API_KEY",
        "LLM_MODEL",
    )

    missing: list[str] = [key for key in required_keys if key not in environ or not environ[key]]
    if missing:
        raise ValueError(f"Missing required env vars: {', '.join(missing)}")

    # 交给 Pydantic 做类型校验（例如 URL 合法性、owner/repo 格式）
    try:
        return AppConfig(
            github=GitHubConfig(
                api_base_url=environ.get("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL,
                token=environ["GITHUB_TOKEN"],
                repository=environ["GITHUB_REPOSITORY"],
            ),
            llm=LLMConfig(
                base_url=environ["LLM_BASE_URL"],
                api_key=environ["LLM_API_KEY"],
                model=environ["LLM_MODEL"],
            ),
            policy=_load_policy(environ=environ),
            event_path=environ["GITHUB_EVENT_PATH"],
            trigger_label=environ.get("VOYAGER_TRIGGER_LABEL") or DEFAULT_TRIGGER_LABEL,
            branch_prefix=environ.get("VOYAGER_BRANCH_PREFIX") or DEFAULT_BRANCH_PREFIX,
            project_description=environ.get("VOYAGER_PROJECT_DESCRIPTION") or DEFAULT_PROJECT_DESCRIPTION,
            log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
        )
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
