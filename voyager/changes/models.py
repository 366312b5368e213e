"""
文件变更领域模型（Pydantic）。

用途：
- 明确 extract -> validate -> plan -> apply 各阶段输入/输出的数据结构
- `FileChange` 在构造时就保证 path/content 都非空（不合法的记录根本构造不出来）
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SENSITIVE_EXTENSIONS: tuple[str, ...] = (
    ".css",
    ".scss",
    ".sass",
    ".less",
    ".json",
    ".yaml",
    ".yml",
    ".md",
    ".env",
)


class FileChange(BaseModel):
    """单个文件的目标全文（从模型回复的 code block 中提取）。"""

    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1)
    content: str

    @field_validator("path")
    @classmethod
    def _strip_path(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("path must be non-empty")
        return stripped

    @field_validator("content")
    @classmethod
    def _check_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must be non-blank")
        return value


class ValidationPolicy(BaseModel):
    """
    一次运行的校验策略（配置快照，不是硬编码逻辑）。

    - allowed_roots: path 必须以其中之一开头
    - sensitive_extensions: 这些类型的文件只有 issue 正文里提到扩展名才允许修改
    - import_aliases: import 风格的伪路径前缀 -> 真实根目录（例如 `@/` -> `src/`）；
      伪路径免于 root 检查，校验通过后再换成真实路径，去重和写入都用真实路径
    """

    model_config = ConfigDict(frozen=True)

    allowed_roots: tuple[str, ...] = ("src/",)
    sensitive_extensions: tuple[str, ...] = DEFAULT_SENSITIVE_EXTENSIONS
    import_aliases: dict[str, str] = Field(default_factory=lambda: {"@/": "src/"})

    @field_validator("sensitive_extensions")
    @classmethod
    def _normalize_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        normalized: list[str] = []
        for ext in value:
            lowered = ext.strip().lower()
            if not lowered:
                continue
            normalized.append(lowered if lowered.startswith(".") else f".{lowered}")
        return tuple(normalized)


class RejectionReason(str, Enum):
    """Validator 拒绝原因（可区分、可记录日志）。"""

    INCOMPLETE = "incomplete change"
    UNSAFE_PATH = "unsafe path"
    OUT_OF_ROOT = "out of policy root"
    SENSITIVE_NOT_REQUESTED = "sensitive extension not requested"


class RejectedChange(BaseModel):
    """被策略过滤掉的变更（不是错误，只是一个过滤决定）。"""

    change: FileChange
    reason: RejectionReason


class ApplyResult(BaseModel):
    """单个文件的执行结果。"""

    path: str
    status: Literal["applied", "skipped", "failed"]
    detail: str = ""


class RunReport(BaseModel):
    """一次运行的最终汇总。"""

    outcome: Literal["pr_created", "no_changes_commented"]
    branch: str | None = None
    pull_request_number: int | None = None
    pull_request_url: str | None = None
    results: list[ApplyResult] = Field(default_factory=list)

    @property
    def applied_paths(self) -> list[str]:
        return [r.path for r in self.results if r.status == "applied"]
