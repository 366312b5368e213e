"""
Extractor（非 AI）：从模型返回的 markdown 里提取 `FileChange`。

模型输出格式不保证稳定，所以用两级规则找文件路径：
- a) fence 的 info string 里带路径：```typescript:src/App.tsx
- b) 否则在 fence 内找第一行“看起来像路径”的行：```typescript + 下一行 src/App.tsx

两条规则都不满足的 block 视为“不可执行”，直接丢弃（不报错，不影响其他 block）。

注意：
- 规则 b 是启发式分类器，不是语法解析器；所有判断集中在 `detect_path_line`，便于单独测试/调整
- 这里永远不抛异常，丢弃原因只写 debug 日志
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from voyager.changes.models import FileChange

logger = logging.getLogger(__name__)

FENCE = "```"
LANGUAGE_TAGS: tuple[str, ...] = ("typescript", "javascript", "ts", "tsx", "js", "jsx")
SOURCE_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx")
SOURCE_ROOT = "src/"

_TAG_PATTERN = "|".join(re.escape(tag) for tag in LANGUAGE_TAGS)
_TAG_WITH_PATH_RE = re.compile(rf"^(?:{_TAG_PATTERN})\s*:\s*(.*)$", re.IGNORECASE)
_BARE_TAG_RE = re.compile(rf"^(?:{_TAG_PATTERN}):?$", re.IGNORECASE)
# 路径里允许出现的字符；空格、括号、尖括号、引号等出现就不是路径（例如 `</div>`、`import x from './a'`）
_PATH_CHARS_RE = re.compile(r"^[\w.@~+\-/\\]+$")
_COMMENT_PREFIXES: tuple[str, ...] = ("<!--", "/*", "//", "#")
_COMMENT_SUFFIXES: tuple[str, ...] = ("-->", "*/")


@dataclass(frozen=True)
class CodeBlock:
    """一个 fence 内部的内容（第一行是 info string，其余是 body）。"""

    lines: tuple[str, ...]

    @property
    def info_string(self) -> str:
        return self.lines[0].strip() if self.lines else ""

    @property
    def body(self) -> tuple[str, ...]:
        return self.lines[1:]


def split_code_blocks(markdown: str) -> list[CodeBlock]:
    """
    按 ``` 切分，奇数位置是 fence 内部，偶数位置是正文（丢弃）。

    fence 总是成对出现，所以内部内容和正文交替出现；未闭合的最后一个 fence 也按内部处理。
    """
    normalized = markdown.replace("\r\n", "\n")
    pieces = normalized.split(FENCE)
    return [CodeBlock(lines=tuple(piece.split("\n"))) for piece in pieces[1::2]]


def path_from_info_string(info_string: str) -> str | None:
    """规则 a：`typescript:src/App.tsx` -> `src/App.tsx`；只有语言 tag 没有路径时返回 None。"""
    match = _TAG_WITH_PATH_RE.match(info_string.strip())
    if match is None:
        return None
    path = match.group(1).strip()
    return path or None


def is_bare_language_tag(line: str) -> bool:
    return _BARE_TAG_RE.match(line.strip()) is not None


def _normalize_path_candidate(line: str) -> str | None:
    """去掉注释符号/反引号/结尾冒号，得到候选路径文本。"""
    stripped = line.strip()
    if not stripped or stripped.startswith(FENCE):
        return None
    for prefix in _COMMENT_PREFIXES:
        if stripped.startswith(prefix):
            stripped = stripped[len(prefix) :].strip()
            break
    for suffix in _COMMENT_SUFFIXES:
        if stripped.endswith(suffix):
            stripped = stripped[: -len(suffix)].strip()
            break
    stripped = stripped.strip("`").rstrip(":").strip()
    return stripped or None


def looks_like_path(candidate: str) -> bool:
    """包含路径分隔符，或以源码扩展名结尾，或以源码根目录开头（且没有非路径字符）。"""
    if not _PATH_CHARS_RE.match(candidate):
        return False
    return "/" in candidate or candidate.lower().endswith(SOURCE_EXTENSIONS) or candidate.startswith(SOURCE_ROOT)


def detect_path_line(lines: Sequence[str]) -> tuple[int, str] | None:
    """
    规则 b：返回第一行“看起来像路径”的 (行号, 路径)。

    已知歧义：内容里恰好像路径的行（例如某个无空格的 `a/b` 表达式）会被误判；
    这是 best-effort 分类器，误判的结果会在 Validator 的 root/扩展名检查里被挡住。
    """
    for index, line in enumerate(lines):
        candidate = _normalize_path_candidate(line)
        if candidate is None:
            continue
        if is_bare_language_tag(candidate):
            continue
        if looks_like_path(candidate):
            return index, candidate
    return None


def _trim_blank_lines(lines: Sequence[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return list(lines[start:end])


def extract_from_block(block: CodeBlock) -> FileChange | None:
    """对单个 block 应用两级规则；无法确定 path 或 content 时返回 None。"""
    if len(block.lines) < 2:
        logger.debug("Skipping code block: fewer than two lines")
        return None

    path = path_from_info_string(block.info_string)
    if path is not None:
        content = "\n".join(block.body)
    else:
        detected = detect_path_line(block.lines)
        if detected is None:
            logger.debug(f"Skipping code block without a path line (info string: {block.info_string!r})")
            return None
        path_index, path = detected
        kept = [
            line
            for index, line in enumerate(block.lines)
            if index != path_index and index != 0 and not is_bare_language_tag(line)
        ]
        content = "\n".join(_trim_blank_lines(kept))

    if not content.strip():
        logger.debug(f"Skipping code block for {path}: empty content")
        return None
    return FileChange(path=path, content=content)


def extract_file_changes(markdown: str) -> list[FileChange]:
    """
    从 markdown 中提取所有 `FileChange`，顺序与 block 在文档中的顺序一致。

    - 输入：模型回复原文
    - 输出：候选变更列表（可能为空；同一路径重复出现时由 planner 去重）
    """
    changes: list[FileChange] = []
    for block in split_code_blocks(markdown):
        change = extract_from_block(block)
        if change is not None:
            changes.append(change)
    logger.info(f"Extracted {len(changes)} file change(s) from model response")
    return changes
