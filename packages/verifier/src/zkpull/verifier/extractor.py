"""ProofExtractor -- 从证明 payload 中提取 context 事实

1. 按文档顺序遍历 payload，收集所有 "context" 键的 JSON 文本片段（至少两个）
2. 逐个独立解析；解析失败的片段退化为空记录，只影响依赖它的事实
3. 在解析结果中深度优先查找 merged / login / id 字段

subject 身份按位置确定：第一个片段属于 PR 证明，第二个属于用户证明。
payload 中没有结构化标记可以确认这一点，这是证明服务构造 payload 的约定。
"""

import json
import re
from collections.abc import Iterator
from typing import Any

import structlog
from zkpull.core.exceptions import ExtractionError
from zkpull.core.models import ExtractedFacts, ProofPayload

log = structlog.get_logger()

CONTEXT_KEY = "context"
MIN_CONTEXT_FRAGMENTS = 2

_MERGED_VALUE = re.compile(r"\w+")
_LOGIN_VALUE = re.compile(r'[^"]+')
_ID_VALUE = re.compile(r"\d+")


def iter_context_fragments(node: Any) -> Iterator[str]:
    """按文档顺序产出所有 context 文本片段（以 '{' 开头的字符串值）"""
    if isinstance(node, dict):
        for key, value in node.items():
            if key == CONTEXT_KEY and isinstance(value, str):
                if value.lstrip().startswith("{"):
                    yield value
                continue
            yield from iter_context_fragments(value)
    elif isinstance(node, list):
        for item in node:
            yield from iter_context_fragments(item)


def parse_fragment(fragment: str) -> Any:
    """解析单个 context 片段，失败时返回空记录"""
    try:
        return json.loads(fragment)
    except ValueError as e:
        log.warning("context_fragment_unparseable", error=str(e))
        return {}


def find_first(node: Any, key: str, pattern: re.Pattern[str]) -> str | None:
    """深度优先查找第一个值为字符串且完整匹配 pattern 的 key"""
    if isinstance(node, dict):
        for k, value in node.items():
            if k == key and isinstance(value, str) and pattern.fullmatch(value):
                return value
            found = find_first(value, key, pattern)
            if found is not None:
                return found
    elif isinstance(node, list):
        for item in node:
            found = find_first(item, key, pattern)
            if found is not None:
                return found
    return None


class ProofExtractor:
    """证明 payload 事实提取器"""

    def extract(self, payload: ProofPayload) -> ExtractedFacts:
        """提取 PR 与用户两个 context 中的字段

        Raises:
            ExtractionError: context 片段少于两个
        """
        fragments = list(iter_context_fragments(payload.to_wire()))
        if len(fragments) < MIN_CONTEXT_FRAGMENTS:
            raise ExtractionError(
                f"无法从证明中提取 context（找到 {len(fragments)} 个，至少需要 "
                f"{MIN_CONTEXT_FRAGMENTS} 个）",
                recoverable=False,
            )

        pr_context = parse_fragment(fragments[0])
        user_context = parse_fragment(fragments[1])

        return ExtractedFacts(
            merged=find_first(pr_context, "merged", _MERGED_VALUE),
            pr_login=find_first(pr_context, "login", _LOGIN_VALUE),
            pr_id=find_first(pr_context, "id", _ID_VALUE),
            user_login=find_first(user_context, "login", _LOGIN_VALUE),
            user_id=find_first(user_context, "id", _ID_VALUE),
        )
