"""领取冲突分类

将 oracle 写入失败的 revert 信息翻译为结构化的冲突结果。
只比较 custom error 名称与 4 字节 selector，不对自由文本做子串匹配。
"""

from dataclasses import dataclass

from zkpull.core.exceptions import ConflictError

# AVS 合约 TaskAlreadyAssigned 及其历史部署版本的 selector
TASK_ALREADY_ASSIGNED = "TaskAlreadyAssigned"
CONFLICT_ERROR_NAMES: frozenset[str] = frozenset({TASK_ALREADY_ASSIGNED})
CONFLICT_SELECTORS: frozenset[str] = frozenset({"0x48780f5a", "0x27e1f1e5"})

_REVERT_PREFIX = "execution reverted:"


@dataclass(frozen=True, slots=True)
class RevertInfo:
    """从写入失败中解析出的 revert 信息"""

    reason: str | None = None
    data: str | None = None

    @property
    def selector(self) -> str | None:
        """revert data 的 4 字节 selector（小写 0x 前缀）"""
        if not self.data:
            return None
        data = self.data.lower()
        if not data.startswith("0x"):
            data = f"0x{data}"
        if len(data) < 10:
            return None
        return data[:10]


def parse_revert_reason(message: str | None) -> str | None:
    """解析 'execution reverted: X' 形式的 revert 原因

    自定义错误的原因可能带参数列表（X(uint256)），只取错误名。
    """
    if not message:
        return None
    text = message.strip()
    if text.lower().startswith(_REVERT_PREFIX):
        text = text[len(_REVERT_PREFIX):].strip()
    name = text.split("(", 1)[0].strip()
    return name or None


def classify_revert(info: RevertInfo) -> str | None:
    """判断 revert 是否属于已知冲突签名

    Returns:
        命中的签名（错误名或 selector），未命中返回 None
    """
    if info.reason in CONFLICT_ERROR_NAMES:
        return info.reason
    selector = info.selector
    if selector in CONFLICT_SELECTORS:
        return selector
    return None


def raise_for_revert(task_id: int, info: RevertInfo, error: Exception) -> None:
    """revert 命中冲突签名时抛出 ConflictError，否则直接返回由调用方处理"""
    signature = classify_revert(info)
    if signature is not None:
        raise ConflictError(task_id, signature) from error
