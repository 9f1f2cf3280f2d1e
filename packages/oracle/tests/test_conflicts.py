"""领取冲突分类测试

只有已知 custom error 名称与 selector 被分类为 ConflictError，
自由文本中包含相似字样不构成冲突。
"""

import pytest
from zkpull.core.exceptions import ConflictError
from zkpull.oracle import (
    CONFLICT_SELECTORS,
    RevertInfo,
    classify_revert,
    parse_revert_reason,
    raise_for_revert,
)


class TestParseRevertReason:
    def test_strips_prefix(self):
        assert parse_revert_reason("execution reverted: TaskAlreadyAssigned") == (
            "TaskAlreadyAssigned"
        )

    def test_strips_arguments(self):
        assert parse_revert_reason("execution reverted: TaskAlreadyAssigned(12)") == (
            "TaskAlreadyAssigned"
        )

    def test_plain_name(self):
        assert parse_revert_reason("InvalidTaskStatus") == "InvalidTaskStatus"

    @pytest.mark.parametrize("message", [None, "", "   ", "execution reverted:"])
    def test_empty(self, message):
        assert parse_revert_reason(message) is None


class TestClassifyRevert:
    def test_error_name(self):
        assert classify_revert(RevertInfo(reason="TaskAlreadyAssigned")) == "TaskAlreadyAssigned"

    @pytest.mark.parametrize("selector", sorted(CONFLICT_SELECTORS))
    def test_known_selectors(self, selector):
        """selector 后带 ABI 编码参数同样命中"""
        data = selector + "00" * 32
        assert classify_revert(RevertInfo(data=data)) == selector

    def test_selector_case_and_prefix_insensitive(self):
        assert classify_revert(RevertInfo(data="48780F5A")) == "0x48780f5a"

    def test_unrelated_revert(self):
        assert classify_revert(RevertInfo(reason="NotAssignedOperator", data="0xdeadbeef")) is None

    def test_substring_does_not_match(self):
        """自由文本中出现错误名不算冲突"""
        info = RevertInfo(reason="gas estimation failed near TaskAlreadyAssigned")
        assert classify_revert(info) is None

    def test_short_data_ignored(self):
        assert RevertInfo(data="0x4878").selector is None


class TestRaiseForRevert:
    def test_raises_conflict(self):
        original = RuntimeError("execution reverted: TaskAlreadyAssigned")
        with pytest.raises(ConflictError) as exc_info:
            raise_for_revert(5, RevertInfo(reason="TaskAlreadyAssigned"), original)
        assert exc_info.value.task_id == 5
        assert exc_info.value.__cause__ is original

    def test_returns_for_non_conflict(self):
        assert raise_for_revert(5, RevertInfo(reason="Paused"), RuntimeError()) is None
