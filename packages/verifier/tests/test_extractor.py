"""ProofExtractor 测试

覆盖：按文档顺序收集 context 片段、片段不足报错、
单个片段损坏只影响依赖它的字段、值格式约束。
"""

import re

import pytest
from zkpull.core.exceptions import ExtractionError
from zkpull.core.models import ProofPayload
from zkpull.verifier import ProofExtractor
from zkpull.verifier.extractor import find_first, iter_context_fragments, parse_fragment


@pytest.fixture
def extractor():
    return ProofExtractor()


class TestContextFragments:
    def test_document_order(self):
        node = {
            "a": {"context": '{"n": 1}'},
            "b": [{"context": '{"n": 2}'}, {"nested": {"context": '{"n": 3}'}}],
        }
        assert list(iter_context_fragments(node)) == ['{"n": 1}', '{"n": 2}', '{"n": 3}']

    def test_non_json_context_skipped(self):
        """非对象形式的 context 值不计入片段"""
        node = {"context": "plain text", "x": {"context": 5}, "y": {"context": ' {"ok": 1}'}}
        assert list(iter_context_fragments(node)) == [' {"ok": 1}']

    def test_parse_fragment_malformed(self):
        assert parse_fragment('{"login": ') == {}

    def test_find_first_depth_first(self):
        node = {"outer": {"inner": {"id": "12"}}, "id": "99"}
        assert find_first(node, "id", re.compile(r"\d+")) == "12"

    def test_find_first_requires_full_match(self):
        node = {"id": "12abc", "more": {"id": "34"}}
        assert find_first(node, "id", re.compile(r"\d+")) == "34"


class TestProofExtractor:
    def test_extracts_both_subjects(self, extractor, make_payload):
        facts = extractor.extract(make_payload())
        assert facts.merged == "true"
        assert (facts.pr_login, facts.pr_id) == ("alice", "7")
        assert (facts.user_login, facts.user_id) == ("alice", "7")

    def test_fewer_than_two_fragments(self, extractor):
        payload = ProofPayload(
            pr_proof={"claimInfo": {"context": '{"merged": "true"}'}},
            user_proof={"claimInfo": {"parameters": "{}"}},
        )
        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract(payload)
        assert not exc_info.value.recoverable

    def test_no_fragments(self, extractor):
        with pytest.raises(ExtractionError):
            extractor.extract(ProofPayload(pr_proof={"x": 1}, user_proof={"y": 2}))

    def test_malformed_user_fragment_degrades_user_facts(self, extractor, make_payload):
        """用户片段损坏：PR 侧字段不受影响"""
        facts = extractor.extract(make_payload(user_context='{"login": "alice", '))
        assert facts.merged == "true"
        assert facts.pr_login == "alice"
        assert facts.user_login is None
        assert facts.user_id is None

    def test_malformed_pr_fragment_degrades_pr_facts(self, extractor, make_payload):
        facts = extractor.extract(make_payload(pr_context="{broken"))
        assert facts.merged is None
        assert facts.pr_login is None
        assert facts.user_login == "alice"

    def test_non_numeric_id_ignored(self, extractor, make_payload):
        facts = extractor.extract(make_payload(pr_id="seven"))
        assert facts.pr_id is None

    def test_fragment_order_decides_subject(self, extractor, make_payload):
        """第一个片段属于 PR 证明"""
        facts = extractor.extract(make_payload(pr_login="bob", user_login="carol"))
        assert facts.pr_login == "bob"
        assert facts.user_login == "carol"
