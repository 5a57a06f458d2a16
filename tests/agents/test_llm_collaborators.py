"""Tests for the LLM-backed reasoning collaborators."""

import pytest

from autodidact.agents import LLMChangeProposer, LLMRootCauseReasoner, extract_json, parse_changes
from autodidact.modification import ChangeKind, Failure, FailureAnalysis, FailureKind
from autodidact.providers import LLMProvider, LLMResponse

ALLOWED = ["autodidact/session/orchestrator.py", "autodidact/knowledge/store.py"]


class FakeProvider(LLMProvider):
    def __init__(self, response):
        super().__init__()
        self.response = response
        self.prompts = []

    async def chat(self, messages, model=None, max_tokens=2048, temperature=0.3):
        self.prompts.append(messages[-1]["content"])
        return self.response

    def get_default_model(self):
        return "fake"


def _analysis():
    return FailureAnalysis(kind=FailureKind.TIMEOUT, root_cause="slow", can_self_modify=True)


class TestExtractJson:
    def test_fenced(self):
        assert extract_json('Here:\n```json\n[{"a": 1}]\n```\nDone') == '[{"a": 1}]'

    def test_bare(self):
        assert extract_json('Sure! [{"a": 1}] hope that helps') == '[{"a": 1}]'

    def test_none(self):
        assert extract_json("no json here") == ""


class TestParseChanges:
    def test_valid(self):
        text = (
            '[{"target_file": "autodidact/knowledge/store.py", "change_description": "add retry",'
            ' "reason": "flaky", "kind": "add_retry"}]'
        )
        result = parse_changes(text, ALLOWED)
        assert result.kind == "proposed"
        assert result.changes[0].kind == ChangeKind.ADD_RETRY
        assert result.changes[0].reason == "flaky"

    def test_kind_inferred_when_missing(self):
        text = '[{"target_file": "autodidact/knowledge/store.py", "change_description": "Increase timeout"}]'
        assert parse_changes(text).changes[0].kind == ChangeKind.INCREASE_TIMEOUT

    def test_drops_unknown_files_and_junk(self):
        text = '[{"target_file": "/etc/passwd"}, "junk", {"change_description": "no file"}]'
        result = parse_changes(text, ALLOWED)
        assert result.kind == "proposed"
        assert result.changes == []

    @pytest.mark.parametrize("text", ["I cannot help", "[not json]", '{"a": 1}'])
    def test_unparsable(self, text):
        result = parse_changes(text)
        assert result.kind == "unparsable"
        assert result.changes == []


class TestLLMChangeProposer:
    @pytest.mark.asyncio
    async def test_propose(self):
        provider = FakeProvider(LLMResponse(
            content='```json\n[{"target_file": "autodidact/session/orchestrator.py", '
                    '"change_description": "increase timeout", "reason": "slow"}]\n```'
        ))
        proposer = LLMChangeProposer(provider, ALLOWED)

        result = await proposer.propose(Failure(task="research", error="timeout"), _analysis())

        assert result.kind == "proposed"
        assert result.changes[0].target_file == "autodidact/session/orchestrator.py"
        assert "autodidact/knowledge/store.py" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_provider_error_is_unavailable(self):
        provider = FakeProvider(LLMResponse(content="API error (500)", finish_reason="error"))
        result = await LLMChangeProposer(provider, ALLOWED).propose(Failure(task="t", error="timeout"), _analysis())
        assert result.kind == "unavailable"


class TestLLMRootCauseReasoner:
    @pytest.mark.asyncio
    async def test_explain(self):
        provider = FakeProvider(LLMResponse(content="  The endpoint is slow.  "))
        text = await LLMRootCauseReasoner(provider).explain(Failure(task="t", error="timeout", stack="trace"))
        assert text == "The endpoint is slow."
        assert "trace" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_error_returns_empty(self):
        provider = FakeProvider(LLMResponse(content="Request failed", finish_reason="error"))
        assert await LLMRootCauseReasoner(provider).explain(Failure(task="t", error="x")) == ""
