"""LLM-backed reasoning collaborators for the modification ledger."""

import json
import logging
import re

from autodidact.agents.prompts import CHANGE_PROPOSAL_PROMPT, ROOT_CAUSE_PROMPT, SYSTEM_PROMPT
from autodidact.modification.classifier import categorize_failure, infer_change_kind
from autodidact.modification.collaborators import ChangeProposer, ProposalResult, RootCauseReasoner
from autodidact.modification.models import Change, ChangeKind, Failure, FailureAnalysis
from autodidact.providers.base import LLMProvider

logger = logging.getLogger(__name__)


def extract_json(text: str) -> str:
    """Extract a JSON array from model output, handling markdown code fences."""
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    bracket_match = re.search(r"\[.*\]", text, re.DOTALL)
    if bracket_match:
        return bracket_match.group(0).strip()

    return ""


def parse_changes(text: str, allowed_files: list[str] | None = None) -> ProposalResult:
    """Turn raw model output into a tagged proposal.

    Items that are not objects or lack a target file are dropped; when
    ``allowed_files`` is given, changes to other files are dropped too.
    """
    json_str = extract_json(text)
    if not json_str:
        return ProposalResult.unparsable(text)
    try:
        raw_changes = json.loads(json_str)
    except json.JSONDecodeError:
        return ProposalResult.unparsable(text)
    if not isinstance(raw_changes, list):
        return ProposalResult.unparsable(text)

    changes = []
    for raw in raw_changes:
        if not isinstance(raw, dict):
            continue
        target = str(raw.get("target_file") or "").strip()
        if not target:
            continue
        if allowed_files is not None and target not in allowed_files:
            logger.debug("Dropping change to non-configured file %s", target)
            continue

        description = str(raw.get("change_description") or "")
        try:
            kind = ChangeKind(raw["kind"])
        except (KeyError, ValueError):
            kind = infer_change_kind(description)

        changes.append(Change(
            target_file=target,
            change_description=description,
            reason=str(raw.get("reason") or ""),
            kind=kind,
        ))
    return ProposalResult.proposed(changes)


class LLMRootCauseReasoner(RootCauseReasoner):
    """Asks the model for a short root-cause explanation."""

    def __init__(self, provider: LLMProvider, model: str | None = None):
        self.provider = provider
        self.model = model

    async def explain(self, failure: Failure) -> str:
        prompt = ROOT_CAUSE_PROMPT.format(
            task=failure.task,
            error=failure.error,
            kind=categorize_failure(failure).value,
            stack=failure.stack or "(none)",
        )
        response = await self.provider.complete(prompt, model=self.model, max_tokens=200, system=SYSTEM_PROMPT)
        if response.is_error:
            logger.warning("Root-cause reasoning unavailable: %s", response.content)
            return ""
        return (response.content or "").strip()


class LLMChangeProposer(ChangeProposer):
    """Asks the model for a JSON list of changes to the configured files."""

    def __init__(self, provider: LLMProvider, allowed_files: list[str], model: str | None = None):
        self.provider = provider
        self.allowed_files = list(allowed_files)
        self.model = model

    async def propose(self, failure: Failure, analysis: FailureAnalysis) -> ProposalResult:
        prompt = CHANGE_PROPOSAL_PROMPT.format(
            task=failure.task,
            error=failure.error,
            kind=analysis.kind.value,
            root_cause=analysis.root_cause,
            files="\n".join(f"- {f}" for f in self.allowed_files),
        )
        response = await self.provider.complete(prompt, model=self.model, system=SYSTEM_PROMPT)
        if response.is_error:
            return ProposalResult.unavailable(response.content or "")
        return parse_changes(response.content or "", self.allowed_files)
