"""Collaborator implementations: offline placeholders and LLM-backed reasoners."""

from autodidact.agents.llm import LLMChangeProposer, LLMRootCauseReasoner, extract_json, parse_changes
from autodidact.agents.placeholders import (
    HintScorer,
    KnowledgeSynthesizer,
    MetricsReflector,
    PlaceholderProducer,
    StoreVerifier,
)
from autodidact.modification.collaborators import ChangeProposer, ProposalResult, RootCauseReasoner
from autodidact.session.collaborators import (
    ProductionResult,
    Producer,
    Reflection,
    Reflector,
    Scorer,
    Synthesizer,
    VerificationResult,
    Verifier,
)

__all__ = [
    "ChangeProposer",
    "HintScorer",
    "KnowledgeSynthesizer",
    "LLMChangeProposer",
    "LLMRootCauseReasoner",
    "MetricsReflector",
    "PlaceholderProducer",
    "ProductionResult",
    "Producer",
    "ProposalResult",
    "Reflection",
    "Reflector",
    "RootCauseReasoner",
    "Scorer",
    "StoreVerifier",
    "Synthesizer",
    "VerificationResult",
    "Verifier",
    "extract_json",
    "parse_changes",
]
