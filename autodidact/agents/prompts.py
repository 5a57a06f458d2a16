"""Prompt templates for the LLM-backed collaborators."""

SYSTEM_PROMPT = "You are the maintenance engineer of an autonomous research agent."

ROOT_CAUSE_PROMPT = """A task failed.

## Failure
Task: {task}
Error: {error}
Category: {kind}

## Stack
{stack}

Explain the most likely root cause in one or two sentences. Respond with plain text only."""

CHANGE_PROPOSAL_PROMPT = """A task failed and was classified as self-modifiable.

## Failure
Task: {task}
Error: {error}
Category: {kind}
Root cause: {root_cause}

## Files you may change
{files}

## Instructions
Propose the smallest set of changes that would prevent this failure. Each change must target one of the files above.

Each change has:
- "target_file": path from the list above
- "change_description": what to change, e.g. "increase timeout on the fetch call" or "add retry with backoff"
- "reason": why this fixes the failure
- "kind": one of "increase_timeout", "add_retry", "add_error_handling", "note"

Respond with ONLY a JSON array. An empty array means no change is needed. Example:
```json
[
  {{"target_file": "autodidact/session/orchestrator.py", "change_description": "increase timeout for research calls", "reason": "requests exceed the current limit", "kind": "increase_timeout"}}
]
```"""
