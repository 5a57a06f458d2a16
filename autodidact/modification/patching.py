"""Patch strategies - how a proposed Change is turned into new file text.

The ledger never edits source itself; it hands each change to the
configured strategy and writes back whatever the strategy returns.
"""

import re
from abc import ABC, abstractmethod

from autodidact.modification.models import Change, ChangeKind

_TIMEOUT_RE = re.compile(r"(timeout\s*[=:]\s*)(\d+(?:\.\d+)?)", re.IGNORECASE)
_TOP_LEVEL_DEF_RE = re.compile(r"^(?:async\s+def|def|class)\s+\w+", re.MULTILINE)


class PatchNotApplicable(ValueError):
    """The strategy cannot apply this change to this file."""


class PatchStrategy(ABC):
    """Turns a change into new file content."""

    name: str = "abstract"

    @abstractmethod
    def patch(self, source: str, change: Change) -> str | None:
        """Return the patched source, or None when the change is left for a human."""


class ManualPatchStrategy(PatchStrategy):
    """Records changes without touching any file."""

    name = "manual"

    def patch(self, source: str, change: Change) -> str | None:
        return None


class TextualPatchStrategy(PatchStrategy):
    """Small, reviewable text edits, one method per change kind."""

    name = "textual"

    def patch(self, source: str, change: Change) -> str | None:
        handlers = {
            ChangeKind.INCREASE_TIMEOUT: self.increase_timeout,
            ChangeKind.ADD_RETRY: self.add_retry,
            ChangeKind.ADD_ERROR_HANDLING: self.add_error_handling,
            ChangeKind.NOTE: self.add_note,
        }
        return handlers[change.kind](source, change)

    def increase_timeout(self, source: str, change: Change) -> str:
        """Double the first ``timeout = N`` / ``timeout: N`` literal."""
        match = _TIMEOUT_RE.search(source)
        if match is None:
            raise PatchNotApplicable("no timeout setting found")

        raw = match.group(2)
        doubled = float(raw) * 2
        new_value = str(int(doubled)) if "." not in raw else str(doubled)
        return source[: match.start(2)] + new_value + source[match.end(2):]

    def add_retry(self, source: str, change: Change) -> str:
        """Mark the first top-level definition as needing retry logic."""
        return self._insert_before_first_def(
            source, f"# TODO(autodidact): add retry - {change.change_description}"
        )

    def add_error_handling(self, source: str, change: Change) -> str:
        """Mark the first top-level definition as needing error handling."""
        return self._insert_before_first_def(
            source, f"# TODO(autodidact): add error handling - {change.change_description}"
        )

    def add_note(self, source: str, change: Change) -> str:
        suffix = "" if source.endswith("\n") or not source else "\n"
        return f"{source}{suffix}# autodidact note: {change.change_description}\n"

    @staticmethod
    def _insert_before_first_def(source: str, line: str) -> str:
        match = _TOP_LEVEL_DEF_RE.search(source)
        if match is None:
            raise PatchNotApplicable("no top-level definition found")
        return f"{source[:match.start()]}{line}\n{source[match.start():]}"


def get_patch_strategy(name: str) -> PatchStrategy:
    if name == "textual":
        return TextualPatchStrategy()
    if name == "manual":
        return ManualPatchStrategy()
    raise ValueError(f"Unknown patch strategy: {name}")
