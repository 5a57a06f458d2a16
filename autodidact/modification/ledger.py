"""Modification ledger - backup, apply, test and record self-modifications."""

import ast
import logging
import threading
from datetime import datetime
from pathlib import Path

from autodidact.errors import NotFoundError, StorageError
from autodidact.ids import new_id
from autodidact.jsonio import append_jsonl, atomic_write_json, atomic_write_text, read_json, read_jsonl
from autodidact.modification import classifier
from autodidact.modification.collaborators import ChangeProposer, RootCauseReasoner
from autodidact.modification.models import (
    Backup,
    BackupFile,
    Change,
    ChangeResult,
    ChangeStatus,
    Failure,
    FailureAnalysis,
    FailureKind,
    ImprovementOutcome,
    ModificationPhase,
    ModificationRecord,
    TestResult,
)
from autodidact.modification.patching import ManualPatchStrategy, PatchNotApplicable, PatchStrategy

logger = logging.getLogger(__name__)

ROOT_CAUSE_TEMPLATES: dict[FailureKind, str] = {
    FailureKind.TIMEOUT: "Operation '{task}' exceeded its time limit.",
    FailureKind.SYNTAX_ERROR: "Source involved in '{task}' contains invalid syntax.",
    FailureKind.IMPORT_ERROR: "A module required by '{task}' could not be imported.",
    FailureKind.API_ERROR: "An external API call in '{task}' failed or was rejected.",
    FailureKind.RESOURCE_ERROR: "'{task}' ran out of memory or another resource.",
    FailureKind.BROWSER_ERROR: "Browser automation in '{task}' failed.",
    FailureKind.UNKNOWN: "'{task}' failed for an unrecognized reason.",
}


class ModificationLedger:
    """Owns backups of a configured file set and the modification history.

    Layout under ``storage_dir``::

        backups/<backup_id>.json   one snapshot per file
        changes.jsonl              every successfully applied change
        history.jsonl              one ModificationRecord per cycle

    File paths in backups and changes are relative to ``project_root``.
    """

    def __init__(
        self,
        project_root: Path,
        storage_dir: Path,
        backup_files: list[str],
        entry_point: str = "autodidact/__init__.py",
        max_backups: int = 5,
        patch_strategy: PatchStrategy | None = None,
        proposer: ChangeProposer | None = None,
        reasoner: RootCauseReasoner | None = None,
    ):
        self.project_root = Path(project_root)
        self.storage_dir = Path(storage_dir)
        self.backup_files = list(backup_files)
        self.entry_point = entry_point
        self.max_backups = max(1, max_backups)
        self.patch_strategy = patch_strategy or ManualPatchStrategy()
        self.proposer = proposer
        self.reasoner = reasoner
        self.phase = ModificationPhase.IDLE

        self._backups_dir = self.storage_dir / "backups"
        self._changes_path = self.storage_dir / "changes.jsonl"
        self._history_path = self.storage_dir / "history.jsonl"
        self._lock = threading.RLock()
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def categorize_failure(self, failure: Failure) -> FailureKind:
        return classifier.categorize_failure(failure)

    def can_self_modify(self, failure: Failure) -> bool:
        return classifier.can_self_modify(failure)

    async def analyze(self, failure: Failure) -> FailureAnalysis:
        kind = self.categorize_failure(failure)
        root_cause = ""
        if self.reasoner is not None:
            try:
                root_cause = (await self.reasoner.explain(failure)).strip()
            except Exception as e:
                logger.warning("Root-cause reasoning failed: %s", e)
        if not root_cause:
            root_cause = ROOT_CAUSE_TEMPLATES[kind].format(task=failure.task)

        return FailureAnalysis(
            kind=kind,
            root_cause=root_cause,
            can_self_modify=kind in classifier.SELF_MODIFIABLE,
        )

    async def propose_changes(self, failure: Failure, analysis: FailureAnalysis) -> list[Change]:
        """Ask the proposer for changes; any failure yields an empty list."""
        if self.proposer is None:
            return []
        try:
            result = await self.proposer.propose(failure, analysis)
        except Exception as e:
            logger.warning("Change proposal failed: %s", e)
            return []

        if result.kind != "proposed":
            logger.warning("Change proposal %s: %s", result.kind, result.raw[:200])
            return []
        return list(result.changes)

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def backup(self) -> Backup:
        """Snapshot the configured files. Missing files are skipped.

        Raises StorageError when the snapshot cannot be written.
        """
        with self._lock:
            files = []
            for rel in self.backup_files:
                path = self.project_root / rel
                if not path.is_file():
                    logger.debug("Skipping missing backup file %s", rel)
                    continue
                try:
                    files.append(BackupFile(path=rel, content=path.read_text(encoding="utf-8")))
                except OSError as e:
                    raise StorageError(f"Failed to read {path} for backup: {e}") from e

            backup = Backup(id=f"backup_{new_id()}", timestamp=datetime.now(), files=tuple(files))
            atomic_write_json(self._backups_dir / f"{backup.id}.json", backup.to_dict())
            self._evict_old_backups()
            logger.info("Created backup %s (%d files)", backup.id, len(files))
            return backup

    def _evict_old_backups(self) -> None:
        backups = self.list_backups()
        for stale in backups[self.max_backups:]:
            try:
                (self._backups_dir / f"{stale.id}.json").unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise StorageError(f"Failed to remove backup {stale.id}: {e}") from e

    def list_backups(self) -> list[Backup]:
        """All retained backups, newest first."""
        backups = []
        for path in self._backups_dir.glob("backup_*.json"):
            data = read_json(path)
            if not isinstance(data, dict):
                continue
            try:
                backups.append(Backup.from_dict(data))
            except (KeyError, ValueError, TypeError):
                continue
        backups.sort(key=lambda b: (b.timestamp, b.id), reverse=True)
        return backups

    def get_backup(self, backup_id: str) -> Backup:
        data = read_json(self._backups_dir / f"{backup_id}.json")
        if not isinstance(data, dict):
            raise NotFoundError(f"Unknown backup: {backup_id}")
        return Backup.from_dict(data)

    def revert(self, backup_id: str) -> list[str]:
        """Restore every file in the backup. Returns the restored paths."""
        with self._lock:
            backup = self.get_backup(backup_id)
            for f in backup.files:
                atomic_write_text(self.project_root / f.path, f.content)
            logger.info("Reverted to backup %s", backup_id)
            return [f.path for f in backup.files]

    # ------------------------------------------------------------------
    # Apply / test
    # ------------------------------------------------------------------

    def apply(self, changes: list[Change]) -> list[ChangeResult]:
        """Apply each change independently; one failure does not stop the rest."""
        results = []
        with self._lock:
            for change in changes:
                result = self._apply_one(change)
                results.append(result)
                if result.success:
                    append_jsonl(self._changes_path, {
                        **change.to_dict(),
                        "status": result.status.value,
                        "timestamp": datetime.now().isoformat(),
                    })
        return results

    def _is_backed_up(self, path: Path) -> bool:
        """True when ``path`` is one of the configured backup files inside the project."""
        root = self.project_root.resolve()
        resolved = path.resolve()
        if not resolved.is_relative_to(root):
            return False
        return resolved in {(self.project_root / f).resolve() for f in self.backup_files}

    def _apply_one(self, change: Change) -> ChangeResult:
        path = self.project_root / change.target_file
        if not path.is_file():
            return ChangeResult(change.target_file, ChangeStatus.FAILED, error="file_not_found")
        # Revert can only restore what backup() captured.
        if not self._is_backed_up(path):
            return ChangeResult(change.target_file, ChangeStatus.FAILED, error="not_backed_up")

        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            return ChangeResult(change.target_file, ChangeStatus.FAILED, error=str(e))

        try:
            patched = self.patch_strategy.patch(source, change)
        except PatchNotApplicable as e:
            return ChangeResult(change.target_file, ChangeStatus.FAILED, error=str(e))

        if patched is None:
            return ChangeResult(change.target_file, ChangeStatus.MANUAL)

        try:
            atomic_write_text(path, patched)
        except StorageError as e:
            return ChangeResult(change.target_file, ChangeStatus.FAILED, error=str(e))
        return ChangeResult(change.target_file, ChangeStatus.APPLIED)

    def test(self) -> TestResult:
        """Check that the entry point still parses."""
        path = self.project_root / self.entry_point
        try:
            source = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return TestResult(success=False, error=f"entry point not found: {self.entry_point}")
        except OSError as e:
            return TestResult(success=False, error=str(e))

        try:
            ast.parse(source, filename=str(path))
        except SyntaxError as e:
            return TestResult(success=False, error=f"{e.msg} (line {e.lineno})")
        return TestResult(success=True)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def history(self) -> list[ModificationRecord]:
        records = []
        for data in read_jsonl(self._history_path):
            try:
                records.append(ModificationRecord.from_dict(data))
            except (KeyError, ValueError, TypeError):
                continue
        return records

    def change_log(self) -> list[dict]:
        return read_jsonl(self._changes_path)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def improve(self, failure: Failure) -> ImprovementOutcome:
        """Run one analyze -> propose -> backup -> apply -> test -> record cycle.

        A failed test does not revert; the backup id is in the record.
        StorageError from backup or record propagates.
        """
        self.phase = ModificationPhase.ANALYZING
        analysis = await self.analyze(failure)
        if not analysis.can_self_modify:
            self.phase = ModificationPhase.NOT_MODIFIABLE
            logger.info("Failure in %s (%s) needs human intervention", failure.task, analysis.kind.value)
            return ImprovementOutcome(improved=False, reason="cannot_self_modify", analysis=analysis)

        self.phase = ModificationPhase.PROPOSING
        changes = await self.propose_changes(failure, analysis)

        self.phase = ModificationPhase.BACKING_UP
        backup = self.backup()

        self.phase = ModificationPhase.APPLYING
        results = self.apply(changes)

        self.phase = ModificationPhase.TESTING
        test_result = self.test()
        if not test_result.success:
            logger.warning("Post-modification test failed (backup %s): %s", backup.id, test_result.error)

        record = ModificationRecord(
            failure=failure,
            root_cause_summary=analysis.root_cause,
            can_self_modify=True,
            proposed_changes=changes,
            applied_results=results,
            test_result=test_result,
            backup_id=backup.id,
        )
        append_jsonl(self._history_path, record.to_dict())
        self.phase = ModificationPhase.RECORDED

        return ImprovementOutcome(
            improved=test_result.success,
            reason="tests_passed" if test_result.success else "tests_failed",
            analysis=analysis,
            record=record,
        )
