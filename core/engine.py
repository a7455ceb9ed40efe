# =============================================================================
# core/engine.py - Inactivity evaluation and remediation run
# =============================================================================

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple, Union

from core.activity import inactivity_days
from core.decision import decide_action, disabled_since_export, needs_disable_call
from core.exceptions import ActivityUnavailableError, DirectoryLookupError, SessionError
from core.models import (
    AccountRecord, ActionDecision, ActionResult, ActionTaken, EntryStatus, ResultEntry,
    RunResult, RunSummary, SkipReason, Thresholds
)
from core.notifications import NotificationComposer
from core.owner_resolver import OwnerResolver
from core.snapshot import resolve_snapshot


@dataclass(frozen=True)
class AccountOutcome:
    """Continue the run with this entry"""
    entry: ResultEntry


@dataclass(frozen=True)
class RunAbort:
    """Stop the run; nothing after this account is processed"""
    reason: str


StepResult = Union[AccountOutcome, RunAbort]


class ExternalSession:
    """Connects a set of clients together and releases them together"""

    def __init__(self, *clients: Any):
        self.clients = [c for c in clients if c is not None]
        self.connected: List[Any] = []
        self.logger = logging.getLogger(self.__class__.__name__)

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def connect(self) -> None:
        for client in self.clients:
            try:
                client.connect()
            except Exception as e:
                self.disconnect()
                raise SessionError(f"{client.__class__.__name__}: {e}") from e
            self.connected.append(client)

    def disconnect(self) -> None:
        while self.connected:
            client = self.connected.pop()
            try:
                client.disconnect()
            except Exception as e:
                self.logger.warning(f"Failed to disconnect {client.__class__.__name__}: {e}")


class InactivityEngine:
    """Evaluates a batch of privileged accounts and applies one action per account"""

    def __init__(self, directory: Any, cloud: Any, remediator: Any, notifier: Any,
                 owner_resolver: OwnerResolver, thresholds: Thresholds,
                 deletion_enabled: bool = False, sender: str = "",
                 session: Optional[Any] = None, dry_run: bool = False,
                 composer: Optional[NotificationComposer] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.directory = directory
        self.cloud = cloud
        self.remediator = remediator
        self.notifier = notifier
        self.owner_resolver = owner_resolver
        self.thresholds = thresholds
        self.deletion_enabled = deletion_enabled
        self.sender = sender
        self.session = session
        self.dry_run = dry_run
        self.composer = composer or NotificationComposer(thresholds, deletion_enabled)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(self.__class__.__name__)

    def run(self, records: List[AccountRecord], session_established: bool = False) -> RunResult:
        """Process every record and always return a complete RunResult"""
        eligible = [r for r in records if r.user_principal_name and r.user_principal_name.strip()]
        excluded = len(records) - len(eligible)
        if excluded:
            self.logger.warning(f"Ignoring {excluded} rows without a UserPrincipalName")

        mode = "DRY RUN" if self.dry_run else "LIVE"
        self.logger.info(f"Starting {mode} evaluation of {len(eligible)} accounts "
                         f"(warn={self.thresholds.warn}, disable={self.thresholds.disable}, "
                         f"delete={self.thresholds.delete}, deletion_enabled={self.deletion_enabled})")

        manage_session = self.session is not None and not session_established
        if manage_session:
            try:
                self.session.connect()
            except Exception as e:
                message = f"Session acquisition failed: {e}"
                self.logger.error(message)
                return self._build_result(eligible, [], message)

        try:
            processed, abort_reason = self._process(eligible)
        finally:
            if manage_session:
                self._release_session()

        return self._build_result(eligible, processed, abort_reason)

    def _process(self, records: List[AccountRecord]) -> Tuple[List[Tuple[AccountRecord, ResultEntry]], Optional[str]]:
        processed = []
        for record in records:
            try:
                outcome = self.evaluate(record)
            except Exception as e:
                self.logger.error(f"Unexpected failure evaluating {record.user_principal_name}: {e}")
                outcome = AccountOutcome(self._entry(record, EntryStatus.ERROR, error=str(e)))

            if isinstance(outcome, RunAbort):
                self.logger.error(f"Aborting run: {outcome.reason}")
                return processed, outcome.reason
            processed.append((record, outcome.entry))
        return processed, None

    def _release_session(self) -> None:
        try:
            self.session.disconnect()
        except Exception as e:
            self.logger.warning(f"Session release failed: {e}")

    def evaluate(self, record: AccountRecord) -> StepResult:
        """Run one account through snapshot, activity, policy, owner, notify and remediate"""
        upn = record.user_principal_name

        try:
            snapshot = resolve_snapshot(record, self.directory, self.cloud)
        except DirectoryLookupError as e:
            self.logger.error(f"Lookup failed for {upn}: {e}")
            return AccountOutcome(self._entry(record, EntryStatus.ERROR, error=str(e)))

        if disabled_since_export(record.enabled, snapshot.enabled):
            self.logger.info(f"{upn} was disabled after the export was taken, skipping")
            return AccountOutcome(self._entry(record, EntryStatus.SKIPPED,
                                              skip_reason=SkipReason.DISABLED_SINCE_EXPORT))

        try:
            days = inactivity_days(snapshot, record, self.clock())
        except ActivityUnavailableError as e:
            self.logger.error(f"{upn}: {e}")
            return AccountOutcome(self._entry(record, EntryStatus.ERROR, error=str(e)))

        decision = decide_action(days, self.thresholds, self.deletion_enabled)
        if decision.action == ActionTaken.NONE:
            self.logger.debug(f"{upn} active {days} days ago, no action")
            return AccountOutcome(self._entry(record, EntryStatus.SKIPPED, inactive_days=days,
                                              skip_reason=SkipReason.ACTIVITY_DETECTED))

        owner = self.owner_resolver.resolve(
            sam_account_name=record.sam_account_name,
            extension_attribute=snapshot.extension_attribute,
            object_id=record.object_id
        )
        if not owner.is_resolved:
            self.logger.warning(f"No owner found for {upn}, skipping")
            return AccountOutcome(self._entry(record, EntryStatus.SKIPPED, inactive_days=days,
                                              skip_reason=SkipReason.NO_OWNER_FOUND))
        if not owner.email:
            self.logger.warning(f"Owner {owner.owner_id} of {upn} has no email address, skipping")
            return AccountOutcome(self._entry(record, EntryStatus.SKIPPED, inactive_days=days,
                                              owner_strategy=owner.strategy,
                                              skip_reason=SkipReason.NO_EMAIL_FOUND))

        if self.dry_run:
            self.logger.info(f"[DRY RUN] {upn}: {decision.action.value} ({days} days), "
                             f"would notify {owner.email}")
            return AccountOutcome(self._entry(record, EntryStatus.COMPLETED, inactive_days=days,
                                              decision=decision, recipient=owner.email,
                                              owner_strategy=owner.strategy))

        notice = self.composer.compose(record, decision.stage, days)
        try:
            self.notifier.send(self.sender, [owner.email], notice.subject, notice.body)
        except Exception as e:
            return RunAbort(f"Notification to {owner.email} for {upn} failed: {e}")

        result = self._remediate(record, decision, snapshot.enabled)
        if result is not None and not result.success:
            return AccountOutcome(self._entry(record, EntryStatus.ERROR, inactive_days=days,
                                              decision=decision, notification_sent=True,
                                              recipient=owner.email, owner_strategy=owner.strategy,
                                              error=result.message))

        self.logger.info(f"{upn}: {decision.action.value} ({days} days), notified {owner.email}")
        return AccountOutcome(self._entry(record, EntryStatus.COMPLETED, inactive_days=days,
                                          decision=decision, notification_sent=True,
                                          recipient=owner.email, owner_strategy=owner.strategy))

    def _remediate(self, record: AccountRecord, decision: ActionDecision,
                   live_enabled: bool) -> Optional[ActionResult]:
        try:
            if decision.action == ActionTaken.DELETE:
                return self.remediator.delete(record)
            if decision.action == ActionTaken.DISABLE:
                if not needs_disable_call(decision, live_enabled):
                    self.logger.info(f"{record.user_principal_name} is already disabled")
                    return None
                return self.remediator.disable(record)
        except Exception as e:
            return ActionResult(success=False, message=str(e))
        return None

    def _entry(self, record: AccountRecord, status: EntryStatus, **kwargs) -> ResultEntry:
        return ResultEntry(
            user_principal_name=record.user_principal_name,
            sam_account_name=record.sam_account_name,
            object_id=record.object_id,
            status=status,
            timestamp=self.clock(),
            **kwargs
        )

    def _build_result(self, records: List[AccountRecord],
                      processed: List[Tuple[AccountRecord, ResultEntry]],
                      fatal_error: Optional[str]) -> RunResult:
        entries = [entry for _, entry in processed]
        unprocessed = [record.to_row() for record, entry in processed
                       if entry.status == EntryStatus.ERROR]
        never_reached = records[len(processed):]
        unprocessed.extend(record.to_row() for record in never_reached)

        summary = RunSummary.from_entries(entries)
        self.logger.info(f"Run summary: {summary.to_dict()}")
        if fatal_error:
            self.logger.error(f"Run failed: {fatal_error}; {len(never_reached)} accounts not reached")

        return RunResult(
            success=fatal_error is None,
            error=fatal_error,
            summary=summary,
            results=entries,
            unprocessed=unprocessed,
            not_reached=[record.user_principal_name for record in never_reached]
        )
