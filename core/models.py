# =============================================================================
# core/models.py - Account, snapshot and run result models
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List, Optional
from enum import Enum


class ActionTaken(Enum):
    """Remediation action chosen for an account"""
    NONE = "None"
    NOTIFY = "Notify"
    DISABLE = "Disable"
    DELETE = "Delete"


class NotificationStage(Enum):
    """Notification template stage paired with an action"""
    NONE = ""
    WARNING = "Warning"
    DISABLED = "Disabled"
    DELETION = "Deletion"


class EntryStatus(Enum):
    """Terminal status of one account evaluation"""
    COMPLETED = "Completed"
    SKIPPED = "Skipped"
    ERROR = "Error"


class SkipReason(Enum):
    """Policy outcomes that end an evaluation without action"""
    ACTIVITY_DETECTED = "ActivityDetected"
    DISABLED_SINCE_EXPORT = "DisabledSinceExport"
    NO_OWNER_FOUND = "NoOwnerFound"
    NO_EMAIL_FOUND = "NoEmailFound"
    NO_UPN = "NoUPN"


@dataclass(frozen=True)
class AccountRecord:
    """One input row describing a privileged account"""
    user_principal_name: str
    sam_account_name: str = ""
    object_id: str = ""
    enabled: Optional[bool] = None
    last_logon: Optional[datetime] = None
    created: Optional[datetime] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    source_row: Dict[str, str] = field(default_factory=dict)

    @property
    def is_directory_account(self) -> bool:
        """Directory path is chosen only by presence of the sAMAccountName"""
        return bool(self.sam_account_name)

    def attribute(self, name: str, default: str = "") -> str:
        """Pass-through column value, matching the header case-insensitively"""
        wanted = name.lower()
        return next((v for k, v in self.attributes.items() if k.lower() == wanted), default)

    def to_row(self) -> Dict[str, str]:
        """Input-shaped row, so it can be fed to a later run unchanged"""
        if self.source_row:
            return dict(self.source_row)
        row = {
            'UserPrincipalName': self.user_principal_name,
            'SamAccountName': self.sam_account_name,
            'ObjectId': self.object_id,
            'Enabled': '' if self.enabled is None else str(self.enabled),
            'LastLogonDate': self.last_logon.isoformat() if self.last_logon else '',
            'WhenCreated': self.created.isoformat() if self.created else '',
        }
        row.update(self.attributes)
        return row


@dataclass(frozen=True)
class DirectoryUser:
    """Live on-premises directory view of an account"""
    sam_account_name: str
    distinguished_name: str = ""
    user_principal_name: str = ""
    mail: str = ""
    enabled: bool = True
    last_logon: Optional[datetime] = None
    created: Optional[datetime] = None
    extension_attribute: str = ""
    description: str = ""
    object_id: str = ""


@dataclass(frozen=True)
class CloudUser:
    """Live cloud directory view of an account"""
    object_id: str
    user_principal_name: str = ""
    mail: str = ""
    enabled: bool = True
    last_interactive_sign_in: Optional[datetime] = None
    last_non_interactive_sign_in: Optional[datetime] = None
    created: Optional[datetime] = None

    @property
    def last_sign_in(self) -> Optional[datetime]:
        """Most recent sign-in of either kind"""
        stamps = [s for s in (self.last_interactive_sign_in, self.last_non_interactive_sign_in) if s]
        return max(stamps) if stamps else None


@dataclass(frozen=True)
class Sponsor:
    """Cloud directory sponsor of a cloud-native account"""
    mail: str = ""
    user_principal_name: str = ""


@dataclass(frozen=True)
class IdentitySnapshot:
    """Live state of one account at evaluation time"""
    enabled: bool
    directory_last_logon: Optional[datetime] = None
    cloud_last_sign_in: Optional[datetime] = None
    extension_attribute: str = ""
    created: Optional[datetime] = None


@dataclass(frozen=True)
class OwnerResolution:
    """Owner found for an account, or the unresolved marker"""
    owner_id: str = ""
    email: str = ""
    strategy: str = ""

    @property
    def is_resolved(self) -> bool:
        return bool(self.owner_id)


UNRESOLVED = OwnerResolution()


@dataclass(frozen=True)
class ActionDecision:
    """Single action/stage pair chosen by the threshold policy"""
    action: ActionTaken = ActionTaken.NONE
    stage: NotificationStage = NotificationStage.NONE


@dataclass(frozen=True)
class Thresholds:
    """Inactivity thresholds in days"""
    warn: int = 90
    disable: int = 120
    delete: int = 180


@dataclass(frozen=True)
class ActionResult:
    """Result of a remediation call"""
    success: bool
    message: str = ""


@dataclass(frozen=True)
class ResultEntry:
    """Outcome of one account evaluation"""
    user_principal_name: str
    sam_account_name: str
    object_id: str
    status: EntryStatus
    timestamp: datetime
    inactive_days: Optional[int] = None
    decision: ActionDecision = ActionDecision()
    notification_sent: bool = False
    recipient: Optional[str] = None
    owner_strategy: Optional[str] = None
    skip_reason: Optional[SkipReason] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stable output row"""
        return {
            'UserPrincipalName': self.user_principal_name,
            'SamAccountName': self.sam_account_name,
            'ObjectId': self.object_id,
            'InactiveDays': self.inactive_days,
            'ActionTaken': self.decision.action.value,
            'NotificationStage': self.decision.stage.value,
            'NotificationSent': self.notification_sent,
            'Recipient': self.recipient,
            'OwnerStrategy': self.owner_strategy,
            'Status': self.status.value,
            'SkipReason': self.skip_reason.value if self.skip_reason else None,
            'Error': self.error,
            'Timestamp': self.timestamp.isoformat(),
        }


RESULT_FIELDNAMES = [
    'UserPrincipalName', 'SamAccountName', 'ObjectId', 'InactiveDays',
    'ActionTaken', 'NotificationStage', 'NotificationSent', 'Recipient',
    'OwnerStrategy', 'Status', 'SkipReason', 'Error', 'Timestamp'
]


@dataclass
class RunSummary:
    """Aggregate counts for a run"""
    total: int = 0
    warned: int = 0
    disabled: int = 0
    deleted: int = 0
    skipped: int = 0
    errors: int = 0
    no_owner: int = 0

    @classmethod
    def from_entries(cls, entries: List[ResultEntry]) -> "RunSummary":
        """Tally result entries"""
        summary = cls(total=len(entries))
        for entry in entries:
            if entry.status == EntryStatus.SKIPPED:
                summary.skipped += 1
                if entry.skip_reason in (SkipReason.NO_OWNER_FOUND, SkipReason.NO_EMAIL_FOUND):
                    summary.no_owner += 1
            elif entry.status == EntryStatus.ERROR:
                summary.errors += 1
            elif entry.decision.action == ActionTaken.NOTIFY:
                summary.warned += 1
            elif entry.decision.action == ActionTaken.DISABLE:
                summary.disabled += 1
            elif entry.decision.action == ActionTaken.DELETE:
                summary.deleted += 1
        return summary

    def to_dict(self) -> Dict[str, int]:
        return {
            'Total': self.total,
            'Warned': self.warned,
            'Disabled': self.disabled,
            'Deleted': self.deleted,
            'Skipped': self.skipped,
            'Errors': self.errors,
            'NoOwner': self.no_owner,
        }


@dataclass(frozen=True)
class RunResult:
    """Top-level output of a run"""
    success: bool
    summary: RunSummary
    results: List[ResultEntry] = field(default_factory=list)
    unprocessed: List[Dict[str, str]] = field(default_factory=list)
    not_reached: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'Success': self.success,
            'Error': self.error,
            'Summary': self.summary.to_dict(),
            'Results': [entry.to_dict() for entry in self.results],
            'Unprocessed': [dict(row) for row in self.unprocessed],
            'NotReached': list(self.not_reached),
        }
