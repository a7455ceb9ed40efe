# =============================================================================
# core/exceptions.py - Exception hierarchy
# =============================================================================


class RemediationToolError(Exception):
    """Base exception for the remediation tool."""


class ConfigurationError(RemediationToolError):
    """Raised when required settings are missing or invalid."""


class DirectoryLookupError(RemediationToolError):
    """Raised when an account cannot be read from a directory."""


class AccountNotFoundError(DirectoryLookupError):
    """Raised when the directory has no such account."""


class DirectoryTransportError(DirectoryLookupError):
    """Raised when the directory could not be reached."""


class ActivityUnavailableError(RemediationToolError):
    """Raised when no timestamp exists to measure inactivity from."""


class SessionError(RemediationToolError):
    """Raised when the external session cannot be established."""


class NotificationError(RemediationToolError):
    """Raised when a notification could not be delivered."""
