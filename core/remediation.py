# =============================================================================
# core/remediation.py - Disable / delete routing
# =============================================================================

import logging
from typing import Any, Optional

from core.exceptions import RemediationToolError
from core.models import AccountRecord, ActionResult


class AccountRemediator:
    """
    Routes remediation to the directory that owns the account.

    Accounts with a sAMAccountName are changed in AD (synced objects follow);
    cloud-native accounts are changed through Graph. Failures come back as an
    unsuccessful ActionResult instead of an exception.
    """

    def __init__(self, ad_client: Optional[Any], graph_client: Optional[Any],
                 directory_delete_enabled: bool = False):
        self.ad_client = ad_client
        self.graph_client = graph_client
        self.directory_delete_enabled = directory_delete_enabled
        self.logger = logging.getLogger(self.__class__.__name__)

    def disable(self, record: AccountRecord) -> ActionResult:
        return self._run('disable', record)

    def delete(self, record: AccountRecord) -> ActionResult:
        if record.is_directory_account and not self.directory_delete_enabled:
            message = f"Deletion of directory account {record.sam_account_name} is not enabled"
            self.logger.warning(message)
            return ActionResult(success=False, message=message)
        return self._run('delete', record)

    def _run(self, action: str, record: AccountRecord) -> ActionResult:
        try:
            if record.is_directory_account:
                if self.ad_client is None:
                    raise RemediationToolError("Active Directory client is not configured")
                user = self.ad_client.get_user(record.sam_account_name)
                getattr(self.ad_client, f"{action}_user")(user.distinguished_name)
                target = user.distinguished_name
            else:
                if self.graph_client is None:
                    raise RemediationToolError("Graph client is not configured")
                getattr(self.graph_client, f"{action}_user")(record.object_id)
                target = record.object_id
        except RemediationToolError as e:
            self.logger.error(f"Failed to {action} {record.user_principal_name}: {e}")
            return ActionResult(success=False, message=str(e))

        return ActionResult(success=True, message=f"{action.capitalize()}d {target}")
