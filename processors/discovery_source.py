# =============================================================================
# processors/discovery_source.py - Discovery-driven processor
# =============================================================================

from typing import Any, Dict, List, Optional

from core.base_processor import BaseAccountProcessor
from core.engine import InactivityEngine
from core.models import AccountRecord, CloudUser, DirectoryUser
from utils.csv_utils import row_to_record


def directory_user_to_row(user: DirectoryUser) -> Dict[str, str]:
    """Shape a discovered AD account like an export row"""
    return {
        'UserPrincipalName': user.user_principal_name,
        'SamAccountName': user.sam_account_name,
        'ObjectId': user.object_id,
        'Enabled': str(user.enabled),
        'LastLogonDate': user.last_logon.isoformat() if user.last_logon else '',
        'WhenCreated': user.created.isoformat() if user.created else '',
        'Description': user.description,
    }


def cloud_user_to_row(user: CloudUser) -> Dict[str, str]:
    """Shape a discovered cloud-only account like an export row"""
    last_sign_in = user.last_sign_in
    return {
        'UserPrincipalName': user.user_principal_name,
        'SamAccountName': '',
        'ObjectId': user.object_id,
        'Enabled': str(user.enabled),
        'LastLogonDate': last_sign_in.isoformat() if last_sign_in else '',
        'WhenCreated': user.created.isoformat() if user.created else '',
        'Description': '',
    }


class DiscoveryProcessor(BaseAccountProcessor):
    """Finds prefixed privileged accounts in AD and cloud-only ones in Entra, then evaluates them"""

    needs_session_to_load = True
    output_prefix = "discovery"

    def __init__(self, engine: InactivityEngine, prefixes: List[str],
                 search_base: Optional[str] = None):
        super().__init__(engine)
        self.prefixes = prefixes
        self.search_base = search_base

    def load_records(self) -> List[AccountRecord]:
        rows = self.discover_rows()
        return [row_to_record(row) for row in rows]

    def discover_rows(self) -> List[Dict[str, Any]]:
        rows = []
        directory = self.engine.directory
        cloud = self.engine.cloud

        if directory is not None:
            for user in directory.search_privileged_accounts(self.prefixes, self.search_base):
                if not user.user_principal_name:
                    self.logger.warning(f"Discovered {user.sam_account_name} has no UPN, skipping")
                    continue
                rows.append(directory_user_to_row(user))

        if cloud is not None:
            rows.extend(cloud_user_to_row(user) for user in cloud.list_cloud_only_users(self.prefixes))

        self.logger.info(f"Discovered {len(rows)} privileged accounts")
        return rows
