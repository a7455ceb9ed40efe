# =============================================================================
# core/snapshot.py - Live identity snapshot resolution
# =============================================================================

import logging
from typing import Any, Optional

from core.exceptions import DirectoryLookupError
from core.models import AccountRecord, IdentitySnapshot

logger = logging.getLogger(__name__)


def resolve_snapshot(record: AccountRecord, directory: Any, cloud: Optional[Any]) -> IdentitySnapshot:
    """
    Re-query live state for one account.

    Accounts with a sAMAccountName are read from AD, with the cloud sign-in
    folded in when an object id is also present. Accounts without one are
    read from the cloud directory only.

    Raises:
        DirectoryLookupError: a required lookup failed
    """
    if record.is_directory_account:
        if directory is None:
            raise DirectoryLookupError("Active Directory client is not configured")
        user = directory.get_user(record.sam_account_name)
        cloud_sign_in = None
        if record.object_id and cloud is not None:
            cloud_sign_in = cloud.get_user(record.object_id).last_sign_in
        elif record.object_id:
            logger.warning(f"Cloud client not configured, using AD logon only for {record.user_principal_name}")

        logger.debug(f"Resolved directory snapshot for {record.user_principal_name}")
        return IdentitySnapshot(
            enabled=user.enabled,
            directory_last_logon=user.last_logon,
            cloud_last_sign_in=cloud_sign_in,
            extension_attribute=user.extension_attribute,
            created=user.created
        )

    if not record.object_id:
        raise DirectoryLookupError(
            f"{record.user_principal_name} has neither a sAMAccountName nor a cloud object id"
        )
    if cloud is None:
        raise DirectoryLookupError("Cloud directory client is not configured")

    cloud_user = cloud.get_user(record.object_id)
    logger.debug(f"Resolved cloud snapshot for {record.user_principal_name}")
    return IdentitySnapshot(
        enabled=cloud_user.enabled,
        cloud_last_sign_in=cloud_user.last_sign_in,
        created=cloud_user.created
    )
