# =============================================================================
# core/ad_client.py - Active Directory client
# =============================================================================

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Iterator, List, Optional

from dateutil import parser as date_parser
from ldap3 import Server, Connection, ALL, BASE, SUBTREE, MODIFY_REPLACE
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from core.exceptions import AccountNotFoundError, DirectoryTransportError, SessionError
from core.models import DirectoryUser

# 0x2 = ACCOUNTDISABLE flag
ACCOUNTDISABLE = 0x2
PAGED_RESULTS_OID = '1.2.840.113556.1.4.319'
FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)


def to_utc_datetime(value: Any) -> Optional[datetime]:
    """Normalize ldap3 timestamp values (datetime, FileTime int, generalized time) to aware UTC"""
    if value is None or value == '' or value == []:
        return None
    if isinstance(value, list):
        value = value[0]

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, int):
        # FileTime: 100ns intervals since 1601-01-01; 0 and max mean never
        if value <= 0 or value >= 0x7FFFFFFFFFFFFFFF:
            return None
        dt = FILETIME_EPOCH + timedelta(microseconds=value // 10)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.isdigit() and len(text) > 14:
            return to_utc_datetime(int(text))
        if len(text) >= 14 and text[:14].isdigit():
            # Generalized time, e.g. 20240105103000.0Z
            dt = datetime.strptime(text[:14], '%Y%m%d%H%M%S').replace(tzinfo=timezone.utc)
        else:
            dt = date_parser.parse(text)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    if dt.year <= 1601:
        return None
    return dt


class ActiveDirectoryClient:
    """Active Directory client for privileged account lookups and remediation"""

    USER_ATTRIBUTES = [
        'sAMAccountName', 'distinguishedName', 'userPrincipalName', 'mail',
        'userAccountControl', 'lastLogonTimestamp', 'whenCreated', 'description',
        'msDS-ExternalDirectoryObjectId'
    ]

    def __init__(self, server_url: str, username: str, password: str, base_dn: str,
                 owner_attribute: str = 'extensionAttribute1'):
        self.server_url = server_url
        self.username = username
        self.password = password
        self.base_dn = base_dn
        self.owner_attribute = owner_attribute
        self.connection: Optional[Connection] = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.disconnect()

    @property
    def attributes(self) -> List[str]:
        return self.USER_ATTRIBUTES + [self.owner_attribute]

    def connect(self) -> None:
        """Establish connection to Active Directory"""
        try:
            server = Server(self.server_url, get_info=ALL)
            self.connection = Connection(
                server,
                user=self.username,
                password=self.password,
                auto_bind=True
            )
            self.logger.info("Successfully connected to Active Directory")
        except LDAPException as e:
            self.logger.error(f"Failed to connect to AD: {e}")
            raise SessionError(f"Failed to connect to Active Directory: {e}") from e

    def disconnect(self) -> None:
        """Close Active Directory connection"""
        if self.connection:
            self.connection.unbind()
            self.connection = None
            self.logger.info("Disconnected from Active Directory")

    def get_user(self, samaccountname: str) -> DirectoryUser:
        """Look up an account by sAMAccountName; raises if it does not exist"""
        user = self._query_user(f"(sAMAccountName={escape_filter_chars(samaccountname)})", samaccountname)
        if user is None:
            raise AccountNotFoundError(f"Account '{samaccountname}' not found in Active Directory")
        return user

    def find_owner(self, value: str) -> Optional[DirectoryUser]:
        """Find a candidate owner by sAMAccountName, or by UPN/mail when the value is an address"""
        escaped = escape_filter_chars(value)
        if '@' in value:
            search_filter = f"(|(userPrincipalName={escaped})(mail={escaped}))"
        else:
            search_filter = f"(sAMAccountName={escaped})"
        return self._query_user(search_filter, value)

    def search_privileged_accounts(self, prefixes: List[str],
                                   search_base: Optional[str] = None) -> List[DirectoryUser]:
        """Discover accounts whose sAMAccountName starts with a naming-convention prefix"""
        if not prefixes:
            return []

        clauses = ''.join(
            f"(sAMAccountName={escape_filter_chars(prefix)}{sep}*)"
            for prefix in prefixes for sep in ('.', '_')
        )
        search_filter = f"(&(objectCategory=person)(objectClass=user)(|{clauses}))"

        users = [self._entry_to_user(entry) for entry in self._paged_search(search_filter, search_base)]
        self.logger.info(f"Discovered {len(users)} prefixed accounts in AD")
        return users

    def disable_user(self, distinguished_name: str) -> None:
        """Set the ACCOUNTDISABLE bit on userAccountControl"""
        connection = self._require_connection()
        try:
            connection.search(
                search_base=distinguished_name,
                search_filter='(objectClass=user)',
                search_scope=BASE,
                attributes=['userAccountControl']
            )
            current = 0
            if connection.entries:
                values = connection.entries[0].entry_attributes_as_dict.get('userAccountControl') or [0]
                current = int(values[0])

            ok = connection.modify(
                distinguished_name,
                {'userAccountControl': [(MODIFY_REPLACE, [current | ACCOUNTDISABLE])]}
            )
        except LDAPException as e:
            raise DirectoryTransportError(f"Failed to disable {distinguished_name}: {e}") from e

        if not ok:
            raise DirectoryTransportError(
                f"Failed to disable {distinguished_name}: {connection.result.get('description')}"
            )
        self.logger.info(f"Disabled {distinguished_name} in AD")

    def delete_user(self, distinguished_name: str) -> None:
        """Delete the account object"""
        connection = self._require_connection()
        try:
            ok = connection.delete(distinguished_name)
        except LDAPException as e:
            raise DirectoryTransportError(f"Failed to delete {distinguished_name}: {e}") from e

        if not ok:
            raise DirectoryTransportError(
                f"Failed to delete {distinguished_name}: {connection.result.get('description')}"
            )
        self.logger.info(f"Deleted {distinguished_name} from AD")

    def _require_connection(self) -> Connection:
        if not self.connection:
            raise DirectoryTransportError("Not connected to Active Directory")
        return self.connection

    def _query_user(self, search_filter: str, identifier: str) -> Optional[DirectoryUser]:
        """Internal method to perform AD query"""
        connection = self._require_connection()

        try:
            connection.search(
                search_base=self.base_dn,
                search_filter=f"(&(objectClass=user){search_filter})",
                attributes=self.attributes
            )
        except LDAPException as e:
            self.logger.error(f"Error querying user {identifier}: {e}")
            raise DirectoryTransportError(f"Error querying {identifier}: {e}") from e

        if not connection.entries:
            self.logger.debug(f"User {identifier} not found in AD")
            return None

        if len(connection.entries) > 1:
            self.logger.warning(f"Multiple users found for {identifier}, using first match")

        self.logger.debug(f"Found user {identifier} in AD")
        return self._entry_to_user(connection.entries[0])

    def _paged_search(self, search_filter: str, search_base: Optional[str] = None) -> Iterator[Any]:
        connection = self._require_connection()
        cookie = None

        try:
            while True:
                connection.search(
                    search_base=search_base or self.base_dn,
                    search_filter=search_filter,
                    search_scope=SUBTREE,
                    attributes=self.attributes,
                    paged_size=500,
                    paged_cookie=cookie
                )
                for entry in connection.entries:
                    yield entry

                controls = connection.result.get('controls') or {}
                cookie = controls.get(PAGED_RESULTS_OID, {}).get('value', {}).get('cookie')
                if not cookie:
                    break
        except LDAPException as e:
            raise DirectoryTransportError(f"Directory search failed: {e}") from e

    def _entry_to_user(self, entry: Any) -> DirectoryUser:
        attrs: Dict[str, List[Any]] = entry.entry_attributes_as_dict

        def first(name: str) -> Any:
            values = attrs.get(name) or []
            return values[0] if values else None

        def text(name: str) -> str:
            value = first(name)
            return str(value) if value is not None else ""

        uac = first('userAccountControl') or 0
        external_id = text('msDS-ExternalDirectoryObjectId')
        if external_id.lower().startswith('user_'):
            external_id = external_id[5:]

        return DirectoryUser(
            sam_account_name=text('sAMAccountName'),
            distinguished_name=text('distinguishedName') or getattr(entry, 'entry_dn', ''),
            user_principal_name=text('userPrincipalName'),
            mail=text('mail'),
            enabled=self._is_account_active(int(uac)),
            last_logon=to_utc_datetime(first('lastLogonTimestamp')),
            created=to_utc_datetime(first('whenCreated')),
            extension_attribute=text(self.owner_attribute),
            description=text('description'),
            object_id=external_id
        )

    def _is_account_active(self, user_account_control: int) -> bool:
        """Check if user account is active based on userAccountControl flags"""
        return not bool(user_account_control & ACCOUNTDISABLE)
