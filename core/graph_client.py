# =============================================================================
# core/graph_client.py - Microsoft Graph (cloud directory + mail) client
# =============================================================================

import logging
from datetime import datetime
from typing import Dict, Any, Iterator, List, Optional

import msal
import requests
from dateutil import parser as date_parser

from core.exceptions import (
    AccountNotFoundError, DirectoryTransportError, NotificationError, SessionError
)
from core.models import CloudUser, Sponsor

GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]
USER_SELECT = (
    "id,userPrincipalName,mail,accountEnabled,createdDateTime,"
    "onPremisesSyncEnabled,signInActivity"
)


def parse_graph_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a Graph ISO timestamp; Graph reports unset values as null"""
    if not value:
        return None
    return date_parser.isoparse(value)


class GraphClient:
    """Client-credentials Graph session for cloud directory lookups, remediation and mail"""

    def __init__(self, tenant_id: str, client_id: str, client_secret: str,
                 endpoint: str = "https://graph.microsoft.com/v1.0", timeout: int = 30):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout
        self.session: Optional[requests.Session] = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def connect(self) -> None:
        """Acquire an app-only token and open the HTTP session"""
        app = msal.ConfidentialClientApplication(
            client_id=self.client_id,
            client_credential=self.client_secret,
            authority=f"https://login.microsoftonline.com/{self.tenant_id}",
        )
        try:
            token = app.acquire_token_for_client(scopes=GRAPH_SCOPES)
        except (requests.RequestException, ValueError) as e:
            raise SessionError(f"Failed to acquire Graph token: {e}") from e

        if 'access_token' not in token:
            description = token.get('error_description') or token.get('error') or 'unknown error'
            self.logger.error(f"Graph authentication failed: {description}")
            raise SessionError(f"Failed to acquire Graph token: {description}")

        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f"Bearer {token['access_token']}",
            'Content-Type': 'application/json',
        })
        self.logger.info("Connected to Microsoft Graph")

    def disconnect(self) -> None:
        if self.session:
            self.session.close()
            self.session = None
            self.logger.info("Disconnected from Microsoft Graph")

    def get_user(self, object_id: str) -> CloudUser:
        """Look up a cloud account including its sign-in activity"""
        payload = self._request('GET', f"/users/{object_id}", params={'$select': USER_SELECT})
        return self._to_cloud_user(payload)

    def get_sponsors(self, object_id: str) -> List[Sponsor]:
        """Sponsors assigned to a cloud account, in the order Graph returns them"""
        payload = self._request(
            'GET', f"/users/{object_id}/sponsors",
            params={'$select': 'id,mail,userPrincipalName'}
        )
        return [
            Sponsor(mail=item.get('mail') or '', user_principal_name=item.get('userPrincipalName') or '')
            for item in payload.get('value', [])
        ]

    def list_cloud_only_users(self, prefixes: List[str]) -> List[CloudUser]:
        """Discover cloud-native accounts whose UPN starts with a naming-convention prefix"""
        users = []
        lowered = [p.lower() for p in prefixes]
        for item in self._paged('/users', params={'$select': USER_SELECT, '$top': '999'}):
            if item.get('onPremisesSyncEnabled'):
                continue
            upn = (item.get('userPrincipalName') or '').lower()
            if any(upn.startswith(f"{prefix}{sep}") for prefix in lowered for sep in ('.', '_')):
                users.append(self._to_cloud_user(item))

        self.logger.info(f"Discovered {len(users)} cloud-only prefixed accounts")
        return users

    def disable_user(self, object_id: str) -> None:
        self._request('PATCH', f"/users/{object_id}", json={'accountEnabled': False})
        self.logger.info(f"Disabled cloud account {object_id}")

    def delete_user(self, object_id: str) -> None:
        self._request('DELETE', f"/users/{object_id}")
        self.logger.info(f"Deleted cloud account {object_id}")

    def send_mail(self, sender: str, recipients: List[str], subject: str, body: str,
                  cc: Optional[List[str]] = None) -> None:
        """Send an HTML message from the sender mailbox"""
        message = {
            'subject': subject,
            'body': {'contentType': 'HTML', 'content': body},
            'toRecipients': [{'emailAddress': {'address': r}} for r in recipients],
        }
        if cc:
            message['ccRecipients'] = [{'emailAddress': {'address': r}} for r in cc]

        try:
            self._request('POST', f"/users/{sender}/sendMail",
                          json={'message': message, 'saveToSentItems': True})
        except (DirectoryTransportError, AccountNotFoundError) as e:
            raise NotificationError(f"Failed to send mail to {', '.join(recipients)}: {e}") from e

    def _paged(self, path: str, params: Optional[Dict[str, str]] = None) -> Iterator[Dict[str, Any]]:
        payload = self._request('GET', path, params=params)
        while True:
            for item in payload.get('value', []):
                yield item
            next_link = payload.get('@odata.nextLink')
            if not next_link:
                break
            payload = self._request('GET', next_link)

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        if not self.session:
            raise DirectoryTransportError("Not connected to Microsoft Graph")

        url = path if path.startswith('http') else f"{self.endpoint}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise DirectoryTransportError(f"Graph request {method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise AccountNotFoundError(f"Graph object not found: {path}")

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise DirectoryTransportError(
                f"Graph request {method} {path} failed with status {response.status_code}"
            ) from e

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def _to_cloud_user(self, payload: Dict[str, Any]) -> CloudUser:
        activity = payload.get('signInActivity') or {}
        return CloudUser(
            object_id=payload.get('id', ''),
            user_principal_name=payload.get('userPrincipalName') or '',
            mail=payload.get('mail') or '',
            enabled=payload.get('accountEnabled') is not False,
            last_interactive_sign_in=parse_graph_datetime(activity.get('lastSignInDateTime')),
            last_non_interactive_sign_in=parse_graph_datetime(activity.get('lastNonInteractiveSignInDateTime')),
            created=parse_graph_datetime(payload.get('createdDateTime'))
        )
