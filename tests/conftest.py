"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

# Flat layout: make core/, processors/ and utils/ importable
ROOT_DIR = Path(__file__).parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from unittest.mock import Mock

from core.engine import InactivityEngine
from core.exceptions import AccountNotFoundError
from core.models import ActionResult, CloudUser, DirectoryUser, Thresholds
from core.owner_resolver import OwnerResolver

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def days_ago(days: int) -> datetime:
    return NOW - timedelta(days=days)


class FakeDirectory:
    """In-memory AD keyed by sAMAccountName"""

    def __init__(self, users: Optional[Dict[str, DirectoryUser]] = None):
        self.users = users or {}
        self.get_user = Mock(side_effect=self._get_user)
        self.find_owner = Mock(side_effect=self._find_owner)

    def add(self, user: DirectoryUser) -> DirectoryUser:
        self.users[user.sam_account_name.lower()] = user
        return user

    def _get_user(self, sam: str) -> DirectoryUser:
        user = self.users.get(sam.lower())
        if user is None:
            raise AccountNotFoundError(f"Account '{sam}' not found in Active Directory")
        return user

    def _find_owner(self, value: str) -> Optional[DirectoryUser]:
        if '@' in value:
            return next((u for u in self.users.values()
                         if value.lower() in (u.user_principal_name.lower(), u.mail.lower())), None)
        return self.users.get(value.lower())


class FakeCloud:
    """In-memory Entra ID keyed by object id"""

    def __init__(self):
        self.users: Dict[str, CloudUser] = {}
        self.sponsors: Dict[str, list] = {}
        self.get_user = Mock(side_effect=self._get_user)
        self.get_sponsors = Mock(side_effect=lambda oid: list(self.sponsors.get(oid, [])))

    def add(self, user: CloudUser) -> CloudUser:
        self.users[user.object_id] = user
        return user

    def _get_user(self, object_id: str) -> CloudUser:
        if object_id not in self.users:
            raise AccountNotFoundError(f"Graph object not found: /users/{object_id}")
        return self.users[object_id]


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def cloud():
    return FakeCloud()


@pytest.fixture
def notifier():
    return Mock()


@pytest.fixture
def remediator():
    mock = Mock()
    mock.disable.return_value = ActionResult(success=True, message="Disabled")
    mock.delete.return_value = ActionResult(success=True, message="Deleted")
    return mock


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def thresholds():
    return Thresholds(warn=90, disable=120, delete=180)


@pytest.fixture
def make_engine(directory, cloud, notifier, remediator, session, thresholds):
    """Build an engine over the fake collaborators"""

    def _make(deletion_enabled=False, dry_run=False, prefixes=("adm", "admin"), **overrides):
        params = dict(
            directory=directory,
            cloud=cloud,
            remediator=remediator,
            notifier=notifier,
            owner_resolver=OwnerResolver(directory, cloud, list(prefixes)),
            thresholds=thresholds,
            deletion_enabled=deletion_enabled,
            sender="identity-governance@contoso.com",
            session=session,
            dry_run=dry_run,
            clock=lambda: NOW,
        )
        params.update(overrides)
        return InactivityEngine(**params)

    return _make


@pytest.fixture
def owner_jsmith(directory):
    return directory.add(DirectoryUser(
        sam_account_name="jsmith",
        distinguished_name="CN=John Smith,OU=Users,DC=contoso,DC=com",
        user_principal_name="jsmith@contoso.com",
        mail="john.smith@contoso.com",
    ))
