"""
Tests for remediation routing between AD and Graph.
"""

import pytest
from unittest.mock import Mock

from core.exceptions import AccountNotFoundError, DirectoryTransportError
from core.models import AccountRecord, DirectoryUser
from core.remediation import AccountRemediator

DN = "CN=adm.jsmith,OU=Admins,DC=contoso,DC=com"
DIRECTORY_RECORD = AccountRecord(user_principal_name="adm.jsmith@contoso.com",
                                 sam_account_name="adm.jsmith", object_id="oid-1")
CLOUD_RECORD = AccountRecord(user_principal_name="adm-cloud@contoso.onmicrosoft.com", object_id="oid-9")


@pytest.fixture
def ad_client():
    mock = Mock()
    mock.get_user.return_value = DirectoryUser(sam_account_name="adm.jsmith", distinguished_name=DN)
    return mock


@pytest.fixture
def graph_client():
    return Mock()


def test_directory_account_disabled_in_ad(ad_client, graph_client):
    result = AccountRemediator(ad_client, graph_client).disable(DIRECTORY_RECORD)

    assert result.success is True
    ad_client.disable_user.assert_called_once_with(DN)
    graph_client.disable_user.assert_not_called()


def test_cloud_account_disabled_through_graph(ad_client, graph_client):
    result = AccountRemediator(ad_client, graph_client).disable(CLOUD_RECORD)

    assert result.success is True
    assert result.message == "Disabled oid-9"
    graph_client.disable_user.assert_called_once_with("oid-9")


def test_cloud_delete(ad_client, graph_client):
    assert AccountRemediator(ad_client, graph_client).delete(CLOUD_RECORD).success is True
    graph_client.delete_user.assert_called_once_with("oid-9")


def test_directory_delete_requires_opt_in(ad_client, graph_client):
    result = AccountRemediator(ad_client, graph_client).delete(DIRECTORY_RECORD)

    assert result.success is False
    assert "not enabled" in result.message
    ad_client.delete_user.assert_not_called()


def test_directory_delete_when_enabled(ad_client, graph_client):
    result = AccountRemediator(ad_client, graph_client, directory_delete_enabled=True).delete(DIRECTORY_RECORD)
    assert result.success is True
    ad_client.delete_user.assert_called_once_with(DN)


def test_failures_come_back_as_results(ad_client, graph_client):
    ad_client.disable_user.side_effect = DirectoryTransportError("insufficientAccessRights")
    result = AccountRemediator(ad_client, graph_client).disable(DIRECTORY_RECORD)
    assert result.success is False
    assert "insufficientAccessRights" in result.message


def test_account_gone_before_remediation(ad_client, graph_client):
    ad_client.get_user.side_effect = AccountNotFoundError("gone")
    assert AccountRemediator(ad_client, graph_client).disable(DIRECTORY_RECORD).success is False


def test_missing_client(graph_client):
    result = AccountRemediator(None, graph_client).disable(DIRECTORY_RECORD)
    assert result.success is False
    assert "not configured" in result.message
