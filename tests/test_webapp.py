"""
Tests for the Flask upload UI.
"""

import io

import pytest
from unittest.mock import patch

import webapp
from core.exceptions import ConfigurationError
from core.models import DirectoryUser
from tests.conftest import days_ago

EXPORT = (
    "UserPrincipalName,SamAccountName,Enabled\r\n"
    "adm.jsmith@contoso.com,adm.jsmith,True\r\n"
)


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(webapp, 'UPLOAD_FOLDER', str(tmp_path / "uploads"))
    monkeypatch.setattr(webapp, 'OUTPUT_FOLDER', str(tmp_path / "downloads"))
    (tmp_path / "uploads").mkdir()
    (tmp_path / "downloads").mkdir()
    webapp.app.config['TESTING'] = True
    with webapp.app.test_client() as test_client:
        yield test_client


def upload(client, content=EXPORT, filename="export.csv", **form):
    data = {'file': (io.BytesIO(content.encode('utf-8')), filename)}
    data.update(form)
    return client.post('/upload', data=data, content_type='multipart/form-data')


def test_index(client):
    assert client.get('/').status_code == 200


def test_rejects_non_csv(client):
    response = upload(client, filename="export.xlsx")
    assert response.status_code == 302


def test_preview_run(client, make_engine, directory, notifier, tmp_path):
    directory.add(DirectoryUser(sam_account_name="adm.jsmith", last_logon=days_ago(100)))
    directory.add(DirectoryUser(sam_account_name="jsmith", mail="jsmith@contoso.com"))
    engine = make_engine(dry_run=True)

    with patch('webapp.build_engine', return_value=engine) as mock_build:
        response = upload(client)

    assert response.status_code == 200
    assert b"Preview" in response.data
    assert b"adm.jsmith@contoso.com" in response.data
    assert mock_build.call_args.kwargs['dry_run'] is True
    notifier.send.assert_not_called()
    assert list((tmp_path / "uploads").iterdir()) == []
    assert len(list((tmp_path / "downloads").iterdir())) == 4


def test_configuration_error_is_flashed(client):
    with patch('webapp.build_engine', side_effect=ConfigurationError("MAIL_SENDER missing")):
        response = upload(client, live_run='on')
    assert response.status_code == 302


def test_download_unknown_file(client):
    assert client.get('/download/missing.csv').status_code == 302


def test_health(client, monkeypatch):
    for name in ("AD_SERVER", "AD_USERNAME", "AD_PASSWORD", "BASE_DN", "MAIL_SENDER"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GRAPH_TENANT_ID", "tenant")
    monkeypatch.setenv("GRAPH_CLIENT_ID", "client")
    monkeypatch.setenv("GRAPH_CLIENT_SECRET", "secret")

    payload = client.get('/health').get_json()

    assert payload == {
        'status': 'healthy',
        'ad_config_valid': False,
        'graph_config_valid': True,
        'mail_sender_configured': False,
    }


def test_unwritable_downloads_still_shows_run(client, make_engine, directory, tmp_path, monkeypatch):
    directory.add(DirectoryUser(sam_account_name="adm.jsmith", last_logon=days_ago(10)))
    blocker = tmp_path / "blocked"
    blocker.write_text("occupied", encoding='utf-8')
    monkeypatch.setattr(webapp, 'OUTPUT_FOLDER', str(blocker))

    with patch('webapp.build_engine', return_value=make_engine(dry_run=True)):
        response = upload(client)

    assert response.status_code == 200
    assert b"could not be written" in response.data
    assert b"adm.jsmith@contoso.com" in response.data
