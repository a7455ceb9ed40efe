"""
Tests for environment-driven configuration.
"""

import pytest

from core.exceptions import ConfigurationError
from core.models import Thresholds
from utils.config import Config

ENV_VARS = [
    "AD_SERVER", "AD_USERNAME", "AD_PASSWORD", "BASE_DN", "DISCOVERY_SEARCH_BASE",
    "GRAPH_TENANT_ID", "GRAPH_CLIENT_ID", "GRAPH_CLIENT_SECRET", "MAIL_SENDER", "MAIL_CC",
    "ACCOUNT_PREFIXES", "DELETION_ENABLED", "DIRECTORY_DELETE_ENABLED",
    "WARN_THRESHOLD_DAYS", "DISABLE_THRESHOLD_DAYS", "DELETE_THRESHOLD_DAYS", "GRAPH_TIMEOUT",
]


@pytest.fixture
def config(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return Config()


def test_defaults(config):
    assert config.thresholds() == Thresholds(90, 120, 180)
    assert config.account_prefixes == ["adm", "admin", "da", "sa"]
    assert config.deletion_enabled is False
    assert config.directory_delete_enabled is False
    assert config.owner_attribute == "extensionAttribute1"


def test_threshold_overrides(config, monkeypatch):
    monkeypatch.setenv("WARN_THRESHOLD_DAYS", "30")
    monkeypatch.setenv("DISABLE_THRESHOLD_DAYS", "45")
    monkeypatch.setenv("DELETE_THRESHOLD_DAYS", "45")
    assert config.thresholds() == Thresholds(30, 45, 45)


def test_unordered_thresholds_rejected(config, monkeypatch):
    monkeypatch.setenv("WARN_THRESHOLD_DAYS", "150")
    with pytest.raises(ConfigurationError):
        config.thresholds()


def test_non_integer_rejected(config, monkeypatch):
    monkeypatch.setenv("DISABLE_THRESHOLD_DAYS", "four months")
    with pytest.raises(ConfigurationError):
        config.thresholds()


def test_lists_and_flags(config, monkeypatch):
    monkeypatch.setenv("ACCOUNT_PREFIXES", " adm , t0 ,, ")
    monkeypatch.setenv("MAIL_CC", "iam@contoso.com")
    monkeypatch.setenv("DELETION_ENABLED", "Yes")
    assert config.account_prefixes == ["adm", "t0"]
    assert config.mail_cc == ["iam@contoso.com"]
    assert config.deletion_enabled is True


def test_missing_vars_reported(config, monkeypatch):
    monkeypatch.setenv("AD_SERVER", "ldaps://dc01")
    monkeypatch.setenv("GRAPH_TENANT_ID", "tenant")
    assert config.validate_ad_config() is False
    assert config.get_missing_ad_vars() == ["AD_USERNAME", "AD_PASSWORD", "BASE_DN"]
    assert config.get_missing_graph_vars() == ["GRAPH_CLIENT_ID", "GRAPH_CLIENT_SECRET"]


def test_search_base_falls_back_to_base_dn(config, monkeypatch):
    monkeypatch.setenv("BASE_DN", "DC=contoso,DC=com")
    assert config.discovery_search_base == "DC=contoso,DC=com"
