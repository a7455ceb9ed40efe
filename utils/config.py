# =============================================================================
# utils/config.py - Configuration management
# =============================================================================

import os
from typing import Optional, List
from dotenv import load_dotenv

from core.exceptions import ConfigurationError
from core.models import Thresholds

TRUE_VALUES = {'1', 'true', 'yes', 'y', 'on'}


def _split_list(value: Optional[str]) -> List[str]:
    return [item.strip() for item in (value or '').split(',') if item.strip()]


class Config:
    """Configuration management"""

    def __init__(self):
        load_dotenv()

    @property
    def ad_server(self) -> Optional[str]:
        return os.getenv("AD_SERVER")

    @property
    def ad_username(self) -> Optional[str]:
        return os.getenv("AD_USERNAME")

    @property
    def ad_password(self) -> Optional[str]:
        return os.getenv("AD_PASSWORD")

    @property
    def base_dn(self) -> Optional[str]:
        return os.getenv("BASE_DN")

    @property
    def discovery_search_base(self) -> Optional[str]:
        return os.getenv("DISCOVERY_SEARCH_BASE") or self.base_dn

    @property
    def owner_attribute(self) -> str:
        return os.getenv("OWNER_ATTRIBUTE", "extensionAttribute1")

    @property
    def graph_tenant_id(self) -> Optional[str]:
        return os.getenv("GRAPH_TENANT_ID")

    @property
    def graph_client_id(self) -> Optional[str]:
        return os.getenv("GRAPH_CLIENT_ID")

    @property
    def graph_client_secret(self) -> Optional[str]:
        return os.getenv("GRAPH_CLIENT_SECRET")

    @property
    def graph_endpoint(self) -> str:
        return os.getenv("GRAPH_API_ENDPOINT", "https://graph.microsoft.com/v1.0")

    @property
    def graph_timeout(self) -> int:
        return self._int("GRAPH_TIMEOUT", 30)

    @property
    def mail_sender(self) -> Optional[str]:
        return os.getenv("MAIL_SENDER")

    @property
    def mail_cc(self) -> List[str]:
        return _split_list(os.getenv("MAIL_CC"))

    @property
    def account_prefixes(self) -> List[str]:
        return _split_list(os.getenv("ACCOUNT_PREFIXES", "adm,admin,da,sa"))

    @property
    def deletion_enabled(self) -> bool:
        return os.getenv("DELETION_ENABLED", "false").strip().lower() in TRUE_VALUES

    @property
    def directory_delete_enabled(self) -> bool:
        return os.getenv("DIRECTORY_DELETE_ENABLED", "false").strip().lower() in TRUE_VALUES

    def thresholds(self) -> Thresholds:
        """Read thresholds; they must be non-negative and ordered warn <= disable <= delete"""
        thresholds = Thresholds(
            warn=self._int("WARN_THRESHOLD_DAYS", 90),
            disable=self._int("DISABLE_THRESHOLD_DAYS", 120),
            delete=self._int("DELETE_THRESHOLD_DAYS", 180)
        )
        if not 0 <= thresholds.warn <= thresholds.disable <= thresholds.delete:
            raise ConfigurationError(
                f"Thresholds must satisfy 0 <= warn <= disable <= delete, got "
                f"{thresholds.warn}/{thresholds.disable}/{thresholds.delete}"
            )
        return thresholds

    def validate_ad_config(self) -> bool:
        """Validate that all required AD configuration is present"""
        required = [self.ad_server, self.ad_username, self.ad_password, self.base_dn]
        return all(required)

    def get_missing_ad_vars(self) -> List[str]:
        """Get list of missing AD configuration variables"""
        vars_and_names = [
            (self.ad_server, "AD_SERVER"),
            (self.ad_username, "AD_USERNAME"),
            (self.ad_password, "AD_PASSWORD"),
            (self.base_dn, "BASE_DN")
        ]
        return [name for var, name in vars_and_names if not var]

    def validate_graph_config(self) -> bool:
        """Validate that the Graph app registration is configured"""
        return not self.get_missing_graph_vars()

    def get_missing_graph_vars(self) -> List[str]:
        vars_and_names = [
            (self.graph_tenant_id, "GRAPH_TENANT_ID"),
            (self.graph_client_id, "GRAPH_CLIENT_ID"),
            (self.graph_client_secret, "GRAPH_CLIENT_SECRET")
        ]
        return [name for var, name in vars_and_names if not var]

    def _int(self, name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            return int(raw.strip())
        except ValueError:
            raise ConfigurationError(f"{name} must be an integer, got '{raw}'")
