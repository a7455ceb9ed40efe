# =============================================================================
# core/factory.py - Build the engine and its collaborators from configuration
# =============================================================================

import logging
from typing import Optional

from core.ad_client import ActiveDirectoryClient
from core.engine import ExternalSession, InactivityEngine
from core.exceptions import ConfigurationError
from core.graph_client import GraphClient
from core.notifications import GraphMailNotifier, NotificationComposer
from core.owner_resolver import OwnerResolver
from core.remediation import AccountRemediator
from utils.config import Config

logger = logging.getLogger(__name__)


def build_engine(config: Config, dry_run: bool = False,
                 deletion_enabled: Optional[bool] = None) -> InactivityEngine:
    """Wire AD, Graph, owner resolution, remediation and mail into an engine"""
    ad_client = None
    if config.validate_ad_config():
        ad_client = ActiveDirectoryClient(
            config.ad_server, config.ad_username,
            config.ad_password, config.base_dn,
            owner_attribute=config.owner_attribute
        )
    else:
        logger.warning(f"AD not configured, missing: {config.get_missing_ad_vars()}")

    graph_client = None
    if config.validate_graph_config():
        graph_client = GraphClient(
            config.graph_tenant_id, config.graph_client_id, config.graph_client_secret,
            endpoint=config.graph_endpoint, timeout=config.graph_timeout
        )
    else:
        logger.warning(f"Graph not configured, missing: {config.get_missing_graph_vars()}")

    if ad_client is None and graph_client is None:
        raise ConfigurationError("Neither Active Directory nor Graph is configured")

    if not dry_run and (graph_client is None or not config.mail_sender):
        raise ConfigurationError("Live runs need Graph configuration and MAIL_SENDER to send notifications")

    thresholds = config.thresholds()
    if deletion_enabled is None:
        deletion_enabled = config.deletion_enabled

    return InactivityEngine(
        directory=ad_client,
        cloud=graph_client,
        remediator=AccountRemediator(ad_client, graph_client, config.directory_delete_enabled),
        notifier=GraphMailNotifier(graph_client, cc=config.mail_cc),
        owner_resolver=OwnerResolver(ad_client, graph_client, config.account_prefixes),
        thresholds=thresholds,
        deletion_enabled=deletion_enabled,
        sender=config.mail_sender or "",
        session=ExternalSession(ad_client, graph_client),
        dry_run=dry_run,
        composer=NotificationComposer(thresholds, deletion_enabled)
    )
