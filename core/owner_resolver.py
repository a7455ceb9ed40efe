# =============================================================================
# core/owner_resolver.py - Owner resolution strategies
# =============================================================================

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from core.exceptions import DirectoryLookupError
from core.models import OwnerResolution, UNRESOLVED

logger = logging.getLogger(__name__)

PREFIX_STRIP = 'PrefixStrip'
EXTENSION_ATTRIBUTE = 'ExtensionAttribute'
CLOUD_SPONSOR = 'CloudSponsor'


@dataclass(frozen=True)
class OwnerContext:
    """Inputs shared by every owner strategy"""
    sam_account_name: str = ""
    extension_attribute: str = ""
    object_id: str = ""
    prefixes: List[str] = field(default_factory=list)
    directory: Any = None
    cloud: Any = None


OwnerStrategy = Callable[[OwnerContext], Optional[OwnerResolution]]


def parse_owner_attribute(value: str) -> Optional[str]:
    """Read the owner from 'key=value;key=value' text, key matched case-insensitively"""
    for pair in (value or '').split(';'):
        key, sep, owner = pair.partition('=')
        if sep and key.strip().lower() == 'owner' and owner.strip():
            return owner.strip()
    return None


def _lookup_owner(context: OwnerContext, candidate: str, strategy: str) -> Optional[OwnerResolution]:
    if context.directory is None:
        return None
    try:
        owner = context.directory.find_owner(candidate)
    except DirectoryLookupError as e:
        logger.warning(f"{strategy} lookup of '{candidate}' failed: {e}")
        return None
    if owner is None:
        logger.debug(f"{strategy} candidate '{candidate}' not found in AD")
        return None
    return OwnerResolution(owner_id=owner.sam_account_name or candidate, email=owner.mail, strategy=strategy)


def strip_prefix(context: OwnerContext) -> Optional[OwnerResolution]:
    """adm.jsmith -> jsmith; only the longest matching prefix is tried"""
    if not context.sam_account_name:
        return None

    for prefix in sorted(context.prefixes, key=len, reverse=True):
        match = re.match(rf"^{re.escape(prefix)}[._](.+)$", context.sam_account_name, re.IGNORECASE)
        if match:
            return _lookup_owner(context, match.group(1), PREFIX_STRIP)
    return None


def owner_from_extension_attribute(context: OwnerContext) -> Optional[OwnerResolution]:
    candidate = parse_owner_attribute(context.extension_attribute)
    if not candidate:
        return None
    return _lookup_owner(context, candidate, EXTENSION_ATTRIBUTE)


def owner_from_cloud_sponsor(context: OwnerContext) -> Optional[OwnerResolution]:
    """Cloud-native accounts only: first sponsor, mail preferred over UPN"""
    if context.sam_account_name or not context.object_id or context.cloud is None:
        return None
    try:
        sponsors = context.cloud.get_sponsors(context.object_id)
    except DirectoryLookupError as e:
        logger.warning(f"Sponsor lookup for {context.object_id} failed: {e}")
        return None
    if not sponsors:
        return None

    sponsor = sponsors[0]
    address = sponsor.mail or sponsor.user_principal_name
    return OwnerResolution(
        owner_id=sponsor.user_principal_name or sponsor.mail,
        email=address,
        strategy=CLOUD_SPONSOR
    )


DEFAULT_STRATEGIES: List[OwnerStrategy] = [
    strip_prefix,
    owner_from_extension_attribute,
    owner_from_cloud_sponsor,
]


class OwnerResolver:
    """Runs owner strategies in priority order; the first resolution wins"""

    def __init__(self, directory: Any, cloud: Any, prefixes: List[str],
                 strategies: Optional[List[OwnerStrategy]] = None):
        self.directory = directory
        self.cloud = cloud
        self.prefixes = list(prefixes)
        self.strategies = strategies if strategies is not None else DEFAULT_STRATEGIES
        self.logger = logging.getLogger(self.__class__.__name__)

    def resolve(self, sam_account_name: str = "", extension_attribute: str = "",
                object_id: str = "") -> OwnerResolution:
        context = OwnerContext(
            sam_account_name=sam_account_name,
            extension_attribute=extension_attribute,
            object_id=object_id,
            prefixes=self.prefixes,
            directory=self.directory,
            cloud=self.cloud
        )
        for strategy in self.strategies:
            resolution = strategy(context)
            if resolution is not None and resolution.is_resolved:
                self.logger.debug(f"Owner of {sam_account_name or object_id} resolved by {resolution.strategy}")
                return resolution
        return UNRESOLVED
