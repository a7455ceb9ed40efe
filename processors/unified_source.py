# =============================================================================
# processors/unified_source.py - Import plus discovery processor
# =============================================================================

from typing import List, Optional

from core.engine import InactivityEngine
from core.models import AccountRecord
from processors.discovery_source import DiscoveryProcessor
from utils.csv_utils import load_account_records


class UnifiedProcessor(DiscoveryProcessor):
    """Evaluates an export plus any discovered accounts the export does not list"""

    output_prefix = "unified"

    def __init__(self, engine: InactivityEngine, input_csv: str, prefixes: List[str],
                 search_base: Optional[str] = None):
        super().__init__(engine, prefixes, search_base)
        self.input_csv = input_csv

    def load_records(self) -> List[AccountRecord]:
        imported = load_account_records(self.input_csv)
        known = {r.user_principal_name.lower() for r in imported if r.user_principal_name}

        discovered = [r for r in super().load_records()
                      if r.user_principal_name.lower() not in known]
        self.logger.info(f"{len(imported)} imported accounts, {len(discovered)} added by discovery")
        return imported + discovered
