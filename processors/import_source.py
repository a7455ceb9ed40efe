# =============================================================================
# processors/import_source.py - Import-driven processor (CSV export)
# =============================================================================

from typing import List

from core.base_processor import BaseAccountProcessor
from core.engine import InactivityEngine
from core.models import AccountRecord
from utils.csv_utils import load_account_records


class ImportProcessor(BaseAccountProcessor):
    """Evaluates accounts listed in a CSV export, including a previous run's unprocessed file"""

    output_prefix = "import"

    def __init__(self, engine: InactivityEngine, input_csv: str):
        super().__init__(engine)
        self.input_csv = input_csv

    def load_records(self) -> List[AccountRecord]:
        records = load_account_records(self.input_csv)
        missing = sum(1 for r in records if not r.user_principal_name)
        if missing:
            self.logger.warning(f"{missing} rows in {self.input_csv} have no UserPrincipalName")
        return records
