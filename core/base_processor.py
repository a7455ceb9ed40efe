# =============================================================================
# core/base_processor.py - Abstract account source processor
# =============================================================================

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import logging

from core.engine import InactivityEngine
from core.models import AccountRecord, RunResult, RunSummary
from utils.report import write_run_outputs


class BaseAccountProcessor(ABC):
    """Loads account records from a source and runs them through the engine"""

    # Sources that read the directory while loading need the session open first
    needs_session_to_load = False
    output_prefix = "inactivity"

    def __init__(self, engine: InactivityEngine):
        self.engine = engine
        self.output_paths: Dict[str, str] = {}
        self.output_error: Optional[str] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def load_records(self) -> List[AccountRecord]:
        """Produce the ordered input records"""
        pass

    def process_accounts(self, output_dir: Optional[str] = None,
                         session_established: bool = False) -> RunResult:
        """Main processing workflow"""
        self.logger.info(f"Starting {self.__class__.__name__} processing workflow")

        session = self.engine.session
        hold_session = self.needs_session_to_load and session is not None and not session_established

        if hold_session:
            try:
                session.connect()
            except Exception as e:
                return self._failed(f"Session acquisition failed: {e}")

        try:
            try:
                records = self.load_records()
            except Exception as e:
                self.logger.error(f"Loading accounts failed: {e}")
                return self._failed(f"Loading accounts failed: {e}")

            self.logger.info(f"Loaded {len(records)} account records")
            result = self.engine.run(records, session_established=session_established or hold_session)
        finally:
            if hold_session:
                session.disconnect()

        if output_dir:
            self.write_outputs(result, output_dir)

        self.log_statistics(result)
        return result

    def write_outputs(self, result: RunResult, output_dir: str) -> None:
        """Write run files; a write failure is logged and never discards the finished run"""
        try:
            self.output_paths = write_run_outputs(result, output_dir, self.output_prefix)
        except OSError as e:
            self.output_error = f"Writing outputs to {output_dir} failed: {e}"
            self.logger.error(self.output_error)
            for row in result.unprocessed:
                self.logger.error(f"Unprocessed: {row.get('UserPrincipalName', '')}")

    def _failed(self, message: str) -> RunResult:
        self.logger.error(message)
        return RunResult(success=False, error=message, summary=RunSummary())

    def log_statistics(self, result: RunResult) -> None:
        """Log processing statistics"""
        self.logger.info(f"Run summary: {result.summary.to_dict()}")
        if result.unprocessed:
            self.logger.warning(f"{len(result.unprocessed)} accounts left unprocessed")
        if not result.success:
            self.logger.error(f"Run did not complete: {result.error}")
