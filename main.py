# =============================================================================
# main.py - CLI entry point
# =============================================================================

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from core.exceptions import ConfigurationError
from core.factory import build_engine
from processors.discovery_source import DiscoveryProcessor
from processors.import_source import ImportProcessor
from processors.unified_source import UnifiedProcessor
from utils.config import Config


def setup_logging(level: str = "INFO") -> str:
    """Setup logging configuration with both console and file output"""
    # Create logs directory if it doesn't exist
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    # Generate date-stamped filename
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"inactivity_remediation_{timestamp}.log"

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler always logs DEBUG
    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Console: {level.upper()}, File: DEBUG")
    logger.info(f"Log file: {log_filename}")

    return str(log_filename)


def build_processor(args, config, engine):
    """Select the account source for the chosen subcommand"""
    if args.source == 'import':
        return ImportProcessor(engine, args.input_csv)
    if args.source == 'discover':
        return DiscoveryProcessor(engine, config.account_prefixes, config.discovery_search_base)
    return UnifiedProcessor(engine, args.input_csv, config.account_prefixes, config.discovery_search_base)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Privileged account inactivity remediation")
    subparsers = parser.add_subparsers(dest='source', help='Account source')

    import_parser = subparsers.add_parser('import', help='Evaluate accounts from a CSV export')
    import_parser.add_argument('input_csv', help='Input CSV file path (an unprocessed file is accepted)')

    subparsers.add_parser('discover', help='Discover prefixed accounts in AD and Entra ID')

    unified_parser = subparsers.add_parser('unified', help='CSV export plus discovered accounts')
    unified_parser.add_argument('input_csv', help='Input CSV file path')

    for sub in subparsers.choices.values():
        sub.add_argument('--output-dir', default='output', help='Directory for result files')
        sub.add_argument('--dry-run', action='store_true',
                         help='Evaluate only; send no mail and change no accounts')
        sub.add_argument('--session-established', action='store_true',
                         help='Do not connect/disconnect the directory sessions')
        sub.add_argument('--enable-deletion', action='store_true',
                         help='Delete accounts past the delete threshold instead of disabling them')

    # Global arguments
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    return parser


def main(argv=None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.source:
        parser.print_help()
        return 1

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    input_file = getattr(args, 'input_csv', None)
    if input_file and not Path(input_file).exists():
        logger.error(f"Input file not found: {input_file}")
        return 1

    config = Config()
    try:
        engine = build_engine(
            config,
            dry_run=args.dry_run,
            deletion_enabled=True if args.enable_deletion else None
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    processor = build_processor(args, config, engine)
    result = processor.process_accounts(args.output_dir, session_established=args.session_established)

    for kind, path in processor.output_paths.items():
        logger.info(f"{kind}: {path}")

    if not result.success:
        logger.error(f"Run failed: {result.error}")
        return 1

    if processor.output_error:
        logger.error(f"Run finished but its outputs were not saved: {processor.output_error}")
        return 1

    logger.info("Processing completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
