# =============================================================================
# utils/csv_utils.py - CSV utilities and the account row contract
# =============================================================================

import csv
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple
import logging

from dateutil import parser as date_parser

from core.models import AccountRecord

ACCOUNT_FIELDNAMES = [
    'UserPrincipalName', 'SamAccountName', 'ObjectId', 'Enabled',
    'LastLogonDate', 'WhenCreated', 'Description'
]
CORE_COLUMNS = {name.lower() for name in ACCOUNT_FIELDNAMES if name != 'Description'}


class CSVHandler:
    """Utilities for reading and writing CSV files"""

    @staticmethod
    def read_csv(file_path: str, encoding: str = 'utf-8-sig',
                 delimiter: str = ',') -> Tuple[List[Dict[str, Any]], List[str]]:
        """Read CSV file and return list of dictionaries plus the header row"""
        logger = logging.getLogger(__name__)

        try:
            with open(file_path, 'r', newline='', encoding=encoding) as file:
                dict_reader = csv.DictReader(file, delimiter=delimiter)
                data = list(dict_reader)
                headers = list(dict_reader.fieldnames or [])

            logger.info(f"CSV Headers: {headers[:10]}...")
            logger.info(f"Successfully read {len(data)} records from {file_path}")
            return data, headers

        except FileNotFoundError:
            logger.error(f"Input file {file_path} not found")
            raise
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            logger.error(f"Error reading CSV: {e}")
            raise

    @staticmethod
    def write_csv(data: List[Dict[str, Any]], output_path: str,
                  fieldnames: Optional[List[str]] = None) -> None:
        """Write data to CSV file; an empty data set still gets a header row"""
        logger = logging.getLogger(__name__)

        if fieldnames is None:
            fieldnames = list(data[0].keys()) if data else list(ACCOUNT_FIELDNAMES)
            for row in data:
                fieldnames.extend(k for k in row if k not in fieldnames)

        try:
            with open(output_path, 'w', newline='', encoding='utf-8') as file:
                writer = csv.DictWriter(file, fieldnames=fieldnames, extrasaction='ignore')
                writer.writeheader()
                writer.writerows(data)

            logger.info(f"Successfully wrote {len(data)} records to {output_path}")

        except OSError as e:
            logger.error(f"Error writing CSV: {e}")
            raise


def parse_bool(value: Any) -> Optional[bool]:
    """Export flags arrive as True/False, yes/no or 1/0; blank means unknown"""
    if isinstance(value, bool):
        return value
    text = str(value or '').strip().lower()
    if text in ('true', 'yes', 'y', '1', 'enabled'):
        return True
    if text in ('false', 'no', 'n', '0', 'disabled'):
        return False
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an export timestamp; unparseable values count as missing"""
    if isinstance(value, datetime):
        return value
    text = str(value or '').strip()
    if not text:
        return None
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError):
        logging.getLogger(__name__).warning(f"Unparseable timestamp '{text}' ignored")
        return None


def row_to_record(row: Dict[str, Any]) -> AccountRecord:
    """Build an AccountRecord from an input row, matching headers case-insensitively"""
    lowered = {str(k).strip().lower(): ('' if v is None else str(v).strip()) for k, v in row.items() if k}

    attributes = {
        str(k).strip(): ('' if v is None else str(v))
        for k, v in row.items()
        if k and str(k).strip().lower() not in CORE_COLUMNS
    }

    return AccountRecord(
        user_principal_name=lowered.get('userprincipalname', ''),
        sam_account_name=lowered.get('samaccountname', ''),
        object_id=lowered.get('objectid', ''),
        enabled=parse_bool(lowered.get('enabled')),
        last_logon=parse_timestamp(lowered.get('lastlogondate')),
        created=parse_timestamp(lowered.get('whencreated')),
        attributes=attributes,
        source_row={str(k): ('' if v is None else v) for k, v in row.items() if k}
    )


def load_account_records(file_path: str) -> List[AccountRecord]:
    """Read an account export into records"""
    rows, _ = CSVHandler.read_csv(file_path)
    return [row_to_record(row) for row in rows]
