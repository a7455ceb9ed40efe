# =============================================================================
# utils/report.py - Run output files
# =============================================================================

import json
import logging
import os
from datetime import datetime
from typing import Dict, List

import pandas as pd

from core.models import RESULT_FIELDNAMES, RunResult
from utils.csv_utils import CSVHandler

logger = logging.getLogger(__name__)


def write_run_outputs(result: RunResult, output_dir: str, prefix: str = "inactivity") -> Dict[str, str]:
    """
    Write results CSV, unprocessed CSV, JSON and Excel workbook.

    Returns a mapping of output kind to file path. The unprocessed CSV keeps
    the input column contract so it can be passed straight back in.
    """
    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base = os.path.join(output_dir, f"{prefix}_{timestamp}")

    paths = {
        'results': f"{base}_results.csv",
        'unprocessed': f"{base}_unprocessed.csv",
        'json': f"{base}_result.json",
        'excel': f"{base}_report.xlsx",
    }

    rows = [entry.to_dict() for entry in result.results]
    CSVHandler.write_csv(rows, paths['results'], RESULT_FIELDNAMES)
    CSVHandler.write_csv(result.unprocessed, paths['unprocessed'])

    with open(paths['json'], 'w', encoding='utf-8') as file:
        json.dump(result.to_dict(), file, indent=2, default=str)

    export_excel(result, paths['excel'])
    logger.info(f"Wrote run outputs to {output_dir}")
    return paths


def export_excel(result: RunResult, output_path: str) -> None:
    """Export results, summary and unprocessed rows to a workbook with one sheet each"""
    results_df = pd.DataFrame([entry.to_dict() for entry in result.results], columns=RESULT_FIELDNAMES)

    summary_rows: List[Dict[str, object]] = [
        {'Metric': name, 'Value': value} for name, value in result.summary.to_dict().items()
    ]
    summary_rows.insert(0, {'Metric': 'Success', 'Value': result.success})
    if result.error:
        summary_rows.insert(1, {'Metric': 'Error', 'Value': result.error})
    summary_df = pd.DataFrame(summary_rows, columns=['Metric', 'Value'])

    unprocessed_df = pd.DataFrame(result.unprocessed)

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        results_df.to_excel(writer, sheet_name='Results', index=False)
        summary_df.to_excel(writer, sheet_name='Summary', index=False)
        unprocessed_df.to_excel(writer, sheet_name='Unprocessed', index=False)
