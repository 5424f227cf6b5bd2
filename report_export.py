"""
Report Exporters
CSV, Excel-friendly CSV and JSON output for generated reports
"""

import csv
import json
import logging
from datetime import datetime
from typing import Optional

import pandas as pd

from report_models import GeneratedReport

logger = logging.getLogger(__name__)


def _default_filename(report: GeneratedReport, extension: str) -> str:
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f"{report.template_name.lower().replace(' ', '_')}_{timestamp}.{extension}"


def report_to_dataframe(report: GeneratedReport) -> pd.DataFrame:
    """
    Convert report rows to a DataFrame headed by column labels

    Args:
        report: Generated report

    Returns:
        DataFrame with one column per display column, in column order
    """
    pairs = report.display_columns()
    records = [[row.get(key, '') for key, _ in pairs] for row in report.data]
    return pd.DataFrame(records, columns=[label for _, label in pairs])


def report_to_csv_string(report: GeneratedReport) -> str:
    return report_to_dataframe(report).to_csv(index=False)


def export_to_csv(report: GeneratedReport, filename: Optional[str] = None) -> str:
    """
    Export report to CSV file

    Args:
        report: Generated report
        filename: Output filename (auto-generated if not provided)

    Returns:
        Path to the created CSV file
    """
    if not filename:
        filename = _default_filename(report, 'csv')

    report_to_dataframe(report).to_csv(filename, index=False)
    logger.info(f"Exported {report.row_count} row(s) to {filename}")
    return filename


def export_to_excel_csv(report: GeneratedReport, filename: Optional[str] = None) -> str:
    """
    Export report as an Excel-friendly CSV (UTF-8 with BOM and a metadata header)

    Args:
        report: Generated report
        filename: Output filename (auto-generated if not provided)

    Returns:
        Path to the created file
    """
    if not filename:
        filename = _default_filename(report, 'csv')

    with open(filename, 'w', encoding='utf-8-sig', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['Report Name', report.template_name])
        writer.writerow(['Generated At', report.generated_at])
        writer.writerow(['Total Records', report.row_count])
        writer.writerow([])
        report_to_dataframe(report).to_csv(f, index=False)

    logger.info(f"Exported {report.row_count} row(s) to {filename}")
    return filename


def export_to_json(report: GeneratedReport, filename: Optional[str] = None, pretty: bool = True) -> str:
    """
    Export report to JSON file

    Args:
        report: Generated report
        filename: Output filename (auto-generated if not provided)
        pretty: If True, format JSON with indentation

    Returns:
        Path to the created JSON file
    """
    if not filename:
        filename = _default_filename(report, 'json')

    with open(filename, 'w') as f:
        if pretty:
            json.dump(report.to_dict(), f, indent=2, default=str)
        else:
            json.dump(report.to_dict(), f, default=str)

    logger.info(f"Exported {report.row_count} row(s) to {filename}")
    return filename
