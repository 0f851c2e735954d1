"""
Transaction export.

Renders a transaction list as CSV (for spreadsheets) or JSON (the same
camelCase records the API returns).
"""

import csv
import io
import json
from datetime import date
from enum import Enum
from typing import Optional

from spendlog.models.finance import Transaction


CSV_HEADERS = ["Date", "Type", "Category", "Amount", "Description"]


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"

    @property
    def media_type(self) -> str:
        if self is ExportFormat.CSV:
            return "text/csv; charset=utf-8"
        return "application/json"


def export_filename(
    start: Optional[date],
    end: Optional[date],
    export_format: ExportFormat,
) -> str:
    """spend_log_<start>_to_<end>.<ext>, with ``all`` for a missing bound."""
    start_label = start.isoformat() if start else "all"
    end_label = end.isoformat() if end else "all"
    return f"spend_log_{start_label}_to_{end_label}.{export_format.value}"


def render_csv(transactions: list[Transaction]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for t in transactions:
        writer.writerow([
            t.date.isoformat(),
            t.type.value,
            t.category,
            t.amount,
            t.description or "",
        ])
    return buffer.getvalue()


def render_json(transactions: list[Transaction]) -> str:
    return json.dumps(
        [t.to_response() for t in transactions],
        indent=2,
        ensure_ascii=False,
    )


def render_export(transactions: list[Transaction], export_format: ExportFormat) -> str:
    if export_format is ExportFormat.CSV:
        return render_csv(transactions)
    return render_json(transactions)
