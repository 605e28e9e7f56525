"""CSV export of computed statements and headline metrics.

One section per statement, separated by a blank line; each section has a
header row of field names and one row per year.  Values are written as
computed, with ``None`` rendered as an empty cell.
"""

from __future__ import annotations

import csv
import io
from typing import Any, Mapping

SECTIONS: tuple[tuple[str, str], ...] = (
    ("Income Statement", "incomeStatements"),
    ("Balance Sheet", "balanceSheets"),
    ("Cash Flow Statement", "cashFlowStatements"),
    ("Debt Schedule", "debtSchedule"),
    ("Carbon Stream", "carbonStream"),
    ("Free Cash Flow", "freeCashFlow"),
)


def _cell(value: Any) -> Any:
    return "" if value is None else value


def statements_to_csv(
    statements: Mapping[str, Any],
    metrics: Mapping[str, Any] | None = None,
) -> str:
    """Render ``FinancialStatements.to_dict()`` output (and metrics) as CSV text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    for title, key in SECTIONS:
        rows = statements.get(key) or []
        writer.writerow([title])
        if rows:
            fields = list(rows[0].keys())
            writer.writerow(fields)
            for row in rows:
                writer.writerow([_cell(row.get(f)) for f in fields])
        writer.writerow([])

    if metrics:
        writer.writerow(["Returns"])
        writer.writerow(["series", "npv", "irr", "mirr", "payback", "discounted_payback"])
        for series in ("equity", "project", "investor"):
            r = metrics.get("returns", {}).get(series, {})
            writer.writerow([
                series,
                _cell(r.get("npv")),
                _cell(r.get("irr")),
                _cell(r.get("mirr")),
                _cell(r.get("payback")),
                _cell(r.get("discounted_payback")),
            ])
        writer.writerow([])
        writer.writerow(["Summary"])
        for name, value in (metrics.get("summary") or {}).items():
            writer.writerow([name, _cell(value)])

    return buffer.getvalue()
