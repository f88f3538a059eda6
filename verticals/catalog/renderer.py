"""Text export renderer for catalog reports.

Deterministic formatting of report payloads. The summary export
is a two-line CSV: a fixed header and exactly one data row.
"""

import csv
import io
from typing import Any, Dict

SUMMARY_CSV_COLUMNS = ("users_count", "books_count", "reviews_count", "avg_rating")
SUMMARY_CSV_FILENAME = "summary.csv"


def fmt_rating(value: float | None) -> str:
    """Two-decimal rating; empty string when there is no rating."""
    if value is None:
        return ""
    return f"{value:.2f}"


def render_summary_csv(summary: Dict[str, Any]) -> str:
    """Render the global summary as CSV with a trailing newline."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(SUMMARY_CSV_COLUMNS)
    writer.writerow([
        summary.get("users_count") or 0,
        summary.get("books_count") or 0,
        summary.get("reviews_count") or 0,
        fmt_rating(summary.get("avg_rating")),
    ])
    return buffer.getvalue()
