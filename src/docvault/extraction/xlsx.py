"""XLSX text extraction using openpyxl.

Each sheet becomes a "# {sheet name}" header followed by one tab-separated
line per non-empty row. Formulas are read as their cached values.
"""

from __future__ import annotations

import io
import zipfile
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from docvault.extraction.base import (
    ExtractionError,
    ExtractionErrorCode,
    ExtractionLimits,
    check_size,
)


def _format_cell_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, float):
        return format(Decimal(repr(value)).normalize(), "f")
    text = str(value).strip()
    return text or None


def extract_xlsx_text(data: bytes, limits: ExtractionLimits | None = None) -> str:
    """Extract text from XLSX bytes.

    Raises:
        ExtractionError: If the workbook is oversized, malformed or too large.
    """
    limits = limits or ExtractionLimits()
    check_size(data, limits)

    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise ExtractionError(
            ExtractionErrorCode.CORRUPTED_FILE,
            "Invalid XLSX file format",
            details={"error": str(e)},
        ) from e

    try:
        sheet_names = workbook.sheetnames
        if len(sheet_names) > limits.max_sheets:
            raise ExtractionError(
                ExtractionErrorCode.MAX_SHEETS_EXCEEDED,
                f"Workbook has {len(sheet_names)} sheets, exceeds limit {limits.max_sheets}",
                details={"sheets": len(sheet_names), "limit": limits.max_sheets},
            )

        sections: list[str] = []
        total_cells = 0
        for sheet_name in sheet_names:
            lines: list[str] = []
            for row in workbook[sheet_name].iter_rows(values_only=True):
                values = [v for v in (_format_cell_value(c) for c in row) if v is not None]
                if not values:
                    continue
                total_cells += len(values)
                if total_cells > limits.max_total_cells:
                    raise ExtractionError(
                        ExtractionErrorCode.MAX_CELLS_EXCEEDED,
                        f"Total cells {total_cells} exceeds limit {limits.max_total_cells}",
                        details={"cells": total_cells, "limit": limits.max_total_cells},
                    )
                lines.append("\t".join(values))
            if lines:
                sections.append(f"# {sheet_name}\n" + "\n".join(lines))
    finally:
        workbook.close()

    return "\n\n".join(sections)
