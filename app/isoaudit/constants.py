"""
Central constants for the ISO audit application.
"""
from __future__ import annotations

# Standard key -> display label. The key is stored on companies, checklist
# items and clause templates.
STANDARDS = {
    "9001": "ISO 9001:2015",
    "27001": "ISO/IEC 27001:2022",
}

# Completed templates are spreadsheets only
ALLOWED_UPLOAD_EXTENSIONS = frozenset({".xlsx", ".xls"})

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_CONTENT_TYPE = "application/vnd.ms-excel"


def standard_label(standard: str) -> str:
    return STANDARDS.get(standard, f"ISO {standard}")
