"""
One-shot alert payloads for rendered pages.

Alerts are plain values handed to ``render_template(..., alert=...)``. Across a
redirect they travel as a ``notice`` query argument naming an entry of
``NOTICES``; nothing is parked in the session between requests.
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import Request


@dataclass(frozen=True)
class Alert:
    title: str
    message: str
    icon: str = "info"  # success, error, warning, info

    @property
    def css_class(self) -> str:
        return {"error": "danger"}.get(self.icon, self.icon)


NOTICES: dict[str, Alert] = {
    "company_registered": Alert("Registration complete", "The company audit was registered successfully.", "success"),
    "training_required": Alert(
        "Training required",
        "Complete the training video before downloading this template.",
        "warning",
    ),
    "template_not_found": Alert("Not found", "Template not found.", "error"),
    "template_unavailable": Alert(
        "Unavailable",
        "Template file is not available. Contact the administrator.",
        "error",
    ),
    "upload_saved": Alert("Uploaded", "File uploaded successfully.", "success"),
    "upload_missing": Alert("No file", "No file was selected.", "error"),
    "upload_bad_type": Alert("Invalid file", "Only Excel files (.xlsx, .xls) are allowed.", "error"),
    "upload_too_large": Alert("File too large", "The file exceeds the upload size limit.", "error"),
    "upload_unreadable": Alert("Invalid file", "The file could not be read as an Excel workbook.", "error"),
    "upload_failed": Alert("Upload failed", "The file could not be stored. Try again.", "error"),
    "upload_deleted": Alert("Deleted", "File deleted successfully.", "success"),
    "upload_not_found": Alert("Not found", "File not found.", "error"),
    "upload_gone": Alert("Unavailable", "The file is no longer available.", "error"),
    "file_too_large": Alert("File too large", "The request exceeds the maximum upload size.", "error"),
}


def alert_from_request(req: Request) -> Alert | None:
    code = (req.args.get("notice") or "").strip()
    if not code:
        return None
    return NOTICES.get(code)


def error_alert(message: str, title: str = "Error") -> Alert:
    return Alert(title=title, message=message, icon="error")
