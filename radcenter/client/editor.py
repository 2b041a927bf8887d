"""
Report editor document.

Holds the HTML being written for one study. It is seeded with the saved
report or a default boilerplate, can be locked read-only, and supports
replacing its content with a compiled template and prepending clinical
context snippets.
"""
from typing import Any, Dict, Optional, Set

from .exceptions import ClientError

DEFAULT_REPORT = (
    "<p><b>Findings:</b></p>"
    "<p>No significant abnormality detected.</p>"
    "<p><br></p>"
    "<p><b>Impression:</b></p>"
    "<p>Normal study.</p>"
)

# Clinical context kind -> (patient column, label)
CLINICAL_CONTEXT = {
    "complaint": ("complaint", "Chief Complaint: "),
    "diagnosis": ("diagnosis", "Clinical Diagnosis: "),
    "history": ("medical_history", "History: "),
}


class ReadOnlyError(ClientError):
    """Raised when a locked document is edited."""


class ReportEditor:
    """
    Attributes:
        content: Current HTML
        read_only: True when the current user may not edit this report
        imported: Clinical context kinds already inserted
    """

    def __init__(self, content: Optional[str] = None, read_only: bool = False):
        self.content = content or DEFAULT_REPORT
        self.read_only = read_only
        self.imported: Set[str] = set()

    def _check_writable(self) -> None:
        if self.read_only:
            raise ReadOnlyError("Report is read-only for this user")

    def set_content(self, html: str) -> None:
        self._check_writable()
        self.content = html

    def insert_template(self, html: str) -> None:
        """Replace the document with a compiled template."""
        self.set_content(html)

    def toggle_import(self, kind: str, checked: bool, patient: Dict[str, Any]) -> bool:
        """
        Prepend a clinical context line when checked. Unchecking leaves the
        inserted text in place.

        Returns:
            bool: True if text was inserted
        """
        column, label = CLINICAL_CONTEXT[kind]
        text = (patient or {}).get(column) or ""
        if not checked or not text:
            return False
        self._check_writable()
        self.content = f"<p><b>{label}</b>{text}</p>" + self.content
        self.imported.add(kind)
        return True
