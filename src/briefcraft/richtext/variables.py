"""Template variables offered by the editor.

Tokens such as ``{{date}}`` are plain text to the document engine; they are
substituted later, at export or preview time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class TemplateVariable:
    label: str
    token: str


TEMPLATE_VARIABLES: tuple[TemplateVariable, ...] = (
    TemplateVariable("Date", "{{date}}"),
    TemplateVariable("Page Number", "{{page_number}}"),
    TemplateVariable("Company Name", "{{company_name}}"),
    TemplateVariable("Company Address", "{{company_address}}"),
    TemplateVariable("Company Contact", "{{company_contact}}"),
    TemplateVariable("Document Title", "{{document_title}}"),
    TemplateVariable("Document Type", "{{document_type}}"),
    TemplateVariable("Year", "{{year}}"),
    TemplateVariable("Month", "{{month}}"),
)

_TOKEN_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def find_template_tokens(text: str) -> list[str]:
    """Variable names referenced in ``text``, in order of first appearance."""
    names: list[str] = []
    for match in _TOKEN_PATTERN.finditer(text):
        if match.group(1) not in names:
            names.append(match.group(1))
    return names


def is_template_token(text: str) -> bool:
    return _TOKEN_PATTERN.fullmatch(text) is not None
