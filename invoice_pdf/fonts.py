"""Unicode font discovery for the HTML to PDF converter."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from fpdf import FPDF

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

CORE_FAMILY = "helvetica"


def find_font_path(env_var: str, candidates: List[str]) -> Optional[str]:
    override = os.getenv(env_var)
    if override and os.path.exists(override):
        return override

    for path in candidates:
        if os.path.exists(path):
            return path
    return None


@dataclass(frozen=True)
class FontFiles:
    regular: Optional[str]
    bold: Optional[str]


class FontManager:
    FAMILY = "InvoiceFont"
    BUNDLED_REGULAR = os.path.join(_PROJECT_ROOT, "fonts", "DejaVuSans.ttf")
    BUNDLED_BOLD = os.path.join(_PROJECT_ROOT, "fonts", "DejaVuSans-Bold.ttf")
    SYSTEM_REGULAR_CANDIDATES = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans.ttf",
        "/Library/Fonts/DejaVuSans.ttf",
    ]
    SYSTEM_BOLD_CANDIDATES = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
        "/Library/Fonts/DejaVuSans-Bold.ttf",
    ]

    def __init__(self, files: Optional[FontFiles] = None) -> None:
        self.files = files if files is not None else self.discover()

    @classmethod
    def discover(cls) -> FontFiles:
        return FontFiles(
            regular=find_font_path(
                "INVOICE_FONT_PATH",
                [cls.BUNDLED_REGULAR, *cls.SYSTEM_REGULAR_CANDIDATES],
            ),
            bold=find_font_path(
                "INVOICE_FONT_BOLD_PATH",
                [cls.BUNDLED_BOLD, *cls.SYSTEM_BOLD_CANDIDATES],
            ),
        )

    @property
    def is_unicode(self) -> bool:
        return self.files.regular is not None

    def register(self, pdf: FPDF) -> str:
        """Add the invoice font to ``pdf`` and return the family to select.

        Without a TTF file the core Helvetica font is used, which only
        covers Latin-1 text.
        """
        if self.files.regular is None:
            return CORE_FAMILY

        # HTML <b> needs a bold face; reuse the regular file when none exists.
        bold_path = self.files.bold or self.files.regular
        pdf.add_font(self.FAMILY, "", self.files.regular)
        pdf.add_font(self.FAMILY, "B", bold_path)
        return self.FAMILY
