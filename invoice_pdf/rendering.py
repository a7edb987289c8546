"""Invoice template rendering and HTML to PDF conversion."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Tuple

from fpdf import FPDF
from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)

from .errors import ConversionError, RenderError
from .fonts import FontManager

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")
Color = Tuple[int, int, int]


def parse_hex_color(value: Any) -> Optional[Color]:
    if not isinstance(value, str):
        return None
    match = HEX_COLOR.match(value.strip())
    if match is None:
        return None
    digits = match.group(1)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


class TemplateRenderer:
    """Render one Jinja2 template from disk; the environment is shared by request threads."""

    def __init__(self, template_path: str) -> None:
        self.template_path = template_path
        directory, self.template_name = os.path.split(os.path.abspath(template_path))
        self.environment = Environment(
            loader=FileSystemLoader(directory),
            autoescape=select_autoescape(["html", "htm"]),
            undefined=StrictUndefined,
        )

    def render(self, context: Mapping[str, Any]) -> str:
        try:
            template = self.environment.get_template(self.template_name)
            return template.render(**context)
        except TemplateNotFound as exc:
            raise RenderError(f"Invoice template not found: {self.template_path}") from exc
        except TemplateError as exc:
            raise RenderError(f"Cannot render {self.template_path}: {exc}") from exc


@dataclass(frozen=True)
class ConversionOptions:
    print_background: bool = True
    background_color: Optional[Color] = None


class InvoicePDF(FPDF):
    background_color: Optional[Color] = None

    def header(self) -> None:
        if self.background_color is None:
            return
        self.set_fill_color(*self.background_color)
        self.rect(0, 0, self.w, self.h, style="F")


def _pdf_bytes(blob: Any) -> bytes:
    if isinstance(blob, (bytes, bytearray)):
        return bytes(blob)
    if isinstance(blob, str):
        return blob.encode("latin-1")
    raise ConversionError(f"Unexpected PDF output type: {type(blob).__name__}")


def iter_chunks(data: bytes, size: int = CHUNK_SIZE) -> Iterator[bytes]:
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]


class PdfConverter:
    def __init__(self, fonts: Optional[FontManager] = None) -> None:
        self.fonts = fonts if fonts is not None else FontManager()

    def convert(self, html: str, options: ConversionOptions = ConversionOptions()) -> Iterator[bytes]:
        """Convert ``html`` eagerly; the returned iterator only yields chunks."""
        pdf = InvoicePDF(unit="mm", format="A4")
        if options.print_background:
            pdf.background_color = options.background_color
        try:
            family = self.fonts.register(pdf)
            pdf.add_page()
            pdf.set_font(family, size=10)
            pdf.write_html(f'<font face="{family}">{html}</font>')
            data = _pdf_bytes(pdf.output())
        except ConversionError:
            raise
        except Exception as exc:
            raise ConversionError(f"PDF conversion failed: {exc}") from exc
        logger.debug("Converted invoice HTML to a %d byte PDF", len(data))
        return iter_chunks(data)


class InvoiceRenderer:
    """Template render followed by PDF conversion for a resolved context."""

    def __init__(
        self,
        template_path: str,
        print_background: bool = True,
        templates: Optional[TemplateRenderer] = None,
        converter: Optional[PdfConverter] = None,
    ) -> None:
        self.template_path = template_path
        self.print_background = print_background
        self.templates = templates if templates is not None else TemplateRenderer(template_path)
        self.converter = converter if converter is not None else PdfConverter()

    def render_html(self, context: Mapping[str, Any]) -> str:
        return self.templates.render(context)

    def render_pdf(self, context: Mapping[str, Any]) -> Iterator[bytes]:
        html = self.render_html(context)
        options = ConversionOptions(
            print_background=self.print_background,
            background_color=parse_hex_color(context.get("background")),
        )
        return self.converter.convert(html, options)
