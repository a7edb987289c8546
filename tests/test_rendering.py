import datetime as dt
import os
import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from importlib import util as importlib_util
from unittest.mock import patch

from invoice_pdf.config import Settings
from invoice_pdf.resolver import ConfigResolver
from invoice_pdf.store import ConfigStore

RENDERING_AVAILABLE = all(
    importlib_util.find_spec(name) is not None for name in ("fpdf", "jinja2")
)
if RENDERING_AVAILABLE:
    from fpdf import FPDF

    from invoice_pdf.errors import ConversionError, DependencyError, RenderError
    from invoice_pdf.fonts import FontFiles, FontManager
    from invoice_pdf.rendering import (
        ConversionOptions,
        InvoiceRenderer,
        PdfConverter,
        TemplateRenderer,
        parse_hex_color,
    )
    from invoice_pdf.server import load_invoice_renderer

UNICODE_FONT_AVAILABLE = RENDERING_AVAILABLE and FontManager().is_unicode

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATE_PATH = os.path.join(PROJECT_ROOT, "templates", "invoice.html")
CONFIG_DIR = os.path.join(PROJECT_ROOT, "config", "invoices")


def sample_context() -> dict:
    resolver = ConfigResolver(
        ConfigStore.from_directory(CONFIG_DIR),
        clock=lambda: dt.date(2023, 3, 20),
    )
    return resolver.resolve(
        {
            "buyerId": "b1",
            "sellerId": "s1",
            "date": "2023-03-15",
            "hours": 160,
            "price": 24000,
            "invoice": {"number": "FV/2023/03/1"},
        }
    )


@unittest.skipUnless(RENDERING_AVAILABLE, "fpdf or jinja2 is not installed")
class TemplateRendererTests(unittest.TestCase):
    def test_sample_template_renders_resolved_context(self) -> None:
        html = TemplateRenderer(TEMPLATE_PATH).render(sample_context())

        self.assertIn("Invoice FV/2023/03/1", html)
        self.assertIn("Document date: 01/03/2023", html)
        self.assertIn("Date of sale: 28-02-2023", html)
        self.assertIn("Quantity: 160h", html)
        self.assertIn("zł", html)

    def test_missing_template_raises_render_error(self) -> None:
        with self.assertRaises(RenderError):
            TemplateRenderer(os.path.join(PROJECT_ROOT, "templates", "absent.html")).render({})

    def test_undefined_context_value_raises_render_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "strict.html")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write("<p>{{ seller.name }}</p>")

            with self.assertRaises(RenderError):
                TemplateRenderer(path).render({})

    def test_values_are_html_escaped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "escape.html")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write("<p>{{ name }}</p>")

            html = TemplateRenderer(path).render({"name": "<b>A & B</b>"})

        self.assertEqual(html, "<p>&lt;b&gt;A &amp; B&lt;/b&gt;</p>")

    def test_environment_is_built_once_and_reused(self) -> None:
        templates = TemplateRenderer(TEMPLATE_PATH)
        environment = templates.environment

        first = templates.render(sample_context())
        second = templates.render(sample_context())

        self.assertIs(templates.environment, environment)
        self.assertEqual(first, second)
        self.assertEqual(environment.loader.searchpath, [os.path.dirname(TEMPLATE_PATH)])

    def test_invoice_renderer_shares_its_template_renderer(self) -> None:
        renderer = InvoiceRenderer(TEMPLATE_PATH)

        self.assertEqual(renderer.templates.template_path, TEMPLATE_PATH)
        self.assertIn("Quantity: 160h", renderer.render_html(sample_context()))


@unittest.skipUnless(RENDERING_AVAILABLE, "fpdf or jinja2 is not installed")
class PdfConverterTests(unittest.TestCase):
    def _core_converter(self) -> "PdfConverter":
        return PdfConverter(FontManager(FontFiles(regular=None, bold=None)))

    def test_convert_returns_pdf_chunks(self) -> None:
        chunks = self._core_converter().convert(
            "<h1>Invoice</h1><p><b>Total:</b> 100.00</p>",
            ConversionOptions(print_background=True, background_color=(250, 250, 250)),
        )
        pdf = b"".join(chunks)

        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertGreater(len(pdf), 100)

    def test_core_font_cannot_encode_non_latin1_text(self) -> None:
        with self.assertRaises(ConversionError):
            self._core_converter().convert("<p>100,00 zł</p>")

    def test_parse_hex_color(self) -> None:
        self.assertEqual(parse_hex_color("#ff8000"), (255, 128, 0))
        self.assertEqual(parse_hex_color("00ff00"), (0, 255, 0))
        self.assertIsNone(parse_hex_color("red"))
        self.assertIsNone(parse_hex_color(None))


@unittest.skipUnless(RENDERING_AVAILABLE, "fpdf or jinja2 is not installed")
class FontSetupTests(unittest.TestCase):
    def test_server_refuses_to_start_without_unicode_font(self) -> None:
        with patch.object(FontManager, "discover", return_value=FontFiles(regular=None, bold=None)):
            with self.assertRaises(DependencyError):
                load_invoice_renderer(Settings(template_path=TEMPLATE_PATH))

    def test_server_accepts_configured_unicode_font(self) -> None:
        files = FontFiles(regular="/fonts/DejaVuSans.ttf", bold=None)
        with patch.object(FontManager, "discover", return_value=files):
            renderer = load_invoice_renderer(Settings(template_path=TEMPLATE_PATH))

        self.assertTrue(renderer.converter.fonts.is_unicode)
        self.assertEqual(renderer.template_path, TEMPLATE_PATH)

    def test_core_font_registers_nothing(self) -> None:
        pdf = FPDF()

        family = FontManager(FontFiles(regular=None, bold=None)).register(pdf)

        self.assertEqual(family, "helvetica")
        self.assertNotIn("invoicefont", pdf.fonts)

    @unittest.skipUnless(UNICODE_FONT_AVAILABLE, "no Unicode TTF font found")
    def test_each_document_registers_its_own_fonts_concurrently(self) -> None:
        fonts = FontManager()
        documents = [FPDF() for _ in range(4)]

        with ThreadPoolExecutor(max_workers=4) as pool:
            families = list(pool.map(fonts.register, documents))

        self.assertEqual(families, [FontManager.FAMILY] * 4)
        for pdf in documents:
            self.assertIn("invoicefont", pdf.fonts)
            self.assertIn("invoicefontB", pdf.fonts)


@unittest.skipUnless(UNICODE_FONT_AVAILABLE, "no Unicode TTF font found")
class InvoiceRendererTests(unittest.TestCase):
    def test_render_invoice_returns_pdf_bytes(self) -> None:
        renderer = InvoiceRenderer(TEMPLATE_PATH)

        pdf = b"".join(renderer.render_pdf(sample_context()))

        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertGreater(len(pdf), 100)


if __name__ == "__main__":
    unittest.main()
