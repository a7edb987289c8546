"""HTTP server entrypoints for invoice rendering."""

from __future__ import annotations

import errno
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Iterable, Optional

from .config import Settings
from .errors import DependencyError, InvoiceError, MalformedRequest, error_body, error_status
from .resolver import ConfigResolver
from .store import ConfigStore
from .validation import decode_body, validate_invoice_request

logger = logging.getLogger(__name__)

PDF_FILENAME = "invoice.pdf"

DISCONNECT_ERRNOS = {
    errno.EPIPE,
    errno.ECONNRESET,
    errno.ETIMEDOUT,
}


def is_client_disconnect(exc: BaseException) -> bool:
    if isinstance(exc, (BrokenPipeError, ConnectionResetError, TimeoutError)):
        return True
    return isinstance(exc, OSError) and exc.errno in DISCONNECT_ERRNOS


class LengthRequired(InvoiceError):
    status_code = 411


class PayloadTooLarge(InvoiceError):
    status_code = 413


class NotFound(InvoiceError):
    status_code = 404


def load_invoice_renderer(settings: Settings):
    try:
        from .rendering import InvoiceRenderer
    except ModuleNotFoundError as exc:
        if exc.name in ("fpdf", "jinja2"):
            raise DependencyError(
                f"Missing dependency '{exc.name}'. Install project dependencies with "
                "'pip install -e .'."
            ) from exc
        raise
    renderer = InvoiceRenderer(settings.template_path, print_background=settings.print_background)
    if not renderer.converter.fonts.is_unicode:
        raise DependencyError(
            "Unicode font not found. Set INVOICE_FONT_PATH to a valid TTF file."
        )
    return renderer


class InvoiceHandler(BaseHTTPRequestHandler):
    # Bound per server by make_server().
    settings: Settings = Settings()
    resolver: ConfigResolver
    renderer: Any

    def _write_head(self, status: int, headers: Dict[str, str]) -> None:
        self.send_response(status)
        for name, value in headers.items():
            self.send_header(name, value)
        self.end_headers()

    def _write_response(self, status: int, content_type: str, body: bytes) -> bool:
        try:
            self._write_head(
                status,
                {"Content-Type": content_type, "Content-Length": str(len(body))},
            )
            self.wfile.write(body)
            return True
        except Exception as exc:
            if is_client_disconnect(exc):
                return False
            raise

    def _send_json(self, status: int, payload: Dict[str, Any]) -> bool:
        body = json.dumps(payload).encode("utf-8")
        return self._write_response(status, "application/json", body)

    def _send_error(self, exc: BaseException) -> bool:
        status = error_status(exc)
        if status >= 500:
            logger.error("%s %s failed", self.command, self.path, exc_info=exc)
        else:
            logger.warning("%s %s rejected: %s", self.command, self.path, exc)
        return self._send_json(status, error_body(exc))

    def _stream_pdf(self, chunks: Iterable[bytes]) -> bool:
        parts = list(chunks)
        try:
            self._write_head(
                200,
                {
                    "Content-Type": "application/pdf",
                    "Content-Disposition": f'inline; filename="{PDF_FILENAME}"',
                    "Content-Length": str(sum(len(part) for part in parts)),
                },
            )
            for part in parts:
                self.wfile.write(part)
            return True
        except Exception as exc:
            if is_client_disconnect(exc):
                return False
            raise

    def _read_body(self) -> bytes:
        header = self.headers.get("Content-Length")
        if header is None:
            raise LengthRequired("Content-Length header is required.")

        try:
            content_length = int(header)
        except ValueError:
            raise MalformedRequest("Content-Length must be an integer.") from None

        if content_length <= 0:
            raise MalformedRequest("Request body cannot be empty.")

        max_body_bytes = self.settings.max_body_bytes
        if content_length > max_body_bytes:
            raise PayloadTooLarge(f"Body exceeds {max_body_bytes} bytes.")

        return self.rfile.read(content_length)

    def handle_invoice(self) -> Iterable[bytes]:
        body = self._read_body()
        request = validate_invoice_request(decode_body(body))
        context = self.resolver.resolve(request)
        return self.renderer.render_pdf(context)

    def do_POST(self) -> None:
        if self.path != "/":
            self._send_error(NotFound("Unsupported endpoint."))
            return

        try:
            chunks = self.handle_invoice()
        except Exception as exc:
            if is_client_disconnect(exc):
                return
            self._send_error(exc)
            return

        self._stream_pdf(chunks)

    def do_GET(self) -> None:
        if self.path == "/healthz":
            self._send_json(200, {"status": "ok"})
            return
        self._send_error(NotFound("Unsupported endpoint."))

    def handle_one_request(self) -> None:
        try:
            super().handle_one_request()
        except Exception as exc:
            if is_client_disconnect(exc):
                return
            raise

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class InvoiceHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def make_server(
    settings: Settings,
    store: Optional[ConfigStore] = None,
    renderer: Any = None,
) -> InvoiceHTTPServer:
    if store is None:
        store = ConfigStore.from_directory(settings.config_dir)
    if renderer is None:
        renderer = load_invoice_renderer(settings)

    handler = type(
        "BoundInvoiceHandler",
        (InvoiceHandler,),
        {"settings": settings, "resolver": ConfigResolver(store), "renderer": renderer},
    )
    return InvoiceHTTPServer((settings.host, settings.port), handler)


def run(settings: Settings) -> None:
    server = make_server(settings)
    logger.info("Invoice API server listening on http://%s:%d", settings.host, settings.port)
    try:
        server.serve_forever()
    finally:
        server.server_close()
