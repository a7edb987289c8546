"""Module entrypoint for running the invoice API server."""

from __future__ import annotations

import logging
import sys

from .config import load_settings
from .errors import DependencyError
from .server import run


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        run(settings)
    except DependencyError as exc:
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
