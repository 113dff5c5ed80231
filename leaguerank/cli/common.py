"""Helpers shared by the CLI commands."""

import logging
import sys
from pathlib import Path

from rich.console import Console

from ..config.settings import settings
from ..providers.memory import load_fixture
from ..services import Services, build_services

console = Console()


def setup_logging():
    """Log to the configured file and to stdout."""
    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(settings.log_file),
            logging.StreamHandler(sys.stdout),
        ],
    )


def load_services(fixture: Path | None = None) -> Services:
    """Services from settings, with an optional fixture overriding the upstream source."""
    source = load_fixture(fixture) if fixture else None
    return build_services(settings, source=source)
