# marketdata/main.py
from __future__ import annotations

from .entrypoints.fastapi_app import create_app
from .logging_setup import configure_logging

configure_logging()

app = create_app()
