"""Serverless entrypoint exposing the FastAPI application."""

from __future__ import annotations

import sys
from pathlib import Path

# The platform runs this file directly, outside the project root.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from app.main import app as fastapi_app  # noqa: E402

app = fastapi_app
