"""Environment-driven settings, read once at import after loading .env."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / ".env")

API_PREFIX = os.getenv("VALUETRACKER_PREFIX", "/api/plugins/valuetracker")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
