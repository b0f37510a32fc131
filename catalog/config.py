"""
Runtime configuration.

Every value can be overridden through the environment (or a .env file, which
app/app.py loads with python-dotenv before importing this module).
"""

import os
from pathlib import Path

ROOT_DIR = Path(__file__).parent.parent

DATA_DIR     = Path(os.getenv("CATALOG_DATA_DIR", ROOT_DIR / "data"))
COURSES_FILE = Path(os.getenv("CATALOG_COURSES_FILE", DATA_DIR / "sample_courses.json"))
INDEX_FILE   = Path(os.getenv("CATALOG_INDEX_FILE", DATA_DIR / "course_index.json"))

LOG_DIR   = Path(os.getenv("CATALOG_LOG_DIR", ROOT_DIR / "logs"))
LOG_LEVEL = os.getenv("CATALOG_LOG_LEVEL", "INFO").upper()

DEFAULT_PAGE_SIZE    = int(os.getenv("CATALOG_DEFAULT_PAGE_SIZE", "10"))
DEFAULT_SUGGEST_SIZE = int(os.getenv("CATALOG_DEFAULT_SUGGEST_SIZE", "10"))

API_URL = os.getenv("CATALOG_API_URL", "http://localhost:8000")
API_HOST = os.getenv("CATALOG_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("CATALOG_API_PORT", "8000"))
