"""
Environment-driven settings for the campaign guide service.
"""
import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent

DATA_ROOT = Path(os.environ.get("CAMPAIGN_GUIDE_DATA") or BASE_DIR / "guide-data")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "CAMPAIGN_GUIDE_CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("CAMPAIGN_GUIDE_LOG_LEVEL", "INFO").upper()
