import logging
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_PATH = os.getenv("UPNEXT_DATABASE_PATH", "upnext.db")

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
AI_MODEL = os.getenv("UPNEXT_AI_MODEL", "claude-sonnet-4-5")
AI_MAX_TOKENS = int(os.getenv("UPNEXT_AI_MAX_TOKENS", "1024"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("UPNEXT_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

SESSION_DAYS = int(os.getenv("UPNEXT_SESSION_DAYS", "30"))

LOG_LEVEL = os.getenv("UPNEXT_LOG_LEVEL", "INFO").upper()


def setup_logging() -> None:
    """Configure root logging once for the app process."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
