"""Runtime configuration loaded from the environment."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DB_PATH = os.getenv("CERT_TUTOR_DB_PATH", str(Path.home() / ".cert_tutor" / "tutor.db"))
ANCHOR_LANGUAGE = os.getenv("CERT_TUTOR_ANCHOR_LANGUAGE", "en")
ALT_LANGUAGE = os.getenv("CERT_TUTOR_ALT_LANGUAGE", "pt-BR")
DEFAULT_CERTIFICATION = os.getenv("CERT_TUTOR_CERTIFICATION", "SAA-C03")
LOG_LEVEL = os.getenv("CERT_TUTOR_LOG_LEVEL", "WARNING").upper()

QUIZ_SIZES = [10, 20, 65]
PASSING_SCORE = 720

_DEFAULT_EXAM_DURATION = 130 * 60

_duration_raw = os.getenv("CERT_TUTOR_EXAM_DURATION", "")
if _duration_raw.strip().isdigit():
    EXAM_DURATION_SECONDS = int(_duration_raw.strip())
else:
    EXAM_DURATION_SECONDS = _DEFAULT_EXAM_DURATION
    if _duration_raw.strip():
        logger.warning(
            "CERT_TUTOR_EXAM_DURATION is not a number of seconds: %r, using %d",
            _duration_raw, _DEFAULT_EXAM_DURATION,
        )
