import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import os
import json

ROOT = Path(__file__).resolve().parents[1]
LOG_DIR = Path(os.getenv("LOG_DIR", str(ROOT / "logs")))
LOG_FILE = LOG_DIR / "app.log"

_CONTEXT_FIELDS = ("session", "stage", "intent", "end_call", "slot")


class JsonFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        return json.dumps(payload, default=str)


def setup_logging(json_stdout=None):
    logger = logging.getLogger()
    logger.setLevel(logging.INFO)

    # Avoid duplicate handlers on reload
    if any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s'))
    logger.addHandler(file_handler)

    if json_stdout is None:
        json_stdout = os.getenv("DEBUG_LOG_JSON", "false").lower() == "true"
    if json_stdout:
        stream = logging.StreamHandler()
        stream.setFormatter(JsonFormatter())
        logger.addHandler(stream)
