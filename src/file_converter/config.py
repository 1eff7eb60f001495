import os
from pathlib import Path

# Global configuration defaults
DATA_DIR = Path(os.getenv("DATA_DIR", "./data")).resolve()
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))

# Retention: purge artifacts this long after a download finished streaming,
# and purge any job older than JOB_MAX_AGE_SEC even if never downloaded.
RETENTION_DELAY_SEC = float(os.getenv("RETENTION_DELAY_SEC", "60"))
JOB_MAX_AGE_SEC = float(os.getenv("JOB_MAX_AGE_SEC", "3600"))
SWEEP_INTERVAL_SEC = float(os.getenv("SWEEP_INTERVAL_SEC", "300"))

# External engines
SOFFICE_BIN = os.getenv("SOFFICE_BIN", "soffice")
RENDER_TIMEOUT_SEC = float(os.getenv("RENDER_TIMEOUT_SEC", "120"))
OCR_LANG = os.getenv("OCR_LANG", "eng")
OCR_DPI = int(os.getenv("OCR_DPI", "220"))
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
