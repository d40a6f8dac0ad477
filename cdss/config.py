"""
Clinical Decision Support — Configuration
=========================================
Centralised settings for the reference-data collaborator, classification
display, and logging. Loads overrides from the project-level .env file.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# ── Paths ───────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")

# ── External collaborator ───────────────────────────────────────────────
# Empty URL → serve the built-in reference tables from memory.
REFERENCE_API_URL: str = os.getenv("REFERENCE_API_URL", "")
REFERENCE_API_TIMEOUT: float = float(os.getenv("REFERENCE_API_TIMEOUT", "10.0"))

# ── Decision support ────────────────────────────────────────────────────
DIFFERENTIAL_DISPLAY_THRESHOLD: float = float(os.getenv("DIFFERENTIAL_DISPLAY_THRESHOLD", "60"))
DEFAULT_PATIENT_WEIGHT_KG: float = float(os.getenv("DEFAULT_PATIENT_WEIGHT_KG", "70"))

# ── Logging ─────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: str = os.getenv("LOG_FILE", "")
