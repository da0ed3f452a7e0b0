# settings.py
"""Centralized settings and configuration management."""

import os
from pathlib import Path


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Application settings and configuration"""

    # Base paths
    BASE_DIR = Path(__file__).parent.parent
    DATA_DIR = Path(os.getenv("FINDINGS_DATA_DIR", str(BASE_DIR.parent / "data")))
    CONFIG_DIR = BASE_DIR / "config"

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/findings.db")
    FINDINGS_COLLECTION = "findings"

    # LLM Configuration
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "groq")
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
    LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
    LLM_MAX_TOKENS_FAST = 1024
    LLM_MAX_TOKENS_DEEP = 4096
    LLM_FILTER_EXTRACTION = _env_flag("LLM_FILTER_EXTRACTION", "false")

    # Application settings
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    DEBUG = ENVIRONMENT == "development"

    # Query routing
    CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "300"))
    CONFIRMATION_TTL_SECONDS = 300
    SESSION_IDLE_SECONDS = float(os.getenv("SESSION_IDLE_SECONDS", "3600"))
    LOOKUP_PAGE_SIZE = 50
    MAX_SCAN_RECORDS = 2000
    ANALYTICAL_RETRIEVAL_LIMIT = 200
    BROADEN_EMPTY_LOOKUPS = _env_flag("BROADEN_EMPTY_LOOKUPS", "true")

    # Context limits for LLM prompts
    MAX_CONTEXT_TOKENS = 10000
    MAX_CONTEXT_FINDINGS = 20

    # Personal data is replaced by tokens before text reaches the LLM
    MASK_SENSITIVE_DATA = _env_flag("MASK_SENSITIVE_DATA", "true")

    # Degraded keyword search snapshot
    FALLBACK_DATASET_SIZE = 200

    # Entity configuration
    ENTITIES_CONFIG_PATH = os.getenv(
        "ENTITIES_CONFIG_PATH", str(CONFIG_DIR / "entities.yaml")
    )


# Global settings instance
settings = Settings()
