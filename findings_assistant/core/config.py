# config.py
import logging
import os
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class Config:
    """Environment-level configuration for the findings assistant"""

    # Typical questions asked by auditors, used for demos and smoke tests
    SAMPLE_QUESTIONS = [
        "Is there any findings about APAR fire in 2024 in hotel",
        "IT findings 2025",
        "Show critical open findings in hospital projects",
        "How many findings by department in 2024",
        "What should a new hotel in 2025 care about based on 2024 hotel findings",
        "Show high severity findings in 2024 and explain the patterns",
        "Why do procurement findings keep recurring?",
    ]

    # Environment configuration
    IS_DEVELOPMENT = os.getenv("ENVIRONMENT", "development") == "development"

    @classmethod
    def load_env_for_development(cls):
        """Load .env file only for local development"""
        if cls.IS_DEVELOPMENT:
            load_dotenv()
            logger.info("Loaded .env file for local development")

    @classmethod
    def get_groq_api_key(cls) -> Optional[str]:
        """Get Groq API key from environment"""
        cls.load_env_for_development()

        api_key = os.getenv("GROQ_API_KEY")
        if not api_key:
            logger.warning("GROQ_API_KEY not found in environment variables")
        return api_key


SAMPLE_QUESTIONS = Config.SAMPLE_QUESTIONS
