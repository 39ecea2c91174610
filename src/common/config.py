"""
Configuration module for the taxonomy classifier.

This module centralizes the loading and validation of all configuration
parameters from environment variables. It provides a single `Settings`
class that acts as a container for all configurable values, ensuring
that they are defined in one place and can be passed explicitly to every
component that needs them.
"""

import os
from typing import Literal

DEFAULT_BASE_URLS = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": "https://api.openai.com/v1",
    "ollama": "http://localhost:11434/v1/",
}

DEFAULT_MODELS = {
    "openrouter": "moonshotai/kimi-k2:free",
    "openai": "gpt-4o-mini",
    "ollama": "gemma3:12b",
}


class Settings:
    """
    A container for all configuration settings, loaded from environment variables.

    This class centralizes configuration, providing default values for optional
    settings and raising errors for missing or invalid settings.
    """

    # --- LLM Provider Configuration ---
    LLM_PROVIDER: Literal["openrouter", "openai", "ollama"]
    LLM_API_KEY: str | None
    LLM_BASE_URL: str
    AI_MODEL: str
    APP_TITLE: str
    APP_REFERER: str | None
    REQUEST_TIMEOUT: float

    # --- Retry Configuration ---
    RETRY_ATTEMPTS: int
    RETRY_DELAY_BASE: float

    # --- Batch Configuration ---
    MAX_CONCURRENT_REQUESTS: int
    BATCH_GROUP_SIZE: int

    # --- Cache Configuration ---
    CACHE_TTL_SECONDS: float
    CACHE_MAX_ENTRIES: int
    CACHE_KEY_KEYWORDS: int

    # --- Sampling Parameters ---
    TEMPERATURE: float
    MAX_TOKENS: int
    TOP_P: float
    FREQUENCY_PENALTY: float
    PRESENCE_PENALTY: float

    # --- Reporting Thresholds ---
    CONFIDENCE_HIGH: float
    CONFIDENCE_MEDIUM: float
    REVIEW_THRESHOLD: float

    # --- Logging ---
    LOG_LEVEL: str
    LOG_FORMAT: Literal["console", "json"]

    def __init__(self):
        """
        Loads settings from environment variables and performs validation.
        """
        # --- LLM Provider Configuration ---
        self.LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openrouter").strip().lower()
        if self.LLM_PROVIDER not in DEFAULT_BASE_URLS:
            raise ValueError("LLM_PROVIDER must be 'openrouter', 'openai' or 'ollama'")

        if self.LLM_PROVIDER == "ollama":
            self.LLM_API_KEY = os.getenv("LLM_API_KEY") or None
        else:
            self.LLM_API_KEY = self._get_required_env("LLM_API_KEY")

        self.LLM_BASE_URL = os.getenv(
            "LLM_BASE_URL", DEFAULT_BASE_URLS[self.LLM_PROVIDER]
        ).rstrip("/")
        self.AI_MODEL = os.getenv("AI_MODEL", DEFAULT_MODELS[self.LLM_PROVIDER])
        self.APP_TITLE = os.getenv("APP_TITLE", "Taxonomy Classifier")
        self.APP_REFERER = os.getenv("APP_REFERER") or None
        self.REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 60))

        # --- Retry Configuration ---
        self.RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", 3))
        if self.RETRY_ATTEMPTS < 1:
            raise ValueError("RETRY_ATTEMPTS must be >= 1")
        self.RETRY_DELAY_BASE = max(0.0, float(os.getenv("RETRY_DELAY_BASE", 1.0)))

        # --- Batch Configuration ---
        self.MAX_CONCURRENT_REQUESTS = int(os.getenv("MAX_CONCURRENT_REQUESTS", 5))
        if self.MAX_CONCURRENT_REQUESTS < 1:
            raise ValueError("MAX_CONCURRENT_REQUESTS must be >= 1")
        # Groups larger than the ceiling would make it a soft bound.
        group_size = int(os.getenv("BATCH_GROUP_SIZE", self.MAX_CONCURRENT_REQUESTS))
        self.BATCH_GROUP_SIZE = max(1, min(group_size, self.MAX_CONCURRENT_REQUESTS))

        # --- Cache Configuration ---
        self.CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", 24 * 60 * 60))
        self.CACHE_MAX_ENTRIES = max(0, int(os.getenv("CACHE_MAX_ENTRIES", 1000)))
        self.CACHE_KEY_KEYWORDS = max(1, int(os.getenv("CACHE_KEY_KEYWORDS", 3)))

        # --- Sampling Parameters ---
        self.TEMPERATURE = float(os.getenv("TEMPERATURE", 0.2))
        self.MAX_TOKENS = int(os.getenv("MAX_TOKENS", 600))
        self.TOP_P = float(os.getenv("TOP_P", 0.9))
        self.FREQUENCY_PENALTY = float(os.getenv("FREQUENCY_PENALTY", 0.1))
        self.PRESENCE_PENALTY = float(os.getenv("PRESENCE_PENALTY", 0.1))

        # --- Reporting Thresholds ---
        self.CONFIDENCE_HIGH = float(os.getenv("CONFIDENCE_HIGH", 0.8))
        self.CONFIDENCE_MEDIUM = float(os.getenv("CONFIDENCE_MEDIUM", 0.6))
        self.REVIEW_THRESHOLD = float(os.getenv("REVIEW_THRESHOLD", 0.7))
        if self.CONFIDENCE_MEDIUM > self.CONFIDENCE_HIGH:
            raise ValueError("CONFIDENCE_MEDIUM must not exceed CONFIDENCE_HIGH")

        # --- Logging ---
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = os.getenv("LOG_FORMAT", "console").strip().lower()
        if self.LOG_FORMAT not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")

    def _get_required_env(self, var_name: str) -> str:
        """
        Gets a required environment variable, raising an error if it's not set.
        """
        value = os.getenv(var_name)
        if value is None or not value.strip():
            raise ValueError(f"Required environment variable '{var_name}' is not set.")
        return value.strip()
