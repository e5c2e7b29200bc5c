"""
Configuration management for the campaign planner.
Handles provider API keys, model selection, and knowledge base settings.
"""

import os
import streamlit as st
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

DEFAULT_KNOWLEDGE_BASE_PATH = str(Path(__file__).resolve().parent.parent / "data" / "knowledge_base.json")

API_KEY_SETTINGS = {
    'groq': 'GROQ_API_KEY',
    'openai': 'OPENAI_API_KEY'
}


@dataclass
class AppConfig:
    """Application configuration settings."""
    groq_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    primary_provider: str = "groq"
    primary_model: str = "openai/gpt-oss-120b"
    fallback_provider: Optional[str] = "openai"
    fallback_model: Optional[str] = "gpt-4o-mini"
    temperature: float = 0.3
    request_timeout_seconds: float = 60.0
    knowledge_base_path: str = DEFAULT_KNOWLEDGE_BASE_PATH
    budget_sum_tolerance: float = 0.0

    def api_key_for(self, provider: str) -> Optional[str]:
        if provider == 'groq':
            return self.groq_api_key
        if provider == 'openai':
            return self.openai_api_key
        return None


class ConfigManager:
    """Manages application configuration and settings."""

    def __init__(self):
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load configuration from Streamlit secrets and environment."""
        if self._config is not None:
            return self._config

        primary_provider = self._get_setting("LLM_PROVIDER", "groq").lower()
        fallback_provider = self._get_setting("FALLBACK_PROVIDER", "openai").lower()

        self._config = AppConfig(
            groq_api_key=self._get_secret_or_env("GROQ_API_KEY"),
            openai_api_key=self._get_secret_or_env("OPENAI_API_KEY"),
            primary_provider=primary_provider,
            primary_model=self._default_model_for(primary_provider),
            fallback_provider=fallback_provider if fallback_provider not in ("", "none") else None,
            fallback_model=self._default_model_for(fallback_provider),
            temperature=self._get_float_setting("LLM_TEMPERATURE", 0.3),
            request_timeout_seconds=self._get_float_setting("LLM_TIMEOUT_SECONDS", 60.0),
            knowledge_base_path=self._get_setting("KNOWLEDGE_BASE_PATH", DEFAULT_KNOWLEDGE_BASE_PATH),
            budget_sum_tolerance=self._get_float_setting("BUDGET_SUM_TOLERANCE", 0.0)
        )

        return self._config

    def reset(self):
        """Drop the cached configuration so the next load re-reads settings."""
        self._config = None

    def _default_model_for(self, provider: str) -> Optional[str]:
        if provider == 'groq':
            return self._get_setting("GROQ_MODEL", "openai/gpt-oss-120b")
        if provider == 'openai':
            return self._get_setting("OPENAI_MODEL", "gpt-4o-mini")
        return None

    def _get_secret_or_env(self, key: str) -> Optional[str]:
        """Get value from Streamlit secrets or environment variables."""
        # Try Streamlit secrets first
        try:
            if hasattr(st, 'secrets') and key in st.secrets:
                return st.secrets[key]
        except Exception:
            pass

        # Fall back to environment variables
        return os.getenv(key)

    def _get_setting(self, key: str, default: str) -> str:
        """Get string setting with default value."""
        value = self._get_secret_or_env(key)
        return value if value is not None else default

    def _get_float_setting(self, key: str, default: float) -> float:
        """Get float setting with default value."""
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return float(value)
            except ValueError:
                pass
        return default

    def get_api_key(self, provider: str) -> str:
        """Get the API key for a text-generation provider."""
        if provider not in API_KEY_SETTINGS:
            raise ValueError(f"Unsupported provider: {provider}")

        config = self.load_config()
        api_key = config.api_key_for(provider)
        if not api_key:
            setting = API_KEY_SETTINGS[provider]
            raise ValueError(
                f"{setting} not set. Please set {setting} in "
                "Streamlit secrets, your .env file, or environment variables."
            )
        return api_key

    def get_knowledge_base_path(self) -> str:
        """Get path of the knowledge base JSON file."""
        config = self.load_config()
        return config.knowledge_base_path

    def get_budget_tolerance(self) -> float:
        """Get tolerance used when comparing budget breakdown to total budget."""
        config = self.load_config()
        return config.budget_sum_tolerance

    def describe(self) -> Dict[str, Any]:
        """Non-secret settings summary for display."""
        config = self.load_config()
        return {
            'primary': f"{config.primary_provider}:{config.primary_model}",
            'fallback': f"{config.fallback_provider}:{config.fallback_model}" if config.fallback_provider else None,
            'timeout_seconds': config.request_timeout_seconds,
            'knowledge_base_path': config.knowledge_base_path,
            'budget_sum_tolerance': config.budget_sum_tolerance
        }


# Global configuration manager instance
config_manager = ConfigManager()
