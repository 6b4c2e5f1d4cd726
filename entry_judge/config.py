"""Central configuration loader for Entry Judge."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Project root is the parent of the entry_judge/ package
PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def load_settings() -> dict:
    """Load settings from configs/settings.yaml."""
    settings_path = PROJECT_ROOT / "configs" / "settings.yaml"
    if not settings_path.exists():
        return {}
    with open(settings_path) as f:
        return yaml.safe_load(f) or {}


SETTINGS = load_settings()


def setting(section: str, key: str, default=None):
    """Read ``SETTINGS[section][key]`` with a fallback."""
    return (SETTINGS.get(section) or {}).get(key, default)


# --- API Keys ---
class Keys:
    ALPHA_VANTAGE = os.getenv("ALPHA_VANTAGE_API_KEY", "")
    TWELVE_DATA = os.getenv("TWELVE_DATA_API_KEY", "")


# --- Paths ---
class Paths:
    ROOT = PROJECT_ROOT
    SYMBOL_CACHE = PROJECT_ROOT / setting("cache", "symbol_dir", "data/cache/symbols")


# --- Credentials ---
class CredentialStore:
    """Provider API tokens keyed by provider name ("alpha_vantage", ...)."""

    def __init__(self, tokens: dict[str, str] | None = None):
        self._tokens = {k: v for k, v in (tokens or {}).items() if v}

    def get(self, provider: str) -> str | None:
        return self._tokens.get(provider)

    def set(self, provider: str, token: str) -> None:
        if token:
            self._tokens[provider] = token
        else:
            self.clear(provider)

    def clear(self, provider: str) -> None:
        self._tokens.pop(provider, None)


class EnvCredentialStore(CredentialStore):
    """Credential store seeded from the environment / .env file."""

    def __init__(self):
        super().__init__({
            "alpha_vantage": Keys.ALPHA_VANTAGE,
            "twelve_data": Keys.TWELVE_DATA,
        })
