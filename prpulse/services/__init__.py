"""Service layer: credential and settings stores, plus the composition root."""

from prpulse.services.secret_store import EnvSecretStore, MemorySecretStore, SecretStore
from prpulse.services.settings_store import (
    JsonSettingsStore,
    MemorySettingsStore,
    SettingsChange,
    SettingsStore,
)

__all__ = [
    "EnvSecretStore",
    "JsonSettingsStore",
    "MemorySecretStore",
    "MemorySettingsStore",
    "SecretStore",
    "SettingsChange",
    "SettingsStore",
]
