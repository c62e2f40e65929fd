"""
Runtime configuration for the document field runtime.

Provides thread-local storage for the current FieldRuntimeConfig, so an edit
operation running on one thread never observes overrides made on another.

Default behavior: every thread starts with DEFAULT_RUNTIME_CONFIG
Explicit override: runtime_config(**overrides) for a scoped change
"""

from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Generator
import threading


@dataclass(frozen=True)
class FieldRuntimeConfig:
    """Tunables consumed by fields, lookup bindings and the descriptor cache."""
    # Lookup candidate paging (first row index, rows per page)
    lookup_first_row: int = 0
    lookup_page_length: int = 10
    # Re-acquire attempts before a stale cache entry is returned with a warning
    metadata_version_retries: int = 3
    # Reject {key, caption} maps for text fields instead of stringifying them
    strict_text_conversion: bool = True


DEFAULT_RUNTIME_CONFIG = FieldRuntimeConfig()

_runtime_config_context = threading.local()


def get_runtime_config() -> FieldRuntimeConfig:
    """Get the runtime config for the current thread."""
    return getattr(_runtime_config_context, 'value', DEFAULT_RUNTIME_CONFIG)


def set_runtime_config(config: FieldRuntimeConfig) -> None:
    """Set the runtime config for the current thread.

    Args:
        config: The config instance to use for subsequent operations
    """
    _runtime_config_context.value = config


def reset_runtime_config() -> None:
    """Restore DEFAULT_RUNTIME_CONFIG for the current thread."""
    _runtime_config_context.value = DEFAULT_RUNTIME_CONFIG


@contextmanager
def runtime_config(**overrides) -> Generator[FieldRuntimeConfig, None, None]:
    """Temporarily override fields of the current thread's runtime config.

    Usage:
        with runtime_config(lookup_page_length=50):
            field.get_lookup_values(document)
    """
    previous = get_runtime_config()
    config = replace(previous, **overrides)
    set_runtime_config(config)
    try:
        yield config
    finally:
        set_runtime_config(previous)
