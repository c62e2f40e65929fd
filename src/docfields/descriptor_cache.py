"""
Read-through cache for field descriptors and other metadata.

Injected where metadata is needed instead of living in global state. Entries
are invalidated explicitly (reset / remove) or when the version token changes.
"""

from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar
import logging

from docfields.config import get_runtime_config

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Hashable)
T = TypeVar('T')


class DescriptorCache(Generic[K, T]):
    """
    Read-through cache with explicit invalidation and version checking.

    Two optional version hooks:
    - version_provider: returns the current metadata version. When it changes,
      the whole cache is dropped (token invalidation).
    - version_of: returns the version a loaded entry was built from. If it does
      not match the current version, the entry is re-loaded up to
      metadata_version_retries times; after that the stale-but-valid entry is
      returned and a warning is logged.

    Example:
        cache = DescriptorCache("descriptors#by#document_type", loader_version)
        descriptors = cache.get_or_load("SalesOrder", lambda: load_descriptors("SalesOrder"))
    """

    def __init__(
        self,
        name: str,
        version_provider: Optional[Callable[[], int]] = None,
        version_of: Optional[Callable[[T], int]] = None,
    ):
        self.name = name
        self._version_provider = version_provider
        self._version_of = version_of
        self._cache: Dict[K, T] = {}
        self._last_version: Optional[int] = None

    def __repr__(self) -> str:
        return f"DescriptorCache({self.name!r}, size={len(self._cache)})"

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: K) -> bool:
        self._check_version()
        return key in self._cache

    def _current_version(self) -> Optional[int]:
        return self._version_provider() if self._version_provider is not None else None

    def _check_version(self) -> Optional[int]:
        """Drop every entry if the version token changed; return the current version."""
        current_version = self._current_version()
        if current_version != self._last_version:
            if self._cache:
                logger.debug(f"{self.name}: version {self._last_version} -> {current_version}, dropping {len(self._cache)} entries")
            self._cache.clear()
            self._last_version = current_version
        return current_version

    def get_or_load(self, key: K, loader: Callable[[], T]) -> T:
        """Get cached value or load, verify and cache it."""
        current_version = self._check_version()

        if key in self._cache:
            return self._cache[key]

        value = self._load_current(key, loader, current_version)
        self._cache[key] = value
        return value

    def _load_current(self, key: K, loader: Callable[[], T], current_version: Optional[int]) -> T:
        value = loader()
        if self._version_of is None or current_version is None:
            return value

        # If the loaded entry's version is not the current one, try re-acquiring it
        retry = get_runtime_config().metadata_version_retries
        while self._version_of(value) != current_version and retry > 0:
            retry -= 1
            value = loader()

        if self._version_of(value) != current_version:
            logger.warning(
                f"{self.name}: could not acquire version {current_version} for key={key!r}. "
                f"Returning what we got (version {self._version_of(value)})"
            )
        return value

    def get(self, key: K) -> Optional[T]:
        """Get cached value without loading."""
        self._check_version()
        return self._cache.get(key)

    def put(self, key: K, value: T) -> None:
        self._check_version()
        self._cache[key] = value

    def remove(self, key: K) -> None:
        self._cache.pop(key, None)

    def reset(self) -> None:
        """Manually invalidate the entire cache."""
        self._cache.clear()
        self._last_version = None
        logger.debug(f"{self.name}: cache reset")
