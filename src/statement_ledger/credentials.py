"""
Credential resolution with an explicit, per-instance cache.

A credential named KEY is resolved from:
1. the KEY environment variable
2. the file named by KEY_FILE (e.g. a mounted secret)

Create one CredentialCache and pass it to whatever needs a secret; call
clear() to drop cached values (tests, token rotation).
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class CredentialError(Exception):
    """Raised when a required credential cannot be resolved."""

    pass


class CredentialCache:
    """Resolves secrets from the environment and caches them."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            environ: Variable mapping to read (default: os.environ)
        """
        self._environ = environ if environ is not None else os.environ
        self._values: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        """Return the credential, or None when it is not configured."""
        if key in self._values:
            return self._values[key]

        value = self._environ.get(key, "").strip()
        if not value:
            file_path = self._environ.get(f"{key}_FILE", "").strip()
            if file_path:
                path = Path(file_path)
                if not path.exists():
                    raise CredentialError(f"{key}_FILE points to a missing file: {file_path}")
                value = path.read_text().strip()
                logger.debug(f"Loaded {key} from {file_path}")

        if not value:
            return None

        self._values[key] = value
        return value

    def require(self, key: str) -> str:
        """Return the credential or raise CredentialError."""
        value = self.get(key)
        if value is None:
            raise CredentialError(f"Credential {key} is not set (set {key} or {key}_FILE)")
        return value

    def clear(self) -> None:
        """Drop every cached value."""
        self._values.clear()
