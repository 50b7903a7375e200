# router.py
from __future__ import annotations

from typing import Dict, Mapping, Optional

from errors import ConfigurationError


class Router:
    """Category -> chat id / @channel, falling back to the default destination."""

    def __init__(self, default: str, overrides: Optional[Mapping[str, str]] = None) -> None:
        if not default:
            raise ConfigurationError("Router default destination must be set.")
        self.default = default
        self.overrides: Dict[str, str] = dict(overrides or {})

    def resolve(self, category: str) -> str:
        return self.overrides.get(category) or self.default
