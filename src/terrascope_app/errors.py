"""Exception types raised by the terrain visualisation pipeline."""
from __future__ import annotations


class TerrascopeError(Exception):
    """Base class for all pipeline errors."""


class InvalidZone(TerrascopeError, ValueError):
    """Raised when a projection converter is requested for a bad UTM zone."""

    def __init__(self, zone: object) -> None:
        super().__init__(f"UTM zone must be an integer in [1, 60], got {zone!r}")
        self.zone = zone


class UnsupportedTopology(TerrascopeError):
    """Raised for meshes the tile rewriter cannot transform.

    Only non-indexed triangle soups with 3-component positions are accepted.
    """


class FetchFailure(TerrascopeError):
    """Raised when a tile or image resource cannot be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Unable to fetch {url}: {reason}")
        self.url = url


class ParseFailure(TerrascopeError):
    """Raised when a fetched resource cannot be decoded."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Unable to parse {url}: {reason}")
        self.url = url


class DegenerateFieldOfView(TerrascopeError, ValueError):
    """Raised when a field of view lies outside the open interval (0, 180)."""


class ConfigError(TerrascopeError, ValueError):
    """Raised for invalid scene configuration."""
