"""Resolution of scanned types into schema artifacts."""

from .resolver import Resolver, resolve_schema
from .types import ResolutionError

__all__ = ["Resolver", "resolve_schema", "ResolutionError"]
