"""Pick per-repository HTTP transport settings by URI template."""

from __future__ import annotations

from .selector import (
    Ambiguous,
    ConnectionSelector,
    NotFound,
    RegistryFrozenError,
    Resolution,
    ResolutionListener,
    Resolved,
)
from .templates import MalformedTemplateError, UriTemplate, compile_template

__version__ = "0.1.0"

__all__ = [
    "Ambiguous",
    "ConnectionSelector",
    "MalformedTemplateError",
    "NotFound",
    "RegistryFrozenError",
    "Resolution",
    "ResolutionListener",
    "Resolved",
    "UriTemplate",
    "__version__",
    "compile_template",
]
