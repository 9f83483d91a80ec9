"""Uniform response envelope returned by every adapter operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Response:
    """Result data plus raw store metadata and an operation counter.

    Only the counter that matches ``op`` is set; the others stay ``None``.
    """

    data: Any
    op: str
    meta: dict[str, Any] = field(default_factory=dict)
    created: int | None = None
    found: int | None = None
    updated: int | None = None


def respond(response: Response, raw: bool) -> Any:
    """Return the envelope when *raw* is true, otherwise the bare data."""
    return response if raw else response.data
