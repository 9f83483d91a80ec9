"""Lifecycle hooks wrapped around every adapter operation.

A hook observes or replaces values around the core action:

* ``before(ctx, value)`` runs before the core action. ``value`` is the
  operation's primary argument (``props``, ``records``, ``id`` or ``query``).
* ``after(ctx, value, response)`` runs after the response is built.

Returning ``None`` keeps the current value; anything else replaces it.
Exceptions abort the operation.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .mapper import Mapper

logger = logging.getLogger("crud_adapter.hooks")

# Per-call options key holding the LoggingHooks start time
_STARTED_AT = "_logging_started_at"


@dataclass(frozen=True)
class HookContext:
    """What a hook gets to see about the running operation."""

    operation: str
    op: str
    mapper: Mapper
    opts: dict[str, Any] = field(default_factory=dict)
    key: Any = None


@runtime_checkable
class ILifecycleHooks(Protocol):
    """Protocol for before/after lifecycle hooks."""

    async def before(self, ctx: HookContext, value: Any) -> Any: ...

    async def after(self, ctx: HookContext, value: Any, response: Any) -> Any: ...


class LifecycleHooks(ILifecycleHooks):
    """Pass-through hooks. Subclass and override what you need."""

    async def before(self, ctx: HookContext, value: Any) -> Any:  # noqa: ARG002
        return None

    async def after(self, ctx: HookContext, value: Any, response: Any) -> Any:  # noqa: ARG002
        return None


class HookChain(ILifecycleHooks):
    """Compose several hooks.

    ``before`` runs first to last; ``after`` runs last to first, so the first
    hook is the outermost wrapper.
    """

    def __init__(self, *hooks: ILifecycleHooks) -> None:
        self._hooks = hooks

    async def before(self, ctx: HookContext, value: Any) -> Any:
        for hook in self._hooks:
            result = await hook.before(ctx, value)
            if result is not None:
                value = result
        return value

    async def after(self, ctx: HookContext, value: Any, response: Any) -> Any:
        for hook in reversed(self._hooks):
            result = await hook.after(ctx, value, response)
            if result is not None:
                response = result
        return response


class LoggingHooks(LifecycleHooks):
    """Logs operation start and duration per mapper.

    The start time is kept in the call's own options dict, so nothing
    outlives a call that fails between the hooks.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    async def before(self, ctx: HookContext, value: Any) -> Any:  # noqa: ARG002
        ctx.opts[_STARTED_AT] = time.perf_counter()
        self._log.info("Handling %s on %s", ctx.operation, ctx.mapper.name)
        return None

    async def after(self, ctx: HookContext, value: Any, response: Any) -> Any:  # noqa: ARG002
        start = ctx.opts.pop(_STARTED_AT, None)
        if start is None:
            self._log.info("%s on %s completed", ctx.operation, ctx.mapper.name)
        else:
            elapsed = (time.perf_counter() - start) * 1000
            self._log.info(
                "%s on %s completed in %.2fms", ctx.operation, ctx.mapper.name, elapsed
            )
        return None
