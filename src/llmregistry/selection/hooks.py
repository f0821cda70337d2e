# src/llmregistry/selection/hooks.py
"""
Selection hooks - ordered, named interception points around selection.

Two stages exist:

- before: called with a private copy of the criteria. A hook may mutate
  that copy in place, return a replacement SelectionCriteria, or return
  None to leave it unchanged. A replacement is validated again, so
  values set through ``model_copy(update=...)`` are coerced the same way
  as constructor arguments.
- after: called with the chosen CatalogEntry. A hook may return a
  different entry, which must exist in the snapshot the selection was
  computed against, or None to keep the choice.

Hooks may be plain functions or coroutines. Any exception raised by a
hook, and any return value that does not fit the contract, is raised as
HookError with the original error chained.

Usage:
    hooks = SelectionHooks()
    hooks.add_before("force-chat", lambda criteria: criteria.model_copy(
        update={"required": criteria.required | {"chat"}}))
    hooks.add_after("audit", audit_choice)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from ..catalog.schema import CatalogEntry, CatalogSnapshot
from ..exceptions import ConfigError, HookError
from .criteria import SelectionCriteria

logger = logging.getLogger(__name__)

BEFORE_STAGE = "before"
AFTER_STAGE = "after"


@dataclass(frozen=True)
class NamedHook:
    """A hook callable and the name it is registered under."""

    name: str
    func: Callable[[Any], Any]


async def _invoke(hook: NamedHook, stage: str, argument: Any) -> Any:
    try:
        result = hook.func(argument)
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.error(f"{stage.capitalize()} hook '{hook.name}' raised {type(e).__name__}: {e}")
        raise HookError(hook.name, stage, f"{type(e).__name__}: {e}", cause=e) from e
    return result


def _revalidate(hook: NamedHook, criteria: SelectionCriteria) -> SelectionCriteria:
    # model_copy(update=...) and model_construct() skip validation.
    data = {name: getattr(criteria, name) for name in SelectionCriteria.model_fields}
    try:
        return SelectionCriteria.model_validate(data)
    except ValidationError as e:
        logger.error(f"Before hook '{hook.name}' returned invalid criteria: {e}")
        raise HookError(hook.name, BEFORE_STAGE, f"returned invalid criteria: {e}", cause=e) from e


class SelectionHooks:
    """Ordered collections of before- and after-selection hooks."""

    def __init__(self) -> None:
        self._before: list[NamedHook] = []
        self._after: list[NamedHook] = []

    @property
    def before_hooks(self) -> tuple[str, ...]:
        return tuple(hook.name for hook in self._before)

    @property
    def after_hooks(self) -> tuple[str, ...]:
        return tuple(hook.name for hook in self._after)

    def add_before(self, name: str, func: Callable[[SelectionCriteria], Any]) -> None:
        """Append a before-selection hook. Names are unique per stage."""
        self._add(self._before, BEFORE_STAGE, name, func)

    def add_after(self, name: str, func: Callable[[CatalogEntry], Any]) -> None:
        """Append an after-selection hook. Names are unique per stage."""
        self._add(self._after, AFTER_STAGE, name, func)

    def remove(self, name: str) -> bool:
        """Remove every hook registered under ``name``. Returns True if any was removed."""
        before, after = len(self._before), len(self._after)
        self._before = [hook for hook in self._before if hook.name != name]
        self._after = [hook for hook in self._after if hook.name != name]
        return len(self._before) != before or len(self._after) != after

    def clear(self) -> None:
        self._before.clear()
        self._after.clear()

    def __len__(self) -> int:
        return len(self._before) + len(self._after)

    @staticmethod
    def _add(hooks: list[NamedHook], stage: str, name: str, func: Callable[[Any], Any]) -> None:
        if not callable(func):
            raise ConfigError(f"{stage.capitalize()} hook '{name}' is not callable")
        if any(hook.name == name for hook in hooks):
            raise ConfigError(f"A {stage} hook named '{name}' is already registered")
        hooks.append(NamedHook(name=name, func=func))
        logger.debug(f"Registered {stage} hook '{name}'")

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def run_before(self, criteria: SelectionCriteria) -> SelectionCriteria:
        """
        Run before-selection hooks in order.

        The caller's criteria object is never modified; hooks work on a deep copy.

        Returns:
            The effective criteria after all hooks

        Raises:
            HookError: If a hook raises, returns something other than
                SelectionCriteria or None, or returns criteria that fail
                validation.
        """
        current = criteria.model_copy(deep=True)
        for hook in self._before:
            result = await _invoke(hook, BEFORE_STAGE, current)
            if result is None:
                continue
            if not isinstance(result, SelectionCriteria):
                raise HookError(
                    hook.name,
                    BEFORE_STAGE,
                    f"expected SelectionCriteria or None, got {type(result).__name__}",
                )
            current = _revalidate(hook, result)
        return current

    async def run_after(self, entry: CatalogEntry, snapshot: CatalogSnapshot) -> CatalogEntry:
        """
        Run after-selection hooks in order.

        A replacement entry is resolved against ``snapshot`` and the
        snapshot's own instance is returned.

        Raises:
            HookError: If a hook raises, returns a non-entry, or returns an
                entry that is not in the snapshot.
        """
        current = entry
        for hook in self._after:
            result = await _invoke(hook, AFTER_STAGE, current)
            if result is None:
                continue
            if not isinstance(result, CatalogEntry):
                raise HookError(
                    hook.name,
                    AFTER_STAGE,
                    f"expected CatalogEntry or None, got {type(result).__name__}",
                )
            resolved = snapshot.get(result.id)
            if resolved is None or resolved.id != result.id:
                raise HookError(
                    hook.name,
                    AFTER_STAGE,
                    f"returned model '{result.id}' which is not in catalog version {snapshot.version}",
                )
            if resolved.id != current.id:
                logger.info(f"After hook '{hook.name}' replaced '{current.id}' with '{resolved.id}'")
            current = resolved
        return current
