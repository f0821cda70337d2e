# tests/selection/test_hooks.py
"""
Tests for selection hooks.

Tests cover:
- Registration order and unique names
- Before hooks: in-place mutation, replacement, isolation from the caller
- After hooks: replacement entries resolved against the captured snapshot
- Sync and async hooks
- HookError for exceptions and invalid return values
"""

import pytest
from pydantic import ValidationError

from llmregistry.catalog.schema import CatalogEntry, CatalogSnapshot
from llmregistry.config.models import SelectionWeights
from llmregistry.exceptions import ConfigError, HookError
from llmregistry.selection.criteria import SelectionCriteria
from llmregistry.selection.hooks import SelectionHooks
from llmregistry.selection.selector import ModelSelector


class SwappableCatalog:
    """Snapshot holder whose snapshot can be replaced mid-selection."""

    def __init__(self, snapshot: CatalogSnapshot) -> None:
        self.current = snapshot

    def snapshot(self) -> CatalogSnapshot:
        return self.current


class TestRegistration:
    def test_hooks_kept_in_order(self):
        hooks = SelectionHooks()
        hooks.add_before("first", lambda c: None)
        hooks.add_before("second", lambda c: None)
        hooks.add_after("audit", lambda e: None)

        assert hooks.before_hooks == ("first", "second")
        assert hooks.after_hooks == ("audit",)
        assert len(hooks) == 3

    def test_duplicate_name_rejected(self):
        hooks = SelectionHooks()
        hooks.add_before("same", lambda c: None)
        with pytest.raises(ConfigError):
            hooks.add_before("same", lambda c: None)

    def test_same_name_allowed_in_other_stage(self):
        hooks = SelectionHooks()
        hooks.add_before("audit", lambda c: None)
        hooks.add_after("audit", lambda e: None)
        assert len(hooks) == 2

    def test_non_callable_rejected(self):
        with pytest.raises(ConfigError):
            SelectionHooks().add_after("bad", "not callable")

    def test_remove_and_clear(self):
        hooks = SelectionHooks()
        hooks.add_before("a", lambda c: None)
        hooks.add_after("b", lambda e: None)

        assert hooks.remove("a") is True
        assert hooks.remove("a") is False
        hooks.clear()
        assert len(hooks) == 0


class TestBeforeHooks:
    """Before hooks adjust the effective criteria."""

    @pytest.mark.asyncio
    async def test_in_place_mutation(self, scenario_catalog):
        hooks = SelectionHooks()

        def require_vision(criteria):
            criteria.required = criteria.required | {"vision"}

        hooks.add_before("require-vision", require_vision)
        caller_criteria = SelectionCriteria(weights={"cost": 1})

        result = await ModelSelector(scenario_catalog, hooks=hooks).select(caller_criteria)

        assert result.entry.id == "C"
        assert result.criteria.required == frozenset({"vision"})
        assert caller_criteria.required == frozenset()

    @pytest.mark.asyncio
    async def test_replacement_criteria(self, scenario_catalog):
        hooks = SelectionHooks()
        hooks.add_before("pin", lambda criteria: SelectionCriteria(model="B"))

        result = await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria(model="A"))
        assert result.entry.id == "B"
        assert result.criteria.model == "B"

    @pytest.mark.asyncio
    async def test_copied_replacement_weights_validated(self, scenario_catalog):
        hooks = SelectionHooks()
        hooks.add_before("force-quality", lambda c: c.model_copy(update={"weights": {"quality": 1.0}}))

        result = await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria())

        assert result.criteria.weights == SelectionWeights(quality=1.0)
        assert result.entry.id == "B"
        assert result.score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_copied_replacement_providers_validated(self, scenario_catalog):
        hooks = SelectionHooks()
        hooks.add_before(
            "deny-flagship",
            lambda c: c.model_copy(update={"providers": {"deny": ["flagship-vendor"]}}),
        )

        result = await ModelSelector(scenario_catalog, hooks=hooks).select(
            SelectionCriteria(required={"vision"}, weights={"quality": 1})
        )

        assert result.entry.id == "C"
        assert result.criteria.providers.deny == frozenset({"flagship-vendor"})

    @pytest.mark.asyncio
    async def test_invalid_replacement_wrapped(self, scenario_catalog):
        hooks = SelectionHooks()
        hooks.add_before("negative", lambda c: c.model_copy(update={"min_context_window": -5}))

        with pytest.raises(HookError) as exc_info:
            await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria())

        error = exc_info.value
        assert error.hook_name == "negative"
        assert error.stage == "before"
        assert isinstance(error.__cause__, ValidationError)
        assert "invalid criteria" in str(error)

    @pytest.mark.asyncio
    async def test_hooks_chain_in_order(self, scenario_catalog):
        seen = []
        hooks = SelectionHooks()

        def first(criteria):
            seen.append(("first", criteria.min_context_window))
            criteria.min_context_window = 1000

        async def second(criteria):
            seen.append(("second", criteria.min_context_window))
            return None

        hooks.add_before("first", first)
        hooks.add_before("second", second)
        await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria())

        assert seen == [("first", None), ("second", 1000)]

    @pytest.mark.asyncio
    async def test_exception_wrapped(self, scenario_catalog):
        hooks = SelectionHooks()

        def broken(criteria):
            raise RuntimeError("policy service down")

        hooks.add_before("policy", broken)
        with pytest.raises(HookError) as exc_info:
            await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria())

        error = exc_info.value
        assert error.hook_name == "policy"
        assert error.stage == "before"
        assert isinstance(error.__cause__, RuntimeError)
        assert error.cause is error.__cause__

    @pytest.mark.asyncio
    async def test_invalid_assignment_wrapped(self, scenario_catalog):
        hooks = SelectionHooks()

        def bad(criteria):
            criteria.min_context_window = -10

        hooks.add_before("bad", bad)
        with pytest.raises(HookError, match="bad"):
            await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria())

    @pytest.mark.asyncio
    async def test_invalid_return_value(self, scenario_catalog):
        hooks = SelectionHooks()
        hooks.add_before("wrong", lambda criteria: {"model": "A"})
        with pytest.raises(HookError, match="expected SelectionCriteria"):
            await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria())


class TestAfterHooks:
    """After hooks may swap the chosen entry for another catalog entry."""

    @pytest.mark.asyncio
    async def test_keep_choice(self, scenario_catalog):
        chosen = []
        hooks = SelectionHooks()
        hooks.add_after("audit", lambda entry: chosen.append(entry.id))

        result = await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria(weights={"cost": 1}))
        assert result.entry.id == "A"
        assert chosen == ["A"]

    @pytest.mark.asyncio
    async def test_replace_with_candidate(self, scenario_catalog):
        snapshot = scenario_catalog.snapshot()
        hooks = SelectionHooks()

        async def prefer_c(entry):
            return snapshot.get("C")

        hooks.add_after("prefer-c", prefer_c)
        result = await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria(weights={"cost": 1}))

        assert result.entry.id == "C"
        assert result.score == pytest.approx(5 / 9)

    @pytest.mark.asyncio
    async def test_replacement_resolved_to_snapshot_instance(self, scenario_catalog):
        hooks = SelectionHooks()
        hooks.add_after("copy", lambda entry: entry.model_copy(update={"context_window": 1}))
        result = await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria(weights={"cost": 1}))

        assert result.entry is scenario_catalog.snapshot().get("A")
        assert result.entry.context_window == 128_000

    @pytest.mark.asyncio
    async def test_entry_outside_snapshot_rejected(self, scenario_catalog):
        hooks = SelectionHooks()
        hooks.add_after("ghost", lambda entry: CatalogEntry(id="ghost", provider="nowhere"))
        with pytest.raises(HookError) as exc_info:
            await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria())
        assert exc_info.value.stage == "after"
        assert "ghost" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_return_value(self, scenario_catalog):
        hooks = SelectionHooks()
        hooks.add_after("wrong", lambda entry: "C")
        with pytest.raises(HookError, match="expected CatalogEntry"):
            await ModelSelector(scenario_catalog, hooks=hooks).select(SelectionCriteria())

    @pytest.mark.asyncio
    async def test_snapshot_captured_once(self, scenario_entries):
        """A refresh during an async hook does not change what the selection sees."""
        original = CatalogSnapshot.build(scenario_entries, version=1)
        catalog = SwappableCatalog(original)
        hooks = SelectionHooks()

        async def swap_catalog(criteria):
            catalog.current = CatalogSnapshot.build(scenario_entries[:1], version=2)

        async def pick_b(entry):
            return original.get("B")

        hooks.add_before("swap", swap_catalog)
        hooks.add_after("pick-b", pick_b)

        result = await ModelSelector(catalog, hooks=hooks).select(SelectionCriteria(weights={"cost": 1}))
        assert result.entry.id == "B"
        assert result.snapshot_version == 1
        assert len(result.candidates) == 3
