"""Tests for scope push/pop, shadowing and scope-change notifications."""

from __future__ import annotations

from typing import Any

import pytest

from scopewire import (
    Registry,
    ScopeWireAsyncDisposeInSyncContextError,
    ScopeWireIllegalStateError,
    ScopeWireInvalidScopeNameError,
    ScopeWireNotRegisteredError,
)


class Widget:
    pass


class ShadowedWidget(Widget):
    """Records shadowing notifications."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def on_get_shadowed(self, shadowing: Any) -> None:
        self.events.append(("shadowed", shadowing))

    def on_leave_shadow(self, shadowing: Any) -> None:
        self.events.append(("uncovered", shadowing))


class TestPushNewScope:
    def test_base_scope_is_current_initially(self, registry: Registry) -> None:
        assert registry.current_scope_name == "baseScope"
        assert registry.scope_depth == 1

    def test_push_makes_new_scope_current(self, registry: Registry) -> None:
        registry.push_new_scope(name="session")

        assert registry.current_scope_name == "session"
        assert registry.scope_depth == 2
        assert registry.has_scope("session")

    def test_anonymous_scope_has_no_name(self, registry: Registry) -> None:
        registry.push_new_scope()

        assert registry.current_scope_name is None

    def test_reserved_base_name_is_rejected(self, registry: Registry) -> None:
        with pytest.raises(ScopeWireInvalidScopeNameError, match="reserved"):
            registry.push_new_scope(name="baseScope")

        assert registry.scope_depth == 1

    def test_duplicate_name_is_rejected(self, registry: Registry) -> None:
        registry.push_new_scope(name="session")

        with pytest.raises(ScopeWireInvalidScopeNameError, match="already used"):
            registry.push_new_scope(name="session")

        assert registry.scope_depth == 2

    def test_init_registers_into_new_scope_before_notification(
        self,
        registry: Registry,
    ) -> None:
        seen: list[tuple[bool, bool]] = []
        registry.on_scope_changed = lambda pushed: seen.append(
            (pushed, registry.is_registered(Widget)),
        )

        registry.push_new_scope(
            name="session",
            init=lambda r: r.register_factory(Widget, Widget),
        )

        assert seen == [(True, True)]

    @pytest.mark.asyncio
    async def test_apush_awaits_async_init(self, registry: Registry) -> None:
        seen: list[bool] = []
        registry.on_scope_changed = lambda pushed: seen.append(registry.is_registered(Widget))

        async def init(r: Registry) -> None:
            r.register_instance(Widget, Widget())

        await registry.apush_new_scope(name="session", init=init)

        assert seen == [True]
        assert registry.current_scope_name == "session"


class TestShadowing:
    def test_pushed_registration_shadows_lower_one(self, registry: Registry) -> None:
        lower, upper = Widget(), Widget()
        registry.register_instance(Widget, lower)
        registry.push_new_scope(name="s1")
        registry.register_instance(Widget, upper)

        assert registry.resolve(Widget) is upper

        registry.pop_scope()

        assert registry.resolve(Widget) is lower

    def test_pop_without_lower_registration_leaves_key_unregistered(
        self,
        registry: Registry,
    ) -> None:
        registry.register_factory_param(int, lambda n: n * 2, name="a", param_type=int)
        assert registry.resolve(int, name="a", param=5) == 10

        registry.push_new_scope(name="s1")
        x = Widget()
        registry.register_instance(Widget, x)
        assert registry.resolve(Widget) is x

        registry.pop_scope()

        with pytest.raises(ScopeWireNotRegisteredError):
            registry.resolve(Widget)
        assert registry.resolve(int, name="a", param=5) == 10

    def test_lower_scope_keys_stay_visible_from_child(self, registry: Registry) -> None:
        registry.register_factory(Widget, Widget)
        registry.push_new_scope()

        assert isinstance(registry.resolve(Widget), Widget)

    def test_same_key_can_be_registered_in_child_scope(self, registry: Registry) -> None:
        registry.register_factory(Widget, Widget)
        registry.push_new_scope()

        registry.register_factory(Widget, Widget)

        assert registry.scope_depth == 2

    def test_shadow_aware_instance_is_notified(self, registry: Registry) -> None:
        lower = ShadowedWidget()
        upper = Widget()
        registry.register_instance(Widget, lower)
        registry.push_new_scope()

        registry.register_instance(Widget, upper)
        assert lower.events == [("shadowed", upper)]

        registry.pop_scope()
        assert lower.events == [("shadowed", upper), ("uncovered", upper)]

    def test_factory_registration_does_not_notify_shadowed_instance(
        self,
        registry: Registry,
    ) -> None:
        lower = ShadowedWidget()
        registry.register_instance(Widget, lower)
        registry.push_new_scope()

        registry.register_factory(Widget, Widget)
        registry.pop_scope()

        assert lower.events == []

    def test_leave_shadow_fires_before_dispose(self, registry: Registry) -> None:
        order: list[str] = []

        class Lower(ShadowedWidget):
            def on_leave_shadow(self, shadowing: Any) -> None:
                order.append("uncovered")

        class Upper(Widget):
            def on_dispose(self) -> None:
                order.append("disposed")

        registry.register_instance(Widget, Lower())
        registry.push_new_scope()
        registry.register_instance(Widget, Upper())

        registry.pop_scope()

        assert order == ["uncovered", "disposed"]


class TestPopScope:
    def test_popping_base_scope_raises(self, registry: Registry) -> None:
        with pytest.raises(ScopeWireIllegalStateError, match="base scope"):
            registry.pop_scope()

        assert registry.scope_depth == 1

    @pytest.mark.asyncio
    async def test_apop_base_scope_raises(self, registry: Registry) -> None:
        registry.push_new_scope()
        await registry.apop_scope()

        with pytest.raises(ScopeWireIllegalStateError):
            await registry.apop_scope()

        assert registry.scope_depth == 1

    def test_scope_dispose_runs_while_scope_is_current(self, registry: Registry) -> None:
        seen: list[str | None] = []
        registry.push_new_scope(
            name="session",
            dispose=lambda: seen.append(registry.current_scope_name),
        )

        registry.pop_scope()

        assert seen == ["session"]
        assert registry.current_scope_name == "baseScope"

    def test_scope_dispose_runs_before_registration_dispose(self, registry: Registry) -> None:
        order: list[str] = []
        registry.push_new_scope(dispose=lambda: order.append("scope"))
        registry.register_instance(Widget, Widget(), dispose=lambda _: order.append("widget"))

        registry.pop_scope()

        assert order == ["scope", "widget"]

    def test_factories_have_nothing_to_dispose(self, registry: Registry) -> None:
        registry.push_new_scope()
        registry.register_factory(Widget, Widget)

        registry.pop_scope()

        assert not registry.is_registered(Widget)

    def test_pop_notifies_scope_change(self, registry: Registry) -> None:
        seen: list[bool] = []
        registry.on_scope_changed = seen.append
        registry.push_new_scope()

        registry.pop_scope()

        assert seen == [True, False]

    @pytest.mark.asyncio
    async def test_apop_awaits_async_dispose_hooks(self, registry: Registry) -> None:
        order: list[str] = []

        async def dispose_scope() -> None:
            order.append("scope")

        async def dispose_widget(widget: Widget) -> None:
            order.append("widget")

        registry.push_new_scope(dispose=dispose_scope)
        registry.register_instance(Widget, Widget(), dispose=dispose_widget)

        await registry.apop_scope()

        assert order == ["scope", "widget"]
        assert registry.scope_depth == 1

    def test_sync_pop_rejects_async_hook(self, registry: Registry) -> None:
        async def dispose_scope() -> None:
            pass

        registry.push_new_scope(dispose=dispose_scope)

        with pytest.raises(ScopeWireAsyncDisposeInSyncContextError, match="apop_scope|async"):
            registry.pop_scope()

    def test_dispose_errors_propagate(self, registry: Registry) -> None:
        def explode(widget: Widget) -> None:
            msg = "cannot close"
            raise OSError(msg)

        registry.push_new_scope()
        registry.register_instance(Widget, Widget(), dispose=explode)

        with pytest.raises(OSError, match="cannot close"):
            registry.pop_scope()


class TestPopScopesTill:
    def _push(self, registry: Registry, *names: str) -> None:
        for name in names:
            registry.push_new_scope(name=name)

    def test_inclusive_pops_named_scope(self, registry: Registry) -> None:
        self._push(registry, "a", "b", "c")

        assert registry.pop_scopes_till("b") is True

        assert registry.current_scope_name == "a"

    def test_exclusive_stops_at_named_scope(self, registry: Registry) -> None:
        self._push(registry, "a", "b", "c")

        assert registry.pop_scopes_till("a", inclusive=False) is True

        assert registry.current_scope_name == "a"

    def test_exclusive_on_current_scope_pops_nothing(self, registry: Registry) -> None:
        self._push(registry, "a")

        assert registry.pop_scopes_till("a", inclusive=False) is True

        assert registry.current_scope_name == "a"

    def test_unknown_name_pops_nothing(self, registry: Registry) -> None:
        self._push(registry, "a", "b")

        assert registry.pop_scopes_till("missing") is False

        assert registry.scope_depth == 3

    def test_base_scope_name_is_rejected(self, registry: Registry) -> None:
        with pytest.raises(ScopeWireInvalidScopeNameError):
            registry.pop_scopes_till("baseScope")

    @pytest.mark.asyncio
    async def test_disposes_top_down(self, registry: Registry) -> None:
        order: list[str] = []
        for name in ("a", "b", "c"):
            registry.push_new_scope(name=name, dispose=lambda name=name: order.append(name))

        assert await registry.apop_scopes_till("a") is True

        assert order == ["c", "b", "a"]
        assert registry.scope_depth == 1

    def test_anonymous_scopes_above_target_are_popped(self, registry: Registry) -> None:
        registry.push_new_scope(name="a")
        registry.push_new_scope()
        registry.push_new_scope()

        assert registry.pop_scopes_till("a") is True

        assert registry.current_scope_name == "baseScope"


class TestEnterScope:
    def test_with_block_pushes_and_pops(self, registry: Registry) -> None:
        with registry.enter_scope(name="request") as scoped:
            assert scoped is registry
            assert registry.current_scope_name == "request"
            registry.register_instance(Widget, Widget())

        assert registry.scope_depth == 1
        assert not registry.is_registered(Widget)

    def test_with_block_pops_scopes_pushed_inside(self, registry: Registry) -> None:
        with registry.enter_scope(name="request"):
            registry.push_new_scope(name="nested")

        assert registry.scope_depth == 1

    @pytest.mark.asyncio
    async def test_async_with_block_awaits_dispose(self, registry: Registry) -> None:
        disposed: list[Widget] = []

        async def dispose(widget: Widget) -> None:
            disposed.append(widget)

        widget = Widget()
        async with registry.enter_scope():
            registry.register_instance(Widget, widget, dispose=dispose)

        assert disposed == [widget]
        assert registry.scope_depth == 1
