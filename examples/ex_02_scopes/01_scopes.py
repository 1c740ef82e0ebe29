"""Scopes: shadow registrations temporarily and dispose them in order.

This module covers:

1. Shadowing a base registration from a pushed scope.
2. ``ShadowAware`` notifications when an instance is hidden and uncovered.
3. Scope and registration dispose hooks running on ``pop_scope``.
4. ``pop_scopes_till`` and ``enter_scope`` blocks.
"""

from __future__ import annotations

from typing import Any

from scopewire import Registry

events: list[str] = []


class Settings:
    def __init__(self, env: str) -> None:
        self.env = env

    def on_get_shadowed(self, shadowing: Any) -> None:
        events.append(f"{self.env} shadowed by {shadowing.env}")

    def on_leave_shadow(self, shadowing: Any) -> None:
        events.append(f"{self.env} uncovered")


class Connection:
    def __init__(self, label: str) -> None:
        self.label = label

    def on_dispose(self) -> None:
        events.append(f"{self.label} connection closed")


def main() -> None:
    registry = Registry()
    registry.register_instance(Settings, Settings("prod"))

    registry.push_new_scope(name="session", dispose=lambda: events.append("session disposed"))
    registry.register_instance(Settings, Settings("test"))
    registry.register_instance(Connection, Connection("test"))
    print(f"inside_scope_env={registry.resolve(Settings).env}")  # => inside_scope_env=test
    print(f"events={events}")  # => events=['prod shadowed by test']

    events.clear()
    registry.pop_scope()
    print(f"after_pop_env={registry.resolve(Settings).env}")  # => after_pop_env=prod
    print(
        f"pop_events={events}",
    )  # => pop_events=['session disposed', 'prod uncovered', 'test connection closed']

    registry.push_new_scope(name="login")
    registry.push_new_scope(name="page")
    registry.push_new_scope()
    registry.pop_scopes_till("login", inclusive=False)
    print(f"current_scope={registry.current_scope_name}")  # => current_scope=login

    with registry.enter_scope(name="request"):
        registry.push_new_scope(name="nested")
        print(f"depth_inside_block={registry.scope_depth}")  # => depth_inside_block=4
    print(f"depth_after_block={registry.scope_depth}")  # => depth_after_block=2


if __name__ == "__main__":
    main()
