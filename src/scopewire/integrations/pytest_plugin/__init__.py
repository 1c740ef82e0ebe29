from scopewire.integrations.pytest_plugin.plugin import scopewire_context, scopewire_registry

__all__ = ["scopewire_context", "scopewire_registry"]
