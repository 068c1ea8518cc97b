"""Feature modules."""

from src.core import module_registry


def register_builtin_modules() -> None:
    """Register the bundled modules once."""
    from src.modules.tasks import TasksModule  # noqa: PLC0415

    if module_registry.get_module("tasks") is None:
        module_registry.register_module(TasksModule())
