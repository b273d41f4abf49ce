"""
Realm simulation core: ledger, recompute pipeline and persistence.
The engine types are re-exported lazily so `import sim` stays cheap and
modules that `sim` itself imports (modifiers, laws) do not import engine.
"""
from typing import Any

__all__ = ["RealmEngine", "World", "Realm", "Member", "City"]


def __getattr__(name: str) -> Any:
    # Lazy import to avoid circular dependency during package import.
    if name in __all__:
        import engine  # local import
        globals().update({n: getattr(engine, n) for n in __all__})
        return globals()[name]
    raise AttributeError(f"module 'sim' has no attribute {name!r}")
