"""Shared kernel: small helpers used across the engine's modules.

Keep this small: business rules belong in the fight package, not here.
"""
import functools
from typing import Any, Callable, Dict, Optional


def safe_update(target: Optional[Dict[str, Any]], diff: Dict[str, Any]) -> Dict[str, Any]:
    """
    Returns a new dictionary with `diff` merged over `target`.

    The input dict is never modified, which matters for JSON columns:
    SQLAlchemy only sees a change when a new object is assigned.
    """
    result = dict(target or {})
    result.update(diff)
    return result


def to_int(value: Any, default: int = 0) -> int:
    """
    Coerces an action value to an int.

    Action values arrive as ints or as strings like "8" or "7*"; anything
    that doesn't start with a number becomes `default`.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        digits = ""
        for i, ch in enumerate(value.strip()):
            if ch.isdigit() or (i == 0 and ch in "+-"):
                digits += ch
            else:
                break
        try:
            return int(digits)
        except ValueError:
            return default
    return default


def with_db_session(session_factory):
    """
    Decorator to inject a database session into a function.

    If 'db' is already present in kwargs, it is used.
    Otherwise, a new session is created from session_factory and closed after execution.
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if "db" in kwargs and kwargs["db"] is not None:
                return func(*args, **kwargs)

            db = session_factory()
            try:
                kwargs["db"] = db
                return func(*args, **kwargs)
            finally:
                db.close()
        return wrapper
    return decorator
