"""Runtime stand-ins for the markers.

They do nothing at runtime so annotated modules can be imported and
type-checked before expansion. Return annotations mentioning the
placeholder need ``from __future__ import annotations`` until then.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")


def compose_errors(item: T) -> T:
    """Enable error set expansion for a function or class."""
    return item


def errorset(*error_types: type) -> Callable[[T], T]:
    """Declare the error types a function may fail with."""
    if not error_types:
        raise TypeError("errorset() needs at least one error type")

    def decorate(func: T) -> T:
        return func

    return decorate
