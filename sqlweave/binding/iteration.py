"""
Per-iteration state exposed by the ``each`` directive as ``<item>_stat``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

STAT_SUFFIX = "_stat"

# ((loop serial, index), ...) from the outermost enclosing loop inwards
Identity = tuple[tuple[int, int], ...]


@dataclass(frozen=True)
class IterationStatus:
    """Read-only view of one pass through an ``each`` loop.

    ``identity`` distinguishes this pass from every other pass in the same
    render, including passes of sibling loops and of the same loop nested
    under a different outer iteration.
    """

    name: str
    index: int
    size: int
    current: Any = field(repr=False)
    identity: Identity = ()

    @property
    def count(self) -> int:
        return self.index + 1

    @property
    def first(self) -> bool:
        return self.index == 0

    @property
    def last(self) -> bool:
        return self.index == self.size - 1

    @property
    def even(self) -> bool:
        return self.count % 2 == 0

    @property
    def odd(self) -> bool:
        return not self.even


def status_variable(name: str) -> str:
    return f"{name}{STAT_SUFFIX}"


def find_iteration_status(variables: Mapping[str, Any], name: str) -> IterationStatus | None:
    """Return the active status for loop variable *name*, or ``None``."""
    status = variables.get(status_variable(name))
    if isinstance(status, IterationStatus):
        return status
    return None


def innermost_identity(variables: Mapping[str, Any]) -> Identity:
    """Identity of the innermost ``each`` pass visible in *variables*.

    Outer identities are prefixes of inner ones, so the longest wins.
    """
    identity: Identity = ()
    for value in variables.values():
        if isinstance(value, IterationStatus) and len(value.identity) > len(identity):
            identity = value.identity
    return identity


def iterate(name: str, iterable, loop_serial: int, parent: Identity = ()) -> list[IterationStatus]:
    items = list(iterable)
    size = len(items)
    return [
        IterationStatus(name, index, size, item, parent + ((loop_serial, index),))
        for index, item in enumerate(items)
    ]
