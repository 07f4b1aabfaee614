"""
Per-render binding state shared by every directive of one ``process`` call.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlweave.binding.iteration import Identity

# Reserved render-context key; template lookups never resolve it.
CONTEXT_VARIABLE_NAME = "__sqlweave_binding_context__"


class BindingContext:
    """Synthetic bind variables generated while rendering one template.

    A synthetic name is issued once per ``(base_name, identity)`` pair and
    reused for every later reference from the same loop pass.  Names take the
    form ``<base_name>__<n>`` with a per-base counter, skipping anything
    already taken by a top-level parameter or an earlier synthetic name.
    Variables set by the ``bind`` directive share the same ordered bindings.

    Instances are never shared between renders.
    """

    def __init__(self, reserved_names: Iterable[str] = ()):
        self._reserved = frozenset(reserved_names)
        self._names: dict[tuple[str, Identity], str] = {}
        self._counters: dict[str, int] = {}
        self._issued: set[str] = set()
        self._bindings: dict[str, Any] = {}
        self._loop_serial = 0

    @staticmethod
    def load(variables: Mapping[str, Any]) -> BindingContext:
        """Fetch the active binding context from render-context *variables*."""
        return variables[CONTEXT_VARIABLE_NAME]

    def next_loop_serial(self) -> int:
        """Number each ``each`` loop instance in the order it starts."""
        serial = self._loop_serial
        self._loop_serial += 1
        return serial

    def resolve_or_create(self, base_name: str, identity: Identity) -> str:
        key = (base_name, identity)
        name = self._names.get(key)
        if name is None:
            counter = self._counters.get(base_name, 0)
            name = f"{base_name}__{counter}"
            while self._is_taken(name):
                counter += 1
                name = f"{base_name}__{counter}"
            self._counters[base_name] = counter + 1
            self._names[key] = name
            self._issued.add(name)
        return name

    def _is_taken(self, name: str) -> bool:
        return name in self._reserved or name in self._issued or name in self._bindings

    def record_if_absent(self, name: str, value: Any) -> bool:
        """Bind *value* to *name* unless already bound; first write wins."""
        if name in self._bindings:
            return False
        self._bindings[name] = value
        return True

    def set_custom_bind_variable(self, name: str, value: Any) -> None:
        """Bind a template-authored variable (``bind`` directive); last write wins."""
        self._bindings[name] = value

    def contains(self, name: str) -> bool:
        return name in self._bindings

    def all_bindings(self) -> dict[str, Any]:
        """Copy of every binding in insertion order."""
        return dict(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"<BindingContext {self._bindings!r}>"
