"""
Expression resolution against the parameter graph.

The parameter object is exposed to templates through :class:`ParameterScope`:
its top-level names are discovered once per render and each value is resolved
on first access, then cached for the rest of that render.
"""
from __future__ import annotations

import dataclasses
from typing import Any, Callable, Iterator, Mapping

from jinja2 import Environment, UndefinedError, nodes
from jinja2.compiler import CodeGenerator, Frame
from jinja2.idtracking import VAR_LOAD_ALIAS, VAR_LOAD_RESOLVE, VAR_LOAD_UNDEFINED
from jinja2.runtime import Context, Undefined
from jinja2.utils import missing
from pydantic import BaseModel

from sqlweave.utils.cache import CompiledCache
from sqlweave.validations.exceptions import ExpressionResolutionError

# Keys with this prefix live in the render context but never resolve from templates
RESERVED_PREFIX = "__sqlweave_"
PARAMETER_SCOPE_NAME = "__sqlweave_parameters__"
# Whole parameter object, visible to templates
PARAMETER_OBJECT_NAME = "_parameter"

_SCALARS = (str, bytes, bytearray, int, float, complex, bool)

PropertyNames = Callable[[Any], list]


def property_names(obj: Any) -> list[str]:
    """Readable top-level names of a parameter object.

    Mappings expose their string keys, dataclasses and pydantic models their
    declared fields, anything else its public instance attributes, slots and
    class properties.  ``None`` and scalars expose nothing.
    """
    if obj is None or isinstance(obj, _SCALARS):
        return []
    if isinstance(obj, Mapping):
        return [k for k in obj.keys() if isinstance(k, str)]
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return [f.name for f in dataclasses.fields(obj)]
    if isinstance(obj, BaseModel):
        return list(type(obj).model_fields)

    names = [n for n in getattr(obj, '__dict__', {}) if not n.startswith('_')]
    for klass in type(obj).__mro__:
        slots = getattr(klass, '__slots__', ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if not name.startswith('_') and name not in names and hasattr(obj, name):
                names.append(name)
        for name, attr in vars(klass).items():
            if isinstance(attr, property) and not name.startswith('_') and name not in names:
                names.append(name)
    return names


class ExpressionResolver:
    """Evaluates Jinja2 path expressions (``user.name``, ``ids[0]``) against
    render-context variables.

    Anything that does not resolve to a real value raises
    :class:`ExpressionResolutionError` instead of yielding ``Undefined``.
    """

    def __init__(self, environment: Environment, cache_size: int = 512,
                 names: PropertyNames = property_names):
        self.environment = environment
        self.names = names
        self._expressions = CompiledCache(cache_size)

    def evaluate(self, expression: str, variables: Mapping[str, Any]) -> Any:
        compiled = self._expressions.get_or_compile(
            expression.strip(),
            lambda src: self.environment.compile_expression(src, undefined_to_none=False),
        )
        try:
            value = compiled(variables)
        except UndefinedError as e:
            raise ExpressionResolutionError(
                expression, f"Cannot resolve expression '{expression}': {e}"
            ) from e
        if isinstance(value, Undefined):
            raise ExpressionResolutionError(expression)
        return value

    def property_names(self, obj: Any) -> list[str]:
        return list(self.names(obj))

    def resolve_property(self, obj: Any, name: str) -> Any:
        try:
            if isinstance(obj, Mapping):
                return obj[name]
            return getattr(obj, name)
        except (KeyError, AttributeError) as e:
            raise ExpressionResolutionError(
                name, f"Cannot resolve property '{name}' on {type(obj).__name__}"
            ) from e


class ParameterScope(Mapping):
    """Lazy, resolve-once view of the parameter object's top-level names."""

    def __init__(self, parameter: Any, names: list[str], resolver: ExpressionResolver):
        self.parameter = parameter
        self._names = tuple(names)
        self._name_set = frozenset(names)
        self._resolver = resolver
        self._cache: dict[str, Any] = {}

    def __getitem__(self, name: str) -> Any:
        if name not in self._name_set:
            raise KeyError(name)
        if name not in self._cache:
            self._cache[name] = self._resolver.resolve_property(self.parameter, name)
        return self._cache[name]

    def __contains__(self, name: object) -> bool:
        return name in self._name_set

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)


class ParameterContext(Context):
    """Jinja2 context that falls back to the render's :class:`ParameterScope`
    and hides reserved internal keys from template lookups."""

    def resolve_or_missing(self, key: str) -> Any:
        if key.startswith(RESERVED_PREFIX):
            return missing
        rv = super().resolve_or_missing(key)
        if rv is missing:
            scope = self.parent.get(PARAMETER_SCOPE_NAME)
            if scope is not None and key in scope:
                return scope[key]
        return rv

    def resolve_unless_set(self, current: Any, key: str) -> Any:
        """*current* once the template has bound *key*, else a context lookup."""
        if current is not missing:
            return current
        return self.resolve(key)


class DeferredNameCodeGenerator(CodeGenerator):
    """Look up names the template reads but never binds at the point of use.

    The stock generator resolves every such name when its frame starts, so a
    parameter property referenced only in an untaken ``if`` branch would
    still be read.  Requires :class:`ParameterContext`.
    """

    def enter_frame(self, frame: Frame) -> None:
        deferred = [
            target for target, (action, _) in frame.symbols.loads.items()
            if action == VAR_LOAD_RESOLVE
        ]
        if deferred:
            self.writeline(f"{' = '.join(deferred)} = missing")
        undefs = []
        for target, (action, param) in frame.symbols.loads.items():
            if action == VAR_LOAD_ALIAS:
                self.writeline(f"{target} = {param}")
            elif action == VAR_LOAD_UNDEFINED:
                undefs.append(target)
        if undefs:
            self.writeline(f"{' = '.join(undefs)} = missing")

    def visit_Name(self, node: nodes.Name, frame: Frame) -> None:
        if node.ctx == "load":
            ref = frame.symbols.ref(node.name)
            if self._is_deferred(frame, ref):
                self.write(f"{self.get_context_ref()}.resolve_unless_set({ref}, {node.name!r})")
                return
        super().visit_Name(node, frame)

    @staticmethod
    def _is_deferred(frame: Frame, ref: str) -> bool:
        load = frame.symbols.find_load(ref)
        while load is not None and load[0] == VAR_LOAD_ALIAS:
            load = frame.symbols.find_load(load[1])
        return load is not None and load[0] == VAR_LOAD_RESOLVE
