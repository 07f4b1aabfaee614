"""
The ``p`` directive: turns a parameter reference into bind-variable placeholder
text for the downstream SQL layer.

``/*% p 'name' %*/ 'dummy' /*% endp %*/`` renders ``#{name}`` with the default
named-parameter config.  Inside an ``each`` loop a reference to the loop
variable is rewritten to a synthetic name that is unique to the current pass
and bound in the render's :class:`BindingContext`.  Collections expand to one
placeholder per element (``#{ids[0]}, #{ids[1]}``), or to ``null`` when empty.
"""
from __future__ import annotations

import enum
import re
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple

from sqlweave.binding.context import BindingContext
from sqlweave.binding.iteration import IterationStatus, find_iteration_status
from sqlweave.binding.resolver import PARAMETER_OBJECT_NAME, PARAMETER_SCOPE_NAME, ExpressionResolver
from sqlweave.config.schema import NamedParameterConfig
from sqlweave.utils.logging import get_logger
from sqlweave.validations.exceptions import ExpressionResolutionError

NESTED_EXPRESSION = re.compile(r"\$\{(.*?)\}")
OPTION_SEPARATOR = ","
EMPTY_COLLECTION = "null"


class Pair(NamedTuple):
    left: str
    right: str

    @classmethod
    def parse(cls, value: str, separators: str) -> Pair:
        """Split at the first of *separators*; the separator stays on the right."""
        for index, char in enumerate(value):
            if char in separators:
                return cls(value[:index], value[index:])
        return cls(value, "")


class DirectiveKind(enum.Enum):
    PARAMETER = "parameter"            # top-level parameter path
    ITERATION = "iteration"            # bare loop variable
    ITERATION_PATH = "iteration_path"  # loop variable plus nested path


@dataclass(frozen=True)
class ParamDirective:
    kind: DirectiveKind
    expression: str   # after ${...} resolution, options included
    parameter_path: str
    options: str
    base_name: str
    nested_path: str
    status: IterationStatus | None = None


def is_collection(value: Any) -> bool:
    return (
        isinstance(value, Collection)
        and not isinstance(value, (str, bytes, bytearray, Mapping))
    )


class ParamDirectiveProcessor:
    def __init__(self, resolver: ExpressionResolver, named_parameter: NamedParameterConfig | None = None):
        self.resolver = resolver
        self.named_parameter = named_parameter or NamedParameterConfig()
        self.logger = get_logger("directives")

    def process(self, expression: str, variables: Mapping[str, Any]) -> str:
        """Return the replacement text for one directive occurrence.

        *variables* is the full render context at the directive site,
        including loop locals.  Synthetic bindings are recorded in the
        render's binding context as a side effect.
        """
        directive = self.parse(expression, variables)
        match directive.kind:
            case DirectiveKind.PARAMETER:
                body = self._render_parameter(directive, variables)
            case DirectiveKind.ITERATION:
                body = self._render_iteration(directive, variables)
            case DirectiveKind.ITERATION_PATH:
                body = self._render_iteration_path(directive, variables)
        self.logger.debug(f"p '{expression}' ({directive.kind.value}) -> {body}")
        return body

    def parse(self, expression: str, variables: Mapping[str, Any]) -> ParamDirective:
        expression = self.resolve_nested_expressions(expression, variables).strip()
        parameter_path, options = Pair.parse(expression, OPTION_SEPARATOR)
        parameter_path = parameter_path.strip()
        base_name, nested_path = Pair.parse(parameter_path, ".[")

        status = find_iteration_status(variables, base_name)
        if status is None:
            kind = DirectiveKind.PARAMETER
        elif nested_path:
            kind = DirectiveKind.ITERATION_PATH
        else:
            kind = DirectiveKind.ITERATION
        return ParamDirective(kind, expression, parameter_path, options, base_name, nested_path, status)

    def resolve_nested_expressions(self, expression: str, variables: Mapping[str, Any]) -> str:
        """Replace every ``${...}`` with its evaluated value, left to right."""
        return NESTED_EXPRESSION.sub(
            lambda m: str(self.resolver.evaluate(m.group(1), variables)), expression
        )

    def is_bindable_name(self, name: str, variables: Mapping[str, Any]) -> bool:
        """True when the SQL layer can resolve *name* from the final parameter set."""
        if name == PARAMETER_OBJECT_NAME:
            return True
        scope = variables.get(PARAMETER_SCOPE_NAME)
        if scope is not None and name in scope:
            return True
        return BindingContext.load(variables).contains(name)

    # ------------------------------------------------------------------
    # Renderers, one per directive kind
    # ------------------------------------------------------------------

    def _render_parameter(self, directive: ParamDirective, variables: Mapping[str, Any]) -> str:
        if not self.is_bindable_name(directive.base_name, variables):
            raise ExpressionResolutionError(
                directive.parameter_path,
                f"'{directive.base_name}' in p '{directive.expression}' is neither a parameter nor a "
                f"bind variable, so the SQL layer cannot bind it; iterate with 'each' to bind loop variables",
            )
        value = self.resolver.evaluate(directive.parameter_path, variables)
        if is_collection(value):
            return self.expand_collection(value, directive.parameter_path, directive.options)
        return self.named_parameter.format(directive.expression)

    def _render_iteration(self, directive: ParamDirective, variables: Mapping[str, Any]) -> str:
        name = self._bind_iteration_object(directive, variables)
        return self.named_parameter.format(name + directive.options)

    def _render_iteration_path(self, directive: ParamDirective, variables: Mapping[str, Any]) -> str:
        name = self._bind_iteration_object(directive, variables)
        path = name + directive.nested_path
        value = self.resolver.evaluate(directive.parameter_path, variables)
        if is_collection(value):
            return self.expand_collection(value, path, directive.options)
        return self.named_parameter.format(path + directive.options)

    def _bind_iteration_object(self, directive: ParamDirective, variables: Mapping[str, Any]) -> str:
        binding_context = BindingContext.load(variables)
        status = directive.status
        name = binding_context.resolve_or_create(directive.base_name, status.identity)
        binding_context.record_if_absent(name, status.current)
        return name

    def expand_collection(self, value: Collection, parameter_path: str, options: str) -> str:
        if len(value) == 0:
            return EMPTY_COLLECTION
        return ", ".join(
            self.named_parameter.format(f"{parameter_path}[{i}]{options}")
            for i in range(len(value))
        )
