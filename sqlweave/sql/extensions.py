"""
Jinja2 tags that make up the sqlweave directive dialect.

{% p 'expr[,options]' %} dummy {% endp %}   bind-variable placeholder (dummy discarded)
{% p 'expr' / %}                           same, without a dummy body
{% each item in items %} ... {% endeach %}  loop exposing ``item`` and ``item_stat``
{% bind name = expr, ... %}                 custom bind variable, renders nothing

Tag names carry the environment's ``sqlweave_directive_prefix`` (empty by
default).  With 2-way SQL enabled the delimiters are ``/*% ... %*/``.
"""
from typing import Any

from jinja2 import nodes
from jinja2.ext import Extension
from jinja2.runtime import Context

from sqlweave.binding.context import BindingContext
from sqlweave.binding.iteration import innermost_identity, iterate, status_variable

DIRECTIVE_NAMES = ("p", "each", "bind")


class SqlDirectiveExtension(Extension):
    def __init__(self, environment):
        super().__init__(environment)
        environment.extend(
            sqlweave_directive_prefix="",
            sqlweave_param_processor=None,
        )

    @property
    def tags(self):
        prefix = self.environment.sqlweave_directive_prefix
        return {f"{prefix}{name}" for name in DIRECTIVE_NAMES}

    def parse(self, parser):
        token = next(parser.stream)
        directive = token.value[len(self.environment.sqlweave_directive_prefix):]
        if directive == "p":
            return self._parse_param(parser, token)
        if directive == "each":
            return self._parse_each(parser, token)
        return self._parse_bind(parser, token)

    # ------------------------------------------------------------------
    # p
    # ------------------------------------------------------------------

    def _parse_param(self, parser, token) -> nodes.Output:
        if parser.stream.current.type != "string":
            parser.fail(f"'{token.value}' expects a quoted parameter expression", token.lineno)
        expression = next(parser.stream).value
        call = self.call_method(
            "_render_param",
            [nodes.Const(expression), nodes.DerivedContextReference()],
            lineno=token.lineno,
        )
        if not parser.stream.skip_if("div"):
            # the 2-way dummy value between the tags is parsed and dropped
            parser.parse_statements((f"name:end{token.value}",), drop_needle=True)
        return nodes.Output([call], lineno=token.lineno)

    def _render_param(self, expression: str, context: Context) -> str:
        processor = self.environment.sqlweave_param_processor
        return processor.process(expression, context.get_all())

    # ------------------------------------------------------------------
    # each
    # ------------------------------------------------------------------

    def _parse_each(self, parser, token) -> nodes.For:
        target = parser.stream.expect("name")
        parser.stream.expect("name:in")
        iterable = parser.parse_tuple(with_condexpr=False)
        end_tag = f"name:end{token.value}"
        body = parser.parse_statements((end_tag, "name:else"))
        if next(parser.stream).value == "else":
            else_ = parser.parse_statements((end_tag,), drop_needle=True)
        else:
            else_ = []

        stat_name = status_variable(target.value)
        statuses = self.call_method(
            "_iterate",
            [nodes.Const(target.value), iterable, nodes.DerivedContextReference()],
            lineno=token.lineno,
        )
        bind_item = nodes.Assign(
            nodes.Name(target.value, "store"),
            nodes.Getattr(nodes.Name(stat_name, "load"), "current", "load"),
            lineno=token.lineno,
        )
        return nodes.For(
            nodes.Name(stat_name, "store"), statuses, [bind_item] + body, else_,
            None, False, lineno=token.lineno,
        )

    def _iterate(self, name: str, iterable: Any, context: Context):
        variables = context.get_all()
        serial = BindingContext.load(variables).next_loop_serial()
        return iterate(name, iterable, serial, innermost_identity(variables))

    # ------------------------------------------------------------------
    # bind
    # ------------------------------------------------------------------

    def _parse_bind(self, parser, token) -> list:
        assignments = []
        while parser.stream.current.type != "block_end":
            if assignments:
                parser.stream.expect("comma")
            target = parser.stream.expect("name")
            parser.stream.expect("assign")
            value = parser.parse_expression()
            call = self.call_method(
                "_bind_variable",
                [nodes.Const(target.value), value, nodes.DerivedContextReference()],
                lineno=target.lineno,
            )
            assignments.append(nodes.Assign(nodes.Name(target.value, "store"), call, lineno=target.lineno))
        if not assignments:
            parser.fail(f"'{token.value}' expects at least one 'name = expression'", token.lineno)
        return assignments

    def _bind_variable(self, name: str, value: Any, context: Context) -> Any:
        BindingContext.load(context.get_all()).set_custom_bind_variable(name, value)
        return value
