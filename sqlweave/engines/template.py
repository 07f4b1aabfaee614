"""
Template engine: renders a SQL template against a parameter object and
collects the synthetic bind variables generated along the way.
"""
from __future__ import annotations

from typing import Any, MutableMapping

from sqlweave.binding.context import CONTEXT_VARIABLE_NAME, BindingContext
from sqlweave.binding.resolver import (
    PARAMETER_OBJECT_NAME,
    PARAMETER_SCOPE_NAME,
    ExpressionResolver,
    ParameterScope,
    PropertyNames,
    property_names as default_property_names,
)
from sqlweave.config.loader import load_default_config
from sqlweave.config.schema import EngineConfig
from sqlweave.sql.directives import ParamDirectiveProcessor
from sqlweave.sql.generator import Customizer, SQLGenerator
from sqlweave.utils.logging import get_logger, log_sql_section


class SqlTemplateEngine:
    """Render sqlweave SQL templates into bind-variable SQL.

    Example
    -------
    >>> engine = SqlTemplateEngine(EngineConfig())
    >>> bindings = {}
    >>> engine.process(
    ...     "SELECT * FROM t WHERE id IN (/*% p 'ids' %*/ 1 /*% endp %*/)",
    ...     {"ids": [3, 4]}, bindings)
    'SELECT * FROM t WHERE id IN (#{ids[0]}, #{ids[1]})'

    Parameters
    ----------
    config
        Engine configuration; the default configuration file (or built-in
        defaults) when omitted.
    property_names
        Callable listing a parameter object's top-level names.  Defaults to
        :func:`sqlweave.binding.resolver.property_names`.
    customizer
        Optional callable applied to the Jinja2 Environment after the
        configured customizer.
    logger
        Optional custom logger; defaults to ``sqlweave.engine``.
    """

    def __init__(self,
                 config: EngineConfig | None = None,
                 *,
                 property_names: PropertyNames | None = None,
                 customizer: Customizer | None = None,
                 logger=None):
        self.config = config if config is not None else load_default_config()
        self.logger = logger or get_logger("engine")
        self.generator = SQLGenerator(self.config, customizer=customizer)
        self.resolver = ExpressionResolver(
            self.generator.env,
            cache_size=self.config.template_file.cache_size,
            names=property_names or default_property_names,
        )
        self.processor = ParamDirectiveProcessor(self.resolver, self.config.dialect.named_parameter)
        self.generator.env.sqlweave_param_processor = self.processor

    def process(self,
                sql_template: str,
                parameter: Any = None,
                custom_bind_variables: MutableMapping[str, Any] | None = None) -> str:
        """
        Render *sql_template* (inline SQL or a template file name) against
        *parameter*, a mapping, an object with readable properties, or None.

        Synthetic bind variables are added to *custom_bind_variables* when
        given; existing entries are kept.  *parameter* is never modified.
        """
        names = self.resolver.property_names(parameter)
        binding_context = BindingContext(reserved_names=names)
        variables = {
            PARAMETER_OBJECT_NAME: parameter,
            PARAMETER_SCOPE_NAME: ParameterScope(parameter, names, self.resolver),
            CONTEXT_VARIABLE_NAME: binding_context,
        }

        template = self.generator.get_template(sql_template)
        sql = template.render(variables)

        if custom_bind_variables is not None:
            custom_bind_variables.update(binding_context.all_bindings())

        section = template.name or "inline"
        self.logger.debug(f"Rendered {section} template with {len(binding_context)} custom bind variable(s)")
        log_sql_section(section, sql)
        return sql

    def template_names(self, filter_func=None) -> list[str]:
        return self.generator.list_templates(filter_func)
