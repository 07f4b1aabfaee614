"""
Build the Jinja2 environment that parses sqlweave templates.
"""
from __future__ import annotations

import fnmatch
import importlib
from typing import Callable

from jinja2 import Environment, FileSystemLoader, Template

from sqlweave.binding.resolver import DeferredNameCodeGenerator, ParameterContext
from sqlweave.config.schema import EngineConfig
from sqlweave.sql.extensions import SqlDirectiveExtension
from sqlweave.utils.cache import CompiledCache
from sqlweave.validations.exceptions import ConfigurationError

# Delimiters wrapped in SQL block comments so templates stay runnable SQL.
TWO_WAY_DELIMITERS = dict(
    block_start_string="/*%",
    block_end_string="%*/",
    variable_start_string="/*{{",
    variable_end_string="}}*/",
    comment_start_string="/*#",
    comment_end_string="#*/",
)

Customizer = Callable[[Environment], None]


def load_customizer(reference: str) -> Customizer:
    """Import ``package.module:attr`` (or ``package.module.attr``)."""
    if ':' in reference:
        module_name, attr = reference.split(':', 1)
    else:
        module_name, _, attr = reference.rpartition('.')
    try:
        target = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load customizer '{reference}': {e}") from e
    if isinstance(target, type):
        try:
            target = target()
        except TypeError as e:
            raise ConfigurationError(f"Cannot create an instance of customizer '{reference}': {e}") from e
    if not callable(target):
        raise ConfigurationError(f"Customizer '{reference}' is not callable")
    return target


class SQLGenerator:
    """Resolve SQL templates, either inline text or files under ``base_dir``.

    The generator owns one Jinja *Environment* configured from
    :class:`EngineConfig`: 2-way comment delimiters, the directive extension,
    a :class:`FileSystemLoader` when ``template_file.base_dir`` is set, and an
    LRU of compiled inline templates.

    Example
    -------
    >>> gen = SQLGenerator(EngineConfig())
    >>> gen.get_template("SELECT 1 /*% if x %*/WHERE x/*% endif %*/").render(x=True)
    'SELECT 1 WHERE x'
    """
    def __init__(self, config: EngineConfig | None = None, customizer: Customizer | None = None):
        self.config = config or EngineConfig()
        tf = self.config.template_file

        options = dict(TWO_WAY_DELIMITERS) if self.config.use_2way else {}
        loader = FileSystemLoader(tf.base_dir, encoding=tf.encoding) if tf.base_dir else None
        cache_size = tf.cache_size if tf.cache_enabled else 0
        self.env = Environment(
            loader=loader,
            autoescape=False,
            keep_trailing_newline=True,
            extensions=[SqlDirectiveExtension],
            cache_size=cache_size,
            auto_reload=tf.auto_reload,
            **options,
        )
        self.env.context_class = ParameterContext
        self.env.code_generator_class = DeferredNameCodeGenerator
        self.env.sqlweave_directive_prefix = self.config.dialect.prefix
        self._inline = CompiledCache(cache_size)

        if self.config.customizer:
            load_customizer(self.config.customizer)(self.env)
        if customizer is not None:
            customizer(self.env)

    def is_template_file(self, name: str) -> bool:
        # inline SQL always contains whitespace, template names never do
        if self.env.loader is None or any(c.isspace() for c in name):
            return False
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.config.template_file.patterns)

    def get_template(self, source_or_name: str) -> Template:
        """
        Return the compiled template for a file name matching the configured
        patterns, otherwise compile *source_or_name* as inline SQL.
        """
        if self.is_template_file(source_or_name):
            return self.env.get_template(source_or_name)
        return self._inline.get_or_compile(source_or_name, self.env.from_string)

    def list_templates(self, filter_func=None) -> list[str]:
        """
        List file templates visible through the loader.
        Only names matching ``template_file.patterns`` are returned.
        Optionally, apply a filter_func(name) to further filter template names.
        """
        if self.env.loader is None:
            return []
        templates = self.env.list_templates(
            filter_func=lambda n: any(fnmatch.fnmatch(n, p) for p in self.config.template_file.patterns)
        )
        if filter_func:
            templates = [name for name in templates if filter_func(name)]
        return templates
