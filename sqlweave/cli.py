"""
Command-line interface for sqlweave: render a SQL template with parameters.
"""
import argparse
import json
import os
import sys

from jinja2 import TemplateError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sqlweave.config.loader import apply_overrides, load_config, load_default_config, read_structured_file
from sqlweave.engines.template import SqlTemplateEngine
from sqlweave.utils.logging import configure_logging
from sqlweave.validations.exceptions import ConfigurationError, SqlWeaveError


def _parse_overrides(pairs):
    overrides = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key.strip():
            raise ConfigurationError(f"--set expects KEY=VALUE, got '{pair}'")
        overrides[key.strip()] = value
    return overrides


def _bindings_table(bindings: dict) -> Table:
    table = Table(title="Custom bind variables")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    table.add_column("Type", style="dim")
    for name, value in bindings.items():
        table.add_row(name, repr(value), type(value).__name__)
    return table


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sqlweave", description="Render a 2-way SQL template into bind-variable SQL")
    parser.add_argument("--template", "-t", required=True, help="Path to the SQL template file")
    parser.add_argument("--params", "-p", default=None, help="YAML/JSON file holding the parameter object")
    parser.add_argument("--config", "-c", default=None, help="Path to configuration YAML/JSON file")
    parser.add_argument("--set", dest="overrides", action="append", metavar="KEY=VALUE",
                        help="Override a configuration key, e.g. dialect.named-parameter.prefix=:")
    parser.add_argument("--json", action="store_true", help="Print {\"sql\", \"bindings\"} as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose (DEBUG) console output")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()
    err_console = Console(stderr=True)

    try:
        config = load_config(args.config) if args.config else load_default_config()
        overrides = _parse_overrides(args.overrides)
        if overrides:
            config = apply_overrides(config, overrides)
        configure_logging(config.logging, verbose=args.verbose)

        parameter = None
        if args.params:
            parameter, _ = read_structured_file(args.params)

        if not os.path.isfile(args.template):
            raise ConfigurationError(f"Template file not found: {args.template}")
        with open(args.template, 'r', encoding=config.template_file.encoding) as f:
            template = f.read()

        engine = SqlTemplateEngine(config)
        bindings = {}
        sql = engine.process(template, parameter, bindings)
    except (SqlWeaveError, TemplateError, OSError) as e:
        err_console.print(f"[bold red]error:[/bold red] {escape(str(e))}", highlight=False)
        return 1

    if args.json:
        print(json.dumps({"sql": sql, "bindings": bindings}, default=str, indent=2))
        return 0

    print(sql)
    if bindings:
        console.print(_bindings_table(bindings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
