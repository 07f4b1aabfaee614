"""
Load and parse sqlweave configuration files into Pydantic models.
"""
import json
import os
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from sqlweave.config.schema import EngineConfig
from sqlweave.validations.exceptions import ConfigurationError

CONFIG_FILE_ENV = "SQLWEAVE_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "sqlweave.yaml"

_TAB_NOTE = (
    "\nThe file contained tab characters which often break YAML indentation. "
    "Replace all tab characters with spaces (e.g. 2 or 4 spaces) and rerun."
)

# ---------------------------------------------------------------------------
# Structured file reader with *tab-sanitisation* helper
# ---------------------------------------------------------------------------


def read_structured_file(path: str) -> tuple[Any, bool]:
    """
    Read a YAML or JSON file and return ``(data, had_tabs)``.

    Used for both configuration files and CLI parameter files.
    """
    path_lower = path.lower()
    had_tabs = False  # YAML only

    if path_lower.endswith(('.yml', '.yaml')):
        with open(path, 'r', encoding='utf-8') as f:
            raw_text = f.read()

        had_tabs = '\t' in raw_text
        text_for_parser = raw_text.replace('\t', '  ') if had_tabs else raw_text

        try:
            data = yaml.safe_load(text_for_parser)
        except yaml.YAMLError as e:
            msg = f"Failed to parse YAML file '{path}': {e}"
            if had_tabs:
                msg += (
                    "\nNote: tab characters were detected and replaced with spaces "
                    "during parsing.  YAML relies on *space* indentation – "
                    "please convert tabs to spaces and try again."
                )
            raise ConfigurationError(msg) from e

    elif path_lower.endswith('.json'):
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Failed to parse JSON file '{path}': {e}") from e
    else:
        raise ConfigurationError('Unsupported file format, must be .yaml/.yml or .json')

    return data, had_tabs


def load_config(path: str) -> EngineConfig:
    """
    Load a YAML or JSON config file and parse into EngineConfig.
    """
    data, had_tabs = read_structured_file(path)
    if data is None:
        data = {}

    try:
        return EngineConfig.model_validate(data)
    except ValidationError as ve:
        msg = f"Invalid sqlweave configuration '{path}':\n{ve}"
        if had_tabs:
            msg += _TAB_NOTE
        raise ConfigurationError(msg) from ve


def load_default_config() -> EngineConfig:
    """
    Resolve the configuration used when none is passed explicitly.

    Order: the file named by ``$SQLWEAVE_CONFIG_FILE``, then ``sqlweave.yaml`` in
    the working directory, then built-in defaults.
    """
    path = os.environ.get(CONFIG_FILE_ENV)
    if path:
        if not os.path.isfile(path):
            raise ConfigurationError(f"{CONFIG_FILE_ENV} points to a missing file: {path}")
        return load_config(path)
    if os.path.isfile(DEFAULT_CONFIG_FILE):
        return load_config(DEFAULT_CONFIG_FILE)
    return EngineConfig()


# ---------------------------------------------------------------------------
# Dotted-key overrides (``dialect.named-parameter.prefix=:``)
# ---------------------------------------------------------------------------

def apply_overrides(config: EngineConfig, overrides: Mapping[str, Any]) -> EngineConfig:
    """
    Return a re-validated copy of *config* with dotted-path overrides applied.

    Values are converted by the pydantic field types, so ``"false"`` becomes
    ``False`` for a boolean option.
    """
    data = config.model_dump()
    for key, value in overrides.items():
        parts = [p.strip().replace('-', '_') for p in key.split('.')]
        target = data
        for part in parts[:-1]:
            child = target.get(part) if isinstance(target, dict) else None
            if not isinstance(child, dict):
                raise ConfigurationError(f"Unknown configuration key '{key}'")
            target = child
        if parts[-1] not in target:
            raise ConfigurationError(f"Unknown configuration key '{key}'")
        target[parts[-1]] = value

    try:
        return EngineConfig.model_validate(data)
    except ValidationError as ve:
        raise ConfigurationError(f"Invalid configuration override: {ve}") from ve
