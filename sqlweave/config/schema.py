"""
Pydantic models for sqlweave configuration with built-in validation.

Every key can be written with hyphens (``cache-enabled``) or underscores
(``cache_enabled``); unknown keys are rejected so typos surface at setup.
"""
import codecs
import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional


def _hyphenate(name: str) -> str:
    return name.replace('_', '-')


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=_hyphenate,
        populate_by_name=True,
        extra='forbid',
    )


# --- Placeholder formatting ---

class NamedParameterConfig(_Section):
    """Prefix/suffix wrapped around a bind-variable name, e.g. ``#{name}``."""
    model_config = ConfigDict(frozen=True)

    prefix: str = "#{"
    suffix: str = "}"

    def format(self, name: str) -> str:
        return f"{self.prefix}{name}{self.suffix}"


# --- Config sections ---

class DialectConfig(_Section):
    prefix: str = ""
    named_parameter: NamedParameterConfig = Field(default_factory=NamedParameterConfig)

    @field_validator('prefix')
    @classmethod
    def check_prefix_is_identifier_fragment(cls, v: str) -> str:
        if v and not re.fullmatch(r'[A-Za-z_][A-Za-z0-9_]*', v):
            raise ValueError(
                f"dialect.prefix '{v}' must start with a letter or underscore and "
                f"contain only letters, digits and underscores"
            )
        return v


class TemplateFileConfig(_Section):
    encoding: str = "utf-8"
    base_dir: Optional[str] = None
    patterns: List[str] = Field(default_factory=lambda: ["*.sql"])
    cache_enabled: bool = True
    cache_size: int = Field(default=400, ge=0)
    auto_reload: bool = True

    @field_validator('encoding')
    @classmethod
    def check_encoding_is_known(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown template file encoding '{v}'")
        return v

    @field_validator('patterns', mode='before')
    @classmethod
    def split_comma_separated_patterns(cls, v):
        # overrides arrive as "a.sql, b.sql"
        if isinstance(v, str):
            return [p.strip() for p in v.split(',') if p.strip()]
        return v


class LoggingConfig(_Section):
    level: str = "INFO"
    file: Optional[str] = None
    debug_file: Optional[str] = None
    sql_file: Optional[str] = None

    @field_validator('level')
    @classmethod
    def check_level_name(cls, v: str) -> str:
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown logging level '{v}'")
        return v.upper()


# --- Top-Level Engine Config ---

class EngineConfig(_Section):
    use_2way: bool = True
    customizer: Optional[str] = None
    template_file: TemplateFileConfig = Field(default_factory=TemplateFileConfig)
    dialect: DialectConfig = Field(default_factory=DialectConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('customizer')
    @classmethod
    def check_customizer_reference(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not re.fullmatch(r'[A-Za-z_][\w.]*([:.][A-Za-z_]\w*)', v):
            raise ValueError(
                f"customizer '{v}' must be an import path such as 'package.module:function'"
            )
        return v
