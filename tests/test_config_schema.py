import pytest
from pydantic import ValidationError

from sqlweave.config.schema import (
    DialectConfig,
    EngineConfig,
    LoggingConfig,
    NamedParameterConfig,
    TemplateFileConfig,
)


def test_defaults():
    cfg = EngineConfig()
    assert cfg.use_2way is True
    assert cfg.customizer is None
    assert cfg.template_file.encoding == "utf-8"
    assert cfg.template_file.base_dir is None
    assert cfg.template_file.patterns == ["*.sql"]
    assert cfg.template_file.cache_enabled is True
    assert cfg.dialect.prefix == ""
    assert cfg.dialect.named_parameter.format("id") == "#{id}"
    assert cfg.logging.level == "INFO"


def test_hyphenated_keys_are_accepted():
    cfg = EngineConfig.model_validate({
        "use-2way": False,
        "template-file": {"base-dir": "sql", "cache-enabled": False},
        "dialect": {"named-parameter": {"prefix": ":", "suffix": ""}},
    })
    assert cfg.use_2way is False
    assert cfg.template_file.base_dir == "sql"
    assert cfg.template_file.cache_enabled is False
    assert cfg.dialect.named_parameter.format("id") == ":id"


def test_unknown_key_rejected():
    with pytest.raises(ValidationError):
        EngineConfig.model_validate({"template-fil": {}})
    with pytest.raises(ValidationError):
        TemplateFileConfig(cache_ttl=10)


def test_named_parameter_is_frozen():
    npc = NamedParameterConfig()
    with pytest.raises(ValidationError):
        npc.prefix = ":"


def test_invalid_dialect_prefix():
    # dialect prefix must be usable as the start of a tag name
    with pytest.raises(ValidationError):
        DialectConfig(prefix="1bad")
    with pytest.raises(ValidationError):
        DialectConfig(prefix="mb-")
    assert DialectConfig(prefix="mb_").prefix == "mb_"


def test_unknown_encoding_rejected():
    with pytest.raises(ValidationError):
        TemplateFileConfig(encoding="no-such-codec")


def test_patterns_from_comma_string():
    assert TemplateFileConfig(patterns="*.sql, *.tsql").patterns == ["*.sql", "*.tsql"]


def test_negative_cache_size_rejected():
    with pytest.raises(ValidationError):
        TemplateFileConfig(cache_size=-1)


def test_logging_level_normalised():
    assert LoggingConfig(level="debug").level == "DEBUG"
    with pytest.raises(ValidationError):
        LoggingConfig(level="LOUD")


def test_customizer_reference_format():
    assert EngineConfig(customizer=" pkg.mod:fn ").customizer == "pkg.mod:fn"
    assert EngineConfig(customizer="pkg.mod.fn").customizer == "pkg.mod.fn"
    with pytest.raises(ValidationError):
        EngineConfig(customizer="not a path")
    with pytest.raises(ValidationError):
        EngineConfig(customizer="module_only")
