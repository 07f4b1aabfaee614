import pytest
from jinja2 import TemplateSyntaxError

from sqlweave.config.schema import EngineConfig
from sqlweave.sql.generator import SQLGenerator, load_customizer
from sqlweave.validations.exceptions import ConfigurationError


def make_config(tmp_path=None, **template_file):
    if tmp_path is not None:
        template_file.setdefault("base_dir", str(tmp_path))
    return EngineConfig(template_file=template_file)


def test_no_autoescape(tmp_path):
    # Create a simple SQL template containing special HTML-like characters
    (tmp_path / "test.sql").write_text("SELECT '<tag>' AS col;")
    gen = SQLGenerator(make_config(tmp_path))
    rendered = gen.get_template("test.sql").render({})
    # Ensure that '<tag>' is not escaped
    assert "<tag>" in rendered


def test_list_templates_filters(tmp_path):
    # Create several files, only *.sql should be listed
    for name in ["a.sql", "b.sql", "c.txt"]:
        (tmp_path / name).write_text("")
    gen = SQLGenerator(make_config(tmp_path))
    all_templates = gen.list_templates()
    assert 'a.sql' in all_templates and 'b.sql' in all_templates
    assert 'c.txt' not in all_templates

    # Test filter_func argument
    filtered = gen.list_templates(filter_func=lambda n: n.startswith('b'))
    assert filtered == ['b.sql']


def test_list_templates_without_base_dir():
    assert SQLGenerator(EngineConfig()).list_templates() == []


def test_custom_patterns(tmp_path):
    for name in ["a.sql", "b.tsql"]:
        (tmp_path / name).write_text("SELECT 1")
    gen = SQLGenerator(make_config(tmp_path, patterns="*.tsql"))
    assert gen.list_templates() == ["b.tsql"]
    assert gen.is_template_file("b.tsql")
    assert not gen.is_template_file("a.sql")


def test_inline_sql_is_never_a_file_name(tmp_path):
    (tmp_path / "x.sql").write_text("SELECT 1")
    gen = SQLGenerator(make_config(tmp_path))
    assert gen.is_template_file("x.sql")
    assert not gen.is_template_file("SELECT * FROM x.sql")
    assert gen.get_template("SELECT 2").render() == "SELECT 2"


def test_two_way_delimiters():
    gen = SQLGenerator(EngineConfig())
    tpl = gen.get_template("SELECT 1 /*% if x %*/WHERE x = /*{{ x }}*/0/*% endif %*//*# note #*/")
    assert tpl.render(x=5) == "SELECT 1 WHERE x = 50"
    assert tpl.render(x=0) == "SELECT 1 "


def test_stock_delimiters_when_two_way_disabled():
    gen = SQLGenerator(EngineConfig(use_2way=False))
    assert gen.get_template("SELECT {{ x }}{% if y %} y{% endif %}").render(x=1, y=True) == "SELECT 1 y"
    # comment-style markers are plain text here
    assert gen.get_template("/*% x %*/").render() == "/*% x %*/"


def test_inline_templates_are_cached():
    gen = SQLGenerator(EngineConfig())
    assert gen.get_template("SELECT 1") is gen.get_template("SELECT 1")


def test_inline_cache_disabled():
    gen = SQLGenerator(make_config(cache_enabled=False))
    assert gen.get_template("SELECT 1") is not gen.get_template("SELECT 1")


def test_syntax_error_is_raised():
    gen = SQLGenerator(EngineConfig())
    with pytest.raises(TemplateSyntaxError):
        gen.get_template("SELECT /*% if x %*/1")


def test_customizer_callable_is_applied():
    def add_filter(env):
        env.filters["shout"] = lambda s: s.upper()

    gen = SQLGenerator(EngineConfig(), customizer=add_filter)
    assert gen.get_template("/*{{ 'abc' | shout }}*/").render() == "ABC"


def test_customizer_reference_from_config(tmp_path, monkeypatch):
    (tmp_path / "my_customizers.py").write_text(
        "def add_globals(env):\n"
        "    env.globals['schema'] = 'sales'\n"
        "\n"
        "class AddTests:\n"
        "    def __call__(self, env):\n"
        "        env.globals['table'] = 'orders'\n"
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    gen = SQLGenerator(EngineConfig(customizer="my_customizers:add_globals"))
    assert gen.get_template("/*{{ schema }}*/").render() == "sales"

    # classes are instantiated, dotted form accepted
    gen = SQLGenerator(EngineConfig(customizer="my_customizers.AddTests"))
    assert gen.get_template("/*{{ table }}*/").render() == "orders"


def test_load_customizer_errors():
    with pytest.raises(ConfigurationError):
        load_customizer("sqlweave_no_such_module:fn")
    with pytest.raises(ConfigurationError):
        load_customizer("sqlweave.sql.generator:no_such_attr")
    with pytest.raises(ConfigurationError):
        load_customizer("sqlweave.sql.generator:TWO_WAY_DELIMITERS")
