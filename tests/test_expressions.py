"""Expression evaluators: validation, name rewriting and host evaluators."""

from __future__ import annotations

import pytest

from sigil import CallableEvaluator, Environment, ExpressionEvaluator, PythonEvaluator
from sigil.compiler.expressions import is_safe_shape
from sigil.environment.exceptions import ErrorCode, TemplateSyntaxError
from sigil.nodes import Expression


def expr(source: str) -> Expression:
    return Expression(source, 1)


class TestPythonEvaluator:
    def test_free_names_become_lookups(self):
        assert PythonEvaluator().to_source(expr("user")) == "_lookup(_rc, 'user')"

    def test_attributes_become_getattr(self):
        assert (
            PythonEvaluator().to_source(expr("user.name"))
            == "_getattr(_lookup(_rc, 'user'), 'name')"
        )

    def test_comprehension_targets_stay_local(self):
        source = PythonEvaluator().to_source(expr("[x for x in items if x > limit]"))
        assert "_lookup(_rc, 'items')" in source
        assert "_lookup(_rc, 'limit')" in source
        assert "_lookup(_rc, 'x')" not in source

    def test_lambda_arguments_stay_local(self):
        source = PythonEvaluator().to_source(expr("lambda a, *rest: a + offset"))
        assert "_lookup(_rc, 'a')" not in source
        assert "_lookup(_rc, 'offset')" in source

    @pytest.mark.parametrize(
        "source",
        [
            "user.__class__",
            "(x := 1)",
            "await thing",
            "(yield)",
        ],
    )
    def test_rejected_constructs(self, source):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            PythonEvaluator().compile(expr(source))
        assert exc_info.value.code is ErrorCode.INVALID_EXPRESSION

    def test_invalid_syntax(self):
        with pytest.raises(TemplateSyntaxError, match="Invalid expression"):
            PythonEvaluator().compile(expr("1 +"))

    def test_error_located_in_template(self):
        env = Environment()
        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.from_string("ok\n{{ obj.__dict__ }}", name="pages.home")
        error = exc_info.value
        assert error.name == "pages.home"
        assert error.lineno == 2
        assert error.code is ErrorCode.INVALID_EXPRESSION

    def test_walrus_suggests_set(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            PythonEvaluator().compile(expr("(n := 2)"))
        assert "@set" in exc_info.value.suggestion

    def test_satisfies_protocol(self):
        assert isinstance(PythonEvaluator(), ExpressionEvaluator)


class TestCallableEvaluator:
    def test_receives_source_and_bindings(self):
        seen = []

        def evaluate(source, bindings):
            seen.append(source)
            return bindings[source.strip()]

        env = Environment(evaluator=CallableEvaluator(evaluate), globals={"site": "S"})
        assert env.from_string("{{ title }}-{{ site }}").render(title="T") == "T-S"
        assert [s.strip() for s in seen] == ["title", "site"]

    def test_bindings_include_safe_builtins(self):
        env = Environment(evaluator=CallableEvaluator(lambda s, b: b["len"]("abc")))
        assert env.from_string("{{ anything }}").render() == "3"

    def test_used_for_control_flow(self):
        env = Environment(evaluator=CallableEvaluator(lambda s, b: b[s.strip()]))
        source = "@if(show)@foreach(items as item){{ item }}@endforeach @endif"
        assert env.from_string(source).render(show=True, items=[1, 2]).strip() == "12"

    def test_output_still_escaped(self):
        env = Environment(evaluator=CallableEvaluator(lambda s, b: "<b>"))
        assert env.from_string("{{ x }}").render() == "&lt;b&gt;"

    def test_repr(self):
        assert repr(CallableEvaluator(len)).startswith("CallableEvaluator(")


class TestSafeShapes:
    @pytest.mark.parametrize(
        ("source", "safe"),
        [
            ("slot", True),
            (" slots ", True),
            ("attributes", True),
            ("slots.footer", False),
            ("slots['footer']", False),
            ("attributes.get('title')", False),
            ("slot.render()", False),
            ("slotted", False),
            ("user.slot", False),
        ],
    )
    def test_is_safe_shape(self, source, safe):
        assert is_safe_shape(source) is safe

    def test_container_name_bound_to_plain_data_is_escaped(self, env):
        source = "{{ attributes }}|{{ slot }}"
        output = env.from_string(source).render(attributes="<a>", slot="<s>")
        assert output == "&lt;a&gt;|&lt;s&gt;"
