"""Component tests: props, attributes, slots, resolution and isolation."""

from __future__ import annotations

import pytest

from sigil import DictLoader, Environment, FileSystemLoader, render_context
from sigil.environment.exceptions import (
    ErrorCode,
    TemplateNotFoundError,
    TemplateRuntimeError,
    UndefinedError,
)

from .conftest import TEMPLATES


def make_env(**kwargs) -> tuple[Environment, dict[str, str]]:
    templates = dict(TEMPLATES)
    return Environment(loader=DictLoader(templates), **kwargs), templates


def render(source: str, data=None, **extra_templates: str) -> str:
    env, templates = make_env()
    templates.update({name.replace("__", "."): src for name, src in extra_templates.items()})
    return env.from_string(source).render(data or {})


class TestProps:
    def test_defaults(self):
        assert render("<x-button>Save</x-button>") == (
            '<button type="button" class="btn btn-primary">Save</button>'
        )

    def test_attributes_override_defaults(self):
        output = render('<x-button type="submit" :variant="kind">Go</x-button>', {"kind": "danger"})
        assert output == '<button type="submit" class="btn btn-danger">Go</button>'

    def test_falsy_value_overrides_default(self):
        output = render('<x-button :variant="None">Go</x-button>')
        assert 'class="btn btn-"' in output

    def test_list_props_default_to_none(self):
        output = render(
            "<x-tag/>",
            components__tag="@props(['label'])[{{ label }}]",
        )
        assert output == "[]"

    def test_component_without_props_sees_all_attributes(self):
        assert render('<x-alert message="Saved"/>') == '<div class="alert">Saved</div>'


class TestAttributes:
    def test_non_props_go_to_attribute_bag(self):
        output = render('<x-card title="T" id="main">Body</x-card>')
        assert output == '<div class="card" id="main"><h2>T</h2>Body</div>'

    def test_class_merges_with_defaults(self):
        output = render('<x-card class="wide card">x</x-card>')
        assert output.startswith('<div class="card wide">')

    def test_attribute_kinds(self):
        output = render(
            '<x-attrs id="main" data-x="{{ v }}" raw="{!! v !!}" '
            'label="n={{ n }}" :count="n" disabled/>',
            {"v": "<b>", "n": 3},
            components__attrs="{{ attributes }}",
        )
        assert output == (
            'id="main" data-x="&lt;b&gt;" raw="&lt;b&gt;" label="n=3" count="3" disabled'
        )

    def test_bound_value_keeps_type(self):
        output = render(
            '<x-typed :items="[1, 2]"/>',
            components__typed="@props({'items': []}){{ len(items) }}",
        )
        assert output == "2"

    def test_attributes_only_and_exclude(self):
        output = render(
            '<x-pick id="a" data-role="r" title="t"/>',
            components__pick="[{{ attributes.only('data-*') }}][{{ attributes.exclude(['id']) }}]",
        )
        assert output == '[data-role="r"][data-role="r" title="t"]'

    def test_bound_attribute_value_is_escaped(self):
        output = render(
            '<x-tip :title="evil"/>',
            {"evil": '"><script>alert(1)</script>'},
            components__tip="<span title=\"{{ attributes.get('title') }}\">"
            "{{ attributes.get('title') }}</span>",
        )
        assert "<script>" not in output
        assert output == (
            '<span title="&quot;&gt;&lt;script&gt;alert(1)&lt;/script&gt;">'
            "&quot;&gt;&lt;script&gt;alert(1)&lt;/script&gt;</span>"
        )

    def test_literal_attribute_value_is_escaped(self):
        output = render(
            '<x-tip title="<i>x</i>"/>',
            components__tip="<b>{{ attributes.get('title') }}</b>",
        )
        assert output == "<b>&lt;i&gt;x&lt;/i&gt;</b>"

    def test_attribute_bag_renders_as_markup(self):
        output = render(
            '<x-tip title="a&b"/>',
            components__tip="<p {{ attributes }}></p>",
        )
        assert output == '<p title="a&amp;b"></p>'


class TestSlots:
    def test_default_slot(self):
        assert "Body" in render("<x-card>Body</x-card>")

    def test_named_slot(self):
        output = render(
            '<x-card title="T"><x-slot:footer>Foot {{ who }}</x-slot:footer>Body</x-card>',
            {"who": "me"},
        )
        assert output == '<div class="card"><h2>T</h2>Body<footer>Foot me</footer></div>'

    def test_slot_directive_and_name_attribute(self):
        for source in (
            "<x-card>@slot('footer')F @endslot</x-card>",
            '<x-card><x-slot name="footer">F</x-slot></x-card>',
        ):
            assert "<footer>F" in render(source)

    def test_whitespace_only_slot_is_absent(self):
        output = render("<x-card><x-slot:footer>   </x-slot:footer></x-card>")
        assert "<footer>" not in output

    def test_slot_sees_caller_scope(self):
        output = render(
            "@set(x = 'caller')<x-show>{{ x }}</x-show>",
            components__show="@props({'x': 'component'})[{{ x }}|{{ slot }}]",
        )
        assert output == "[component|caller]"

    def test_slot_snapshot_taken_where_written(self):
        output = render(
            "@set(x = 1)<x-show>{{ x }}</x-show>@set(x = 2){{ x }}",
            components__show="{{ slot }}",
        )
        assert output == "12"

    def test_slot_rendered_once(self):
        calls = []

        def tick():
            calls.append(1)
            return len(calls)

        output = render(
            "<x-twice>{{ tick() }}</x-twice>",
            {"tick": tick},
            components__twice="{{ slot }}{{ slot }}",
        )
        assert output == "11"
        assert calls == [1]

    def test_unused_slot_never_rendered(self):
        output = render(
            "<x-ignore>{{ missing_name }}</x-ignore>",
            components__ignore="nothing",
        )
        assert output == "nothing"

    def test_slot_content_not_escaped_twice(self):
        output = render("<x-card><b>{{ v }}</b></x-card>", {"v": "<i>"})
        assert "<b>&lt;i&gt;</b>" in output

    def test_slots_get_with_fallback(self):
        output = render(
            "<x-fallback/>",
            components__fallback="{{ slots.get('header', 'No header') }}",
        )
        assert output == "No header"

    def test_slot_named_like_method_read_by_key(self):
        output = render(
            "<x-menu><x-slot:render>R</x-slot:render></x-menu>",
            components__menu="[{{ slots['render'] }}]",
        )
        assert output == "[R]"


class TestResolution:
    def test_components_directory_before_layouts(self):
        assert render('<x-alert message="m"/>') == '<div class="alert">m</div>'

    def test_falls_back_to_later_directories(self):
        assert render('<x-nav title="Menu"/>') == "<nav>Menu</nav>"

    def test_dotted_component_name(self):
        output = render('<x-forms.input name="q"/>', **{"components__forms__input": "[{{ name }}]"})
        assert output == "[q]"

    def test_missing_component_lists_candidates(self):
        env, _ = make_env()
        with pytest.raises(TemplateNotFoundError) as exc_info:
            env.from_string("<x-missing/>").render()
        error = exc_info.value
        assert error.name == "missing"
        assert list(error.candidates) == [
            "components.missing",
            "layouts.missing",
            "partials.missing",
        ]
        assert "components.missing" in str(error)

    def test_missing_component_lists_file_paths(self, tmp_templates):
        tmp_templates.write("pages.home", "<x-missing/>")
        env = Environment(loader=FileSystemLoader(tmp_templates.root))
        with pytest.raises(TemplateNotFoundError) as exc_info:
            env.render("pages.home")
        error = exc_info.value
        assert list(error.candidates) == [
            str(tmp_templates.path(f"{directory}.missing"))
            for directory in ("components", "layouts", "partials")
        ]
        assert str(tmp_templates.path("components.missing")) in str(error)

    def test_custom_component_paths(self):
        env = Environment(
            loader=DictLoader({"ui.badge": "<span>{{ slot }}</span>"}),
            component_paths=("ui",),
        )
        assert env.from_string("<x-badge>1</x-badge>").render() == "<span>1</span>"


class TestIsolation:
    def test_caller_variables_not_visible(self):
        with pytest.raises(UndefinedError) as exc_info:
            render("<x-peek/>", {"user": "ada"}, components__peek="{{ user }}")
        assert exc_info.value.name == "user"

    def test_component_set_does_not_leak(self):
        output = render(
            "@set(x = 'outer')<x-setter/>{{ x }}",
            components__setter="@set(x = 'inner')",
        )
        assert output == "outer"

    def test_globals_visible_in_component(self):
        env = Environment(
            loader=DictLoader({"components.site": "{{ site_name }}"}),
            globals={"site_name": "Sigil"},
        )
        assert env.from_string("<x-site/>").render() == "Sigil"

    def test_scope_and_output_restored_after_error(self):
        env, templates = make_env()
        templates["components.boom"] = "before {{ 1 // 0 }}"
        template = env.from_string("<x-boom/>")
        with render_context(env, {"a": 1}) as rc:
            with pytest.raises(TemplateRuntimeError):
                template.execute(rc)
            assert rc.scopes.depth == 1
            assert rc.output.depth == 1
            assert rc.scopes.current() == {"a": 1}

    def test_runtime_error_names_component(self):
        env, templates = make_env()
        templates["components.boom"] = "ok\n{{ 1 // 0 }}"
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.from_string("<x-boom/>", name="pages.test").render()
        error = exc_info.value
        assert error.template_name == "components.boom"
        assert error.lineno == 2
        assert "ZeroDivisionError" in str(error) or "division" in str(error)
        assert isinstance(error.__cause__, ZeroDivisionError)

    def test_recursive_component_hits_depth_limit(self):
        env, templates = make_env(max_include_depth=5)
        templates["components.loop"] = "<x-loop/>"
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.from_string("<x-loop/>").render()
        assert exc_info.value.code is ErrorCode.INCLUDE_DEPTH

    def test_nested_components(self):
        output = render(
            "<x-outer><x-inner>{{ word }}</x-inner></x-outer>",
            {"word": "deep"},
            components__outer="<o>{{ slot }}</o>",
            components__inner="<i>{{ slot }}</i>",
        )
        assert output == "<o><i>deep</i></o>"
