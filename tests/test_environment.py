"""Environment tests: loading, caching, reload and loaders."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from sigil import ChoiceLoader, DictLoader, Environment, FileSystemLoader, Loader
from sigil.environment.exceptions import TemplateNotFoundError, TemplateSyntaxError


@pytest.fixture
def site(tmp_templates):
    tmp_templates.write("layouts.base", "<html>@yield('content')</html>")
    tmp_templates.write(
        "pages.home", "@extends('layouts.base')@section('content')Hi {{ name }}@endsection"
    )
    tmp_templates.write(
        "components.badge", "@props({'tone': 'info'})<span class=\"{{ tone }}\">{{ slot }}</span>"
    )
    tmp_templates.write("pages.badge", "<x-badge>new</x-badge>")
    return tmp_templates


def make_env(site, tmp_path, **kwargs) -> Environment:
    return Environment(FileSystemLoader(site.root), cache_dir=tmp_path / "cache", **kwargs)


class TestRendering:
    def test_render_by_name(self, site, tmp_path):
        env = make_env(site, tmp_path)
        assert env.render("pages.home", {"name": "Ada"}) == "<html>Hi Ada</html>"

    def test_get_template_render(self, site, tmp_path):
        env = make_env(site, tmp_path)
        template = env.get_template("pages.badge")
        assert template.name == "pages.badge"
        assert template.filename.endswith("badge.sigil.html")
        assert template.render() == '<span class="info">new</span>'

    def test_missing_template(self, site, tmp_path):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            make_env(site, tmp_path).render("pages.nope")
        assert exc_info.value.candidates == (str(site.path("pages.nope")),)

    def test_no_loader(self, env):
        with pytest.raises(TemplateNotFoundError, match="no loader"):
            env.render("pages.home")

    def test_syntax_error_names_file(self, site, tmp_path):
        site.write("pages.broken", "ok\n@if(x)\n")
        with pytest.raises(TemplateSyntaxError) as exc_info:
            make_env(site, tmp_path).render("pages.broken")
        error = exc_info.value
        assert error.filename == str(site.path("pages.broken"))
        assert error.lineno == 2

    def test_meta_is_per_render(self, site, tmp_path):
        site.write("pages.token", "@csrf")
        env = make_env(site, tmp_path)
        first = env.render("pages.token", meta={"csrf_token": "one"})
        second = env.render("pages.token", meta={"csrf_token": "two"})
        assert 'value="one"' in first
        assert 'value="two"' in second

    def test_concurrent_renders_are_independent(self, site, tmp_path):
        env = make_env(site, tmp_path)
        env.get_template("pages.home")
        names = [f"user{i}" for i in range(40)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda n: env.render("pages.home", {"name": n}), names))
        assert results == [f"<html>Hi {n}</html>" for n in names]

    def test_list_templates(self, site, tmp_path):
        assert make_env(site, tmp_path).list_templates() == [
            "components.badge",
            "layouts.base",
            "pages.badge",
            "pages.home",
        ]

    def test_compile_to_source(self, site, tmp_path):
        source = make_env(site, tmp_path).compile_to_source("pages.home")
        assert "__compiled_from__" in source
        assert "def render(_rc):" in source
        assert "home.sigil.html" in source


class TestMemoryCache:
    def test_second_render_is_a_memory_hit(self, site, tmp_path):
        env = make_env(site, tmp_path)
        env.render("pages.home", {"name": "a"})
        env.render("pages.home", {"name": "b"})
        assert env.cache_stats["compiles"] == 1
        assert env.cache_stats["memory_hits"] == 1

    def test_auto_reload_picks_up_changes(self, site, tmp_path):
        env = make_env(site, tmp_path)
        assert env.render("pages.badge") == '<span class="info">new</span>'
        site.write("pages.badge", "<x-badge tone=\"warn\">changed</x-badge>")
        site.touch_later("pages.badge")
        assert env.render("pages.badge") == '<span class="warn">changed</span>'
        # pages.badge and components.badge, then pages.badge again
        assert env.cache_stats["compiles"] == 3

    def test_layout_change_invalidates_child(self, site, tmp_path):
        env = make_env(site, tmp_path)
        env.render("pages.home", {"name": "x"})
        site.write("layouts.base", "<body>@yield('content')</body>")
        site.touch_later("layouts.base")
        assert env.render("pages.home", {"name": "x"}) == "<body>Hi x</body>"

    def test_component_change_seen_on_next_render(self, site, tmp_path):
        env = make_env(site, tmp_path)
        env.render("pages.badge")
        site.write("components.badge", "<b>{{ slot }}</b>")
        site.touch_later("components.badge")
        assert env.render("pages.badge") == "<b>new</b>"

    def test_without_auto_reload_changes_are_ignored(self, site, tmp_path):
        env = make_env(site, tmp_path, auto_reload=False)
        env.render("pages.badge")
        site.write("pages.badge", "changed")
        site.touch_later("pages.badge")
        assert env.render("pages.badge") == '<span class="info">new</span>'

    def test_deleted_dependency_forces_reload(self, site, tmp_path):
        env = make_env(site, tmp_path)
        env.render("pages.home", {"name": "x"})
        site.path("layouts.base").unlink()
        with pytest.raises(TemplateNotFoundError):
            env.render("pages.home", {"name": "x"})


class TestDiskCache:
    def test_artifact_written_per_template(self, site, tmp_path):
        env = make_env(site, tmp_path)
        env.render("pages.home", {"name": "x"})
        assert (tmp_path / "cache" / "pages" / "home.sigilc").is_file()
        assert env.cache_dir == tmp_path / "cache"

    def test_new_environment_loads_from_disk(self, site, tmp_path):
        make_env(site, tmp_path).render("pages.home", {"name": "x"})
        env = make_env(site, tmp_path)
        assert env.render("pages.home", {"name": "y"}) == "<html>Hi y</html>"
        assert env.cache_stats["disk_hits"] == 1
        assert env.cache_stats["compiles"] == 0

    def test_props_survive_disk_cache(self, site, tmp_path):
        make_env(site, tmp_path).render("pages.badge")
        env = make_env(site, tmp_path)
        assert env.render("pages.badge") == '<span class="info">new</span>'
        assert env.get_template("components.badge").props == {"tone": "info"}
        assert env.cache_stats["compiles"] == 0

    def test_stale_artifact_is_recompiled(self, site, tmp_path):
        make_env(site, tmp_path).render("pages.home", {"name": "x"})
        site.write("layouts.base", "<main>@yield('content')</main>")
        site.touch_later("layouts.base")
        env = make_env(site, tmp_path)
        assert env.render("pages.home", {"name": "x"}) == "<main>Hi x</main>"
        assert env.cache_stats["disk_hits"] == 0
        assert env.cache_stats["compiles"] == 1

    def test_corrupt_artifact_is_replaced(self, site, tmp_path):
        env = make_env(site, tmp_path)
        env.render("pages.home", {"name": "x"})
        (tmp_path / "cache" / "pages" / "home.sigilc").write_bytes(b"garbage")
        fresh = make_env(site, tmp_path)
        assert fresh.render("pages.home", {"name": "x"}) == "<html>Hi x</html>"
        assert fresh.cache_stats["compiles"] == 1

    def test_clear_cache_removes_artifacts(self, site, tmp_path):
        env = make_env(site, tmp_path)
        env.render("pages.home", {"name": "x"})
        env.clear_cache()
        assert not list((tmp_path / "cache").rglob("*.sigilc"))
        env.render("pages.home", {"name": "x"})
        assert env.cache_stats["compiles"] == 2

    def test_disk_hit_is_logged(self, site, tmp_path, caplog):
        make_env(site, tmp_path).render("pages.home", {"name": "x"})
        with caplog.at_level(logging.DEBUG, logger="sigil"):
            make_env(site, tmp_path).render("pages.home", {"name": "x"})
        assert "from disk cache" in caplog.text

    def test_in_memory_only(self, site):
        env = Environment(FileSystemLoader(site.root))
        assert env.cache_dir is None
        assert env.render("pages.home", {"name": "m"}) == "<html>Hi m</html>"


class TestLoaders:
    def test_filesystem_search_order(self, tmp_path):
        first, second = tmp_path / "custom", tmp_path / "default"
        for root, text in ((first, "custom"), (second, "default")):
            (root / "partials").mkdir(parents=True)
            (root / "partials" / "nav.sigil.html").write_text(text)
        (second / "partials" / "footer.sigil.html").write_text("footer")
        loader = FileSystemLoader([first, second])
        assert loader.get_source("partials.nav")[0] == "custom"
        assert loader.get_source("partials.footer")[0] == "footer"
        assert loader.has_source("partials.footer")
        assert not loader.has_source("partials.header")

    def test_filesystem_rejects_malformed_names(self, tmp_path):
        loader = FileSystemLoader(tmp_path)
        assert loader.candidates("a..b") == []
        assert not loader.has_source("../etc")

    def test_custom_extension(self, tmp_path):
        (tmp_path / "mail.txt").write_text("Dear {{ name }}")
        env = Environment(FileSystemLoader(tmp_path, extension=".txt"))
        assert env.render("mail", {"name": "Ada"}) == "Dear Ada"

    def test_dict_loader_suggestion(self):
        loader = DictLoader({"pages.home": "x"})
        with pytest.raises(TemplateNotFoundError, match="Did you mean 'pages.home'"):
            loader.get_source("pages.hom")

    def test_dict_loader_fingerprint_tracks_source(self):
        mapping = {"a": "one"}
        loader = DictLoader(mapping)
        before = loader.get_fingerprint("a")
        mapping["a"] = "two"
        assert loader.get_fingerprint("a") != before

    def test_choice_loader(self):
        custom = DictLoader({"partials.nav": "<nav>Custom</nav>"})
        default = DictLoader(
            {"partials.nav": "<nav>Default</nav>", "partials.footer": "<footer>Default</footer>"}
        )
        env = Environment(loader=ChoiceLoader([custom, default]))
        assert env.render("partials.nav") == "<nav>Custom</nav>"
        assert env.render("partials.footer") == "<footer>Default</footer>"
        assert env.list_templates() == ["partials.footer", "partials.nav"]

    def test_choice_loader_collects_candidates(self, tmp_path):
        loader = ChoiceLoader([DictLoader({}), FileSystemLoader(tmp_path)])
        with pytest.raises(TemplateNotFoundError) as exc_info:
            loader.get_source("pages.x")
        candidates = exc_info.value.candidates
        assert candidates[0] == "pages.x"
        assert candidates[1].endswith("x.sigil.html")

    @pytest.mark.parametrize(
        "loader",
        [DictLoader({}), FileSystemLoader("."), ChoiceLoader([])],
    )
    def test_builtin_loaders_satisfy_protocol(self, loader):
        assert isinstance(loader, Loader)
