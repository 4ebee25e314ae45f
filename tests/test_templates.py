import logging
from pathlib import Path

import pytest

from conftest import text_layer, write_yaml
from tcg_cardgen.errors import (
    BaseTemplateNotFoundError,
    CyclicTemplateError,
    TemplateNotFoundError,
    TemplateParseError,
)
from tcg_cardgen.templates import Layer, Template, TemplateResolver, merge_templates

BASE = {
    "name": "Base",
    "tcg": "mtg",
    "version": "1.0",
    "dimensions": {"width": 100, "height": 140, "dpi": 300},
    "required_fields": ["card.tcg"],
    "optional_fields": {"size.body": 10, "size.title": 20},
    "style_tokens": {"ink": "#000000"},
    "icons": {"R": "r.png"},
    "layers": [
        {"name": "art", "type": "image", "source": "{{card.artwork}}", "fit_mode": "fill",
         "region": {"x": 0, "y": 0, "width": 100, "height": 60}},
        text_layer("title", "{{card.title}}"),
    ],
}

MIDDLE = {
    "name": "Middle",
    "tcg": "mtg",
    "extends": "./base.yaml",
    "required_fields": ["card.title", "card.tcg"],
    "optional_fields": {"size.body": 12},
    "overrides": [{"layer": "title", "content": "** {{card.title}} **"}],
    "layers": [text_layer("rules", "{{card.body}}")],
}

TOP = {
    "name": "Top",
    "tcg": "mtg",
    "extends": "./middle.yaml",
    "style_tokens": {"ink": "#333333"},
    "overrides": [{"layer": "art", "fit_mode": "fit"}],
    "additional_layers": [text_layer("badge", "*promo*")],
}


def write_chain(directory: Path) -> None:
    write_yaml(directory / "base.yaml", BASE)
    write_yaml(directory / "middle.yaml", MIDDLE)
    write_yaml(directory / "top.yaml", TOP)


class TestMergeTemplates:
    def test_dimensions_inherited_when_width_is_zero(self) -> None:
        merged = merge_templates(Template.from_dict(BASE), Template.from_dict(MIDDLE))

        assert merged.dimensions.width == 100
        assert merged.dimensions.height == 140

    def test_required_fields_are_unioned_in_order(self) -> None:
        merged = merge_templates(Template.from_dict(BASE), Template.from_dict(MIDDLE))

        assert merged.required == ["card.tcg", "card.title"]

    def test_maps_merge_with_extension_winning(self) -> None:
        merged = merge_templates(Template.from_dict(BASE), Template.from_dict(MIDDLE))

        assert merged.optional == {"size.body": 12, "size.title": 20}
        assert merged.icons == {"R": "r.png"}

    def test_layer_order(self) -> None:
        merged = merge_templates(Template.from_dict(BASE), Template.from_dict(MIDDLE))

        assert [layer.name for layer in merged.layers] == ["art", "title", "rules"]
        assert merged.layer("title").content == "** {{card.title}} **"

    def test_colliding_extension_layer_is_not_appended(self) -> None:
        extended = Template.from_dict({"layers": [text_layer("title", "ignored")]})

        merged = merge_templates(Template.from_dict(BASE), extended)

        assert [layer.name for layer in merged.layers] == ["art", "title"]
        assert merged.layer("title").content == "{{card.title}}"

    def test_override_limited_to_narrow_field_set(self) -> None:
        extended = Template.from_dict(
            {"overrides": [{"layer": "art", "fit_mode": "center", "region": {"x": 50}, "type": "text"}]}
        )

        art = merge_templates(Template.from_dict(BASE), extended).layer("art")

        assert art.fit_mode == "center"
        assert art.type == "image"
        assert art.region.x == 0

    def test_override_of_unknown_layer_is_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        base = Template.from_dict(BASE)
        extended = Template.from_dict({"overrides": [{"layer": "ghost", "content": "boo"}]})

        with caplog.at_level(logging.WARNING):
            merged = merge_templates(base, extended)

        assert merged.layers == base.layers
        assert "ghost" in caplog.text

    def test_identity_comes_from_extension(self) -> None:
        merged = merge_templates(Template.from_dict(BASE), Template.from_dict(MIDDLE))

        assert merged.name == "Middle"
        assert merged.extends == "./base.yaml"
        assert merged.overrides == []
        assert merged.additional_layers == []

    def test_base_is_not_mutated(self) -> None:
        base = Template.from_dict(BASE)
        before = list(base.layers)

        merge_templates(base, Template.from_dict(TOP))

        assert base.layers == before


class TestResolverInheritance:
    def test_three_level_chain_is_transitive(
        self, resolver: TemplateResolver, template_roots: dict[str, Path]
    ) -> None:
        write_chain(template_roots["workspace"] / "mtg")

        resolved = resolver.resolve("mtg", "top")

        step_by_step = merge_templates(
            merge_templates(
                merge_templates(Template(), Template.from_dict(BASE)),
                Template.from_dict(MIDDLE),
            ),
            Template.from_dict(TOP),
        )
        assert resolved.layers == step_by_step.layers
        assert [layer.name for layer in resolved.layers] == ["art", "title", "rules", "badge"]
        assert resolved.layer("art").fit_mode == "fit"
        assert resolved.layer("title").content == "** {{card.title}} **"
        assert resolved.style_tokens == {"ink": "#333333"}
        assert resolved.dimensions.width == 100
        assert len(resolved.base_chain) == 3

    def test_template_dir_is_the_declaring_directory(
        self, resolver: TemplateResolver, template_roots: dict[str, Path]
    ) -> None:
        write_chain(template_roots["workspace"] / "mtg")

        resolved = resolver.resolve("mtg", "top")

        assert resolved.template_dir == template_roots["workspace"] / "mtg"
        assert resolved.source_tier == "workspace"

    def test_bare_name_extends_searches_tiers(
        self, resolver: TemplateResolver, template_roots: dict[str, Path]
    ) -> None:
        write_yaml(template_roots["builtin"] / "mtg" / "base.yaml", BASE)
        write_yaml(
            template_roots["workspace"] / "mtg" / "fancy.yaml",
            {"name": "Fancy", "tcg": "mtg", "extends": "base"},
        )

        resolved = resolver.resolve("mtg", "fancy")

        assert resolved.name == "Fancy"
        assert [layer.name for layer in resolved.layers] == ["art", "title"]

    def test_missing_base(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        write_yaml(
            template_roots["workspace"] / "mtg" / "orphan.yaml",
            {"tcg": "mtg", "extends": "./nowhere.yaml"},
        )

        with pytest.raises(BaseTemplateNotFoundError) as exc_info:
            resolver.resolve("mtg", "orphan")

        assert exc_info.value.extends == "./nowhere.yaml"
        assert "orphan.yaml" in exc_info.value.referenced_from

    def test_cycle_is_detected(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        directory = template_roots["workspace"] / "mtg"
        write_yaml(directory / "a.yaml", {"tcg": "mtg", "extends": "./b.yaml"})
        write_yaml(directory / "b.yaml", {"tcg": "mtg", "extends": "./a.yaml"})

        with pytest.raises(CyclicTemplateError) as exc_info:
            resolver.resolve("mtg", "a")

        assert len(exc_info.value.chain) == 3
        assert exc_info.value.chain[0] == exc_info.value.chain[-1]

    def test_self_reference_is_a_cycle(
        self, resolver: TemplateResolver, template_roots: dict[str, Path]
    ) -> None:
        write_yaml(template_roots["workspace"] / "mtg" / "loop.yaml", {"tcg": "mtg", "extends": "./loop.yaml"})

        with pytest.raises(CyclicTemplateError):
            resolver.resolve("mtg", "loop")

    def test_depth_limit(self, template_roots: dict[str, Path]) -> None:
        write_chain(template_roots["workspace"] / "mtg")
        shallow = TemplateResolver(
            workspace_dir=template_roots["workspace"],
            user_dir=template_roots["user"],
            builtin_dir=template_roots["builtin"],
            max_depth=2,
        )

        with pytest.raises(CyclicTemplateError, match="depth limit"):
            shallow.resolve("mtg", "top")


class TestResolverSearchOrder:
    def test_workspace_beats_builtin(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        write_yaml(template_roots["builtin"] / "mtg" / "base.yaml", BASE)
        write_yaml(template_roots["workspace"] / "mtg" / "base.yaml", {**BASE, "name": "Local"})

        resolved = resolver.resolve("mtg", "base")

        assert resolved.name == "Local"
        assert resolved.source_tier == "workspace"

    def test_user_tcg_directory(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        write_yaml(template_roots["user"] / "mtg" / "base.yaml", {**BASE, "name": "Mine"})
        write_yaml(template_roots["legacy"] / "mtg" / "base.yaml", {**BASE, "name": "Legacy"})

        resolved = resolver.resolve("mtg", "base")

        assert resolved.name == "Mine"
        assert resolved.source_tier == "user"

    def test_user_root_file_needs_matching_tcg(
        self, resolver: TemplateResolver, template_roots: dict[str, Path]
    ) -> None:
        write_yaml(template_roots["user"] / "retro.yaml", {**BASE, "name": "Retro MTG"})

        assert resolver.resolve("mtg", "retro").name == "Retro MTG"
        with pytest.raises(TemplateNotFoundError):
            resolver.resolve("pokemon", "retro")

    def test_legacy_tier(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        write_yaml(template_roots["legacy"] / "mtg" / "base.yml", {**BASE, "name": "Legacy"})
        write_yaml(template_roots["builtin"] / "mtg" / "base.yaml", BASE)

        resolved = resolver.resolve("mtg", "base")

        assert resolved.name == "Legacy"
        assert resolved.source_tier == "legacy"

    def test_not_found(self, resolver: TemplateResolver) -> None:
        with pytest.raises(TemplateNotFoundError) as exc_info:
            resolver.resolve("mtg", "missing")

        assert exc_info.value.tcg == "mtg"
        assert exc_info.value.style == "missing"
        assert "mtg/missing" in str(exc_info.value)
        assert len(exc_info.value.searched) == 5

    def test_broken_workspace_file_is_not_skipped(
        self, resolver: TemplateResolver, template_roots: dict[str, Path]
    ) -> None:
        write_yaml(template_roots["builtin"] / "mtg" / "base.yaml", BASE)
        broken = template_roots["workspace"] / "mtg" / "base.yaml"
        broken.parent.mkdir(parents=True)
        broken.write_text("layers: [unclosed", encoding="utf-8")

        with pytest.raises(TemplateParseError):
            resolver.resolve("mtg", "base")

    def test_results_are_cached(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        path = write_yaml(template_roots["workspace"] / "mtg" / "base.yaml", BASE)

        first = resolver.resolve("mtg", "base")
        path.unlink()

        assert resolver.resolve("mtg", "base") is first


class TestTemplateChecks:
    def test_negative_region(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        bad_layer = {"name": "bad", "type": "text", "region": {"x": 0, "y": 0, "width": -5, "height": 10}}
        write_yaml(template_roots["workspace"] / "mtg" / "bad.yaml", {**BASE, "layers": [bad_layer]})

        with pytest.raises(TemplateParseError):
            resolver.resolve("mtg", "bad")

    def test_duplicate_layer_names(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        write_yaml(
            template_roots["workspace"] / "mtg" / "dupes.yaml",
            {**BASE, "layers": [text_layer("x", "a"), text_layer("x", "b")]},
        )

        with pytest.raises(TemplateParseError, match="duplicate"):
            resolver.resolve("mtg", "dupes")

    def test_missing_dimensions(self, resolver: TemplateResolver, template_roots: dict[str, Path]) -> None:
        write_yaml(template_roots["workspace"] / "mtg" / "flat.yaml", {"tcg": "mtg", "layers": []})

        with pytest.raises(TemplateParseError, match="dimensions"):
            resolver.resolve("mtg", "flat")

    def test_root_must_be_mapping(self) -> None:
        with pytest.raises(TemplateParseError):
            Template.from_dict(["not", "a", "mapping"])

    def test_layer_needs_a_name(self) -> None:
        with pytest.raises(TemplateParseError):
            Layer.from_dict({"type": "text"})


class TestListCardstyles:
    def test_lists_all_tiers_without_duplicates(
        self, resolver: TemplateResolver, template_roots: dict[str, Path]
    ) -> None:
        write_yaml(template_roots["builtin"] / "mtg" / "base.yaml", BASE)
        write_yaml(template_roots["builtin"] / "mtg" / "middle.yaml", MIDDLE)
        write_yaml(template_roots["workspace"] / "mtg" / "base.yaml", {**BASE, "name": "Local"})
        write_yaml(template_roots["user"] / "retro.yaml", {**BASE, "name": "Retro", "tcg": "pokemon"})

        infos = {(info.tcg, info.name): info for info in resolver.list_cardstyles()}

        assert set(infos) == {("mtg", "base"), ("mtg", "middle"), ("pokemon", "retro")}
        assert infos[("mtg", "base")].source == "workspace"
        assert infos[("mtg", "base")].display_name == "Local"
        assert infos[("mtg", "middle")].extends == "./base.yaml"
        assert infos[("pokemon", "retro")].source == "user"

    def test_unreadable_files_are_skipped(
        self, resolver: TemplateResolver, template_roots: dict[str, Path]
    ) -> None:
        write_yaml(template_roots["builtin"] / "mtg" / "base.yaml", BASE)
        broken = template_roots["builtin"] / "mtg" / "broken.yaml"
        broken.write_text("- just\n- a list\n", encoding="utf-8")

        names = [info.name for info in resolver.list_cardstyles()]

        assert names == ["base"]


class TestBuiltinCardstyles:
    def test_default_resolves(self, builtin_resolver: TemplateResolver) -> None:
        template = builtin_resolver.resolve("mtg", "default")

        assert template.tcg == "mtg"
        assert (template.dimensions.width, template.dimensions.height) == (750, 1050)
        assert template.layer("artwork").fit_mode == "fill"
        assert template.optional["mtg.font_size.body"] == 21
        assert template.source_tier == "builtin"

    def test_textless_resolves(self, builtin_resolver: TemplateResolver) -> None:
        template = builtin_resolver.resolve("mtg", "textless")

        assert template.layers[-1].name == "textless_border"
        assert template.layer("rules").condition == "card.show_rules"
        assert template.layer("artwork").fit_mode == "fit"

    def test_builtins_are_listed(self, builtin_resolver: TemplateResolver) -> None:
        names = {info.name for info in builtin_resolver.list_cardstyles() if info.tcg == "mtg"}

        assert {"base", "default", "textless"} <= names
