"""
Code Emitter 測試：策略表、各框架輸出、props 推斷、部分成功。
"""
import pytest

from figma_bridge.emitter import (
    build_library_index,
    check_pair,
    emit,
    escape_text,
    supported_pairs,
    transform,
    utility_classes,
)
from figma_bridge.errors import ConfigurationError
from figma_bridge.models import Framework, NamingConvention, Styling, TransformOptions
from figma_bridge.normalizer import normalize_batch
from figma_bridge.styles import resolve_tree

from conftest import box, solid, text


def _opts(**kwargs):
    return TransformOptions.from_dict(kwargs)


def _emit(payload, **kwargs):
    roots = normalize_batch(payload)
    return emit(roots[0], resolve_tree(roots), _opts(**kwargs))


# ─── 策略表 ──────────────────────────────────────────────────────────────────

class TestStrategyTable:

    def test_ten_supported_pairs(self):
        pairs = supported_pairs()
        assert len(pairs) == 10
        assert ("react", "css-in-source") in pairs
        assert ("vue", "css-in-source") not in pairs
        assert ("angular", "css-in-source") not in pairs

    @pytest.mark.parametrize("framework, styling", [
        ("react", "plain-css"), ("react", "scss"), ("react", "css-in-source"), ("react", "utility-classes"),
        ("vue", "plain-css"), ("vue", "scss"), ("vue", "utility-classes"),
        ("angular", "plain-css"), ("angular", "scss"), ("angular", "utility-classes"),
    ])
    @pytest.mark.parametrize("typed", [True, False])
    def test_supported_pairs_never_raise(self, framework, styling, typed, button_payload, card_payload,
                                         form_payload, grid_payload):
        roots = normalize_batch(button_payload + card_payload + form_payload + grid_payload)
        options = _opts(framework=framework, styling=styling, typescript=typed,
                        generateStorybookStub=True, generateTestStub=True,
                        responsiveBreakpoints=["md", "1200"])
        results = transform(roots, options)
        assert all(r.ok for r in results), [r.error for r in results]
        assert all(r.artifacts.markup for r in results)

    @pytest.mark.parametrize("framework", ["vue", "angular"])
    def test_unsupported_pair_raises(self, framework, button_payload):
        roots = normalize_batch(button_payload)
        with pytest.raises(ConfigurationError) as exc_info:
            emit(roots[0], None, _opts(framework=framework, styling="css-in-source"))
        assert f"{framework}+css-in-source" in exc_info.value.message
        assert "react+css-in-source" in exc_info.value.details()

    def test_unknown_framework_rejected(self):
        with pytest.raises(ConfigurationError):
            _opts(framework="svelte")

    def test_aliases_accepted(self):
        opts = _opts(framework="react-like", styling="tailwind")
        assert check_pair(opts)
        assert opts.framework == Framework.REACT
        assert opts.styling == Styling.UTILITY_CLASSES


# ─── 端到端：Click me 按鈕 ────────────────────────────────────────────────────

class TestButtonEndToEnd:

    def test_react_plain_css(self, button_payload):
        comp = _emit(button_payload)
        assert comp.id == "1:1:react:plain-css"
        assert comp.name == "Button"
        assert "background-color: #007aff;" in comp.artifacts.styles
        assert "border-radius: 6px;" in comp.artifacts.styles
        props = {p.name: p for p in comp.props}
        assert props["text"].default == "Click me"
        assert props["text"].type == "string"
        assert "{text}" in comp.artifacts.markup
        assert "import './Button.css';" in comp.artifacts.markup

    def test_files(self, button_payload):
        comp = _emit(button_payload)
        assert set(comp.files()) == {"Button.tsx", "Button.css", "Button.types.ts"}
        assert "export interface ButtonProps" in comp.files()["Button.types.ts"]

    def test_types_only_when_typed_and_declarations(self, button_payload):
        assert _emit(button_payload, includeTypeDeclarations=False).artifacts.types == ""
        untyped = _emit(button_payload, typescript=False)
        assert untyped.artifacts.types == ""
        assert "Button.jsx" in untyped.files()

    def test_inline_interface_without_type_file(self, button_payload):
        markup = _emit(button_payload, includeTypeDeclarations=False).artifacts.markup
        assert "interface ButtonProps {" in markup

    def test_css_in_source_uses_rgb(self, button_payload):
        comp = _emit(button_payload, styling="css-in-source")
        assert 'backgroundColor: "rgb(0, 122, 255)"' in comp.artifacts.markup
        assert "#007aff" not in comp.artifacts.markup
        assert comp.artifacts.styles == ""

    def test_utility_classes(self, button_payload):
        markup = _emit(button_payload, styling="utility-classes").artifacts.markup
        assert "bg-[#007aff]" in markup
        assert "rounded-[6px]" in markup

    def test_scss_nested(self, button_payload):
        styles = _emit(button_payload, styling="scss").artifacts.styles
        assert styles.startswith(".button {")
        assert "  .button-label-1 {" in styles

    def test_vue(self, button_payload):
        comp = _emit(button_payload, framework="vue")
        markup = comp.artifacts.markup
        assert "<template>" in markup
        assert "{{ text }}" in markup
        assert 'v-if="visible"' in markup
        assert "withDefaults(defineProps<ButtonProps>()" in markup
        assert "<style scoped>" in markup
        assert "Button.vue" in comp.files()

    def test_vue_untyped_scss(self, button_payload):
        markup = _emit(button_payload, framework="vue", styling="scss", typescript=False).artifacts.markup
        assert "<script setup>" in markup
        assert 'text: { type: String, default: "Click me" },' in markup
        assert '<style scoped lang="scss">' in markup

    def test_angular(self, button_payload):
        comp = _emit(button_payload, framework="angular", generateTestStub=True)
        markup = comp.artifacts.markup
        assert "export class ButtonComponent" in markup
        assert '@Input() text: string = "Click me";' in markup
        assert '*ngIf="visible"' in markup
        assert "styleUrls: ['./Button.component.css']" in markup
        assert "Button.component.spec.ts" in comp.files()

    def test_inline_text_without_props(self, button_payload):
        comp = _emit(button_payload, includeProps=False)
        assert comp.props == []
        assert ">Click me</span>" in comp.artifacts.markup

    def test_tokens_attached(self, button_payload):
        comp = _emit(button_payload)
        assert [t.value for t in comp.tokens][:1] == ["#007aff"]
        assert _emit(button_payload, extractTokens=False).tokens == []


# ─── Markup 細節 ─────────────────────────────────────────────────────────────

class TestMarkup:

    def test_image_leaf_becomes_img(self, card_payload):
        markup = _emit(card_payload).artifacts.markup
        assert '<img className="card-image-1" src="./assets/abc123.png" alt="Image" loading="lazy" decoding="async" />' in markup

    def test_image_without_optimization(self, card_payload):
        markup = _emit(card_payload, optimizeImages=False).artifacts.markup
        assert 'loading="lazy"' not in markup

    def test_multiple_texts_numbered(self, card_payload):
        names = [p.name for p in _emit(card_payload).props]
        assert names[:2] == ["text", "text2"]

    def test_hidden_child_gets_show_prop(self):
        payload = [box("1", "Alert", children=[
            text("2", "Message", "Saved"),
            box("3", "Close Icon", visible=False, w=16, h=16),
        ])]
        comp = _emit(payload)
        props = {p.name: p for p in comp.props}
        assert props["showCloseIcon"].default is False
        assert "{showCloseIcon && (" in comp.artifacts.markup

    def test_empty_text_gets_placeholder(self):
        comp = _emit([box("1", "Badge", children=[text("2", "Label", "")])])
        assert comp.props[0].default == "Text"

    def test_text_escaped(self):
        assert escape_text("a < b {x}") == "a &lt; b &#123;x&#125;"
        comp = _emit([box("1", "Code", children=[text("2", "T", "<b>{1}</b>")])], includeProps=False)
        assert "&lt;b&gt;&#123;1&#125;&lt;/b&gt;" in comp.artifacts.markup

    def test_custom_mappings(self, button_payload):
        markup = _emit(button_payload, customMappings={"Button": "button"}).artifacts.markup
        assert '<button className="button">' in markup

    def test_component_properties_become_props(self):
        payload = [box("1", "Toggle", kind="INSTANCE", componentId="c:9", componentProperties={
            "Checked#12:0": {"type": "BOOLEAN", "value": True},
            "Size": {"type": "VARIANT", "value": "md"},
        })]
        props = {p.name: p for p in _emit(payload).props}
        assert props["checked"].type == "boolean" and props["checked"].default is True
        assert props["size"].default == "md"

    def test_child_positions_relative_to_parent(self, button_payload):
        styles = _emit(button_payload).artifacts.styles
        assert "left: 20px;" in styles
        assert "top: 10px;" in styles

    def test_auto_layout_flex(self):
        payload = [box("1", "Row", layoutMode="HORIZONTAL", itemSpacing=8, primaryAxisAlignItems="CENTER",
                       children=[box("2", "A", w=10, h=10)])]
        styles = _emit(payload).artifacts.styles
        assert "display: flex;" in styles
        assert "gap: 8px;" in styles
        assert "justify-content: center;" in styles
        assert "position: absolute" not in styles

    def test_breakpoints(self, button_payload):
        styles = _emit(button_payload, responsiveBreakpoints=["md"]).artifacts.styles
        assert "@media (max-width: 768px)" in styles

    def test_utility_class_mapping(self):
        classes = utility_classes({"display": "flex", "font-weight": "700", "border": "1px solid #cccccc"})
        assert classes == ["flex", "font-bold", "border-[1px]", "border-solid", "border-[#cccccc]"]

    def test_naming_convention(self, button_payload):
        button_payload[0]["name"] = "primary button"
        comp = _emit(button_payload, namingConvention="kebab")
        assert comp.name == "primary-button"
        assert "primary-button.tsx" in comp.files()
        assert "export const PrimaryButton" in comp.artifacts.markup
        assert TransformOptions.from_dict({"namingConvention": "camel"}).naming_convention == NamingConvention.CAMEL


# ─── 批次轉換 ────────────────────────────────────────────────────────────────

class TestTransform:

    def test_partial_success(self, button_payload, card_payload, monkeypatch):
        """單一元件失敗只標記該元件"""
        import figma_bridge.emitter as emitter_mod

        real_emit = emitter_mod.emit

        def flaky(root, styles, options):
            if root.id == "3:1":
                raise RuntimeError("boom")
            return real_emit(root, styles, options)

        monkeypatch.setattr(emitter_mod, "emit", flaky)
        results = transform(normalize_batch(button_payload + card_payload), _opts())
        assert [r.ok for r in results] == [True, False]
        assert results[1].error == "RuntimeError: boom"
        assert results[1].id == "3:1:react:plain-css"
        assert "code" not in results[1].to_dict()

    def test_unsupported_pair_fails_whole_call(self, button_payload):
        with pytest.raises(ConfigurationError):
            transform(normalize_batch(button_payload), _opts(framework="vue", styling="css-in-source"))

    def test_library_index(self, button_payload, card_payload):
        opts = _opts()
        results = transform(normalize_batch(button_payload + card_payload), opts)
        index = build_library_index(results, opts)
        assert "export { Button } from './Button';" in index
        assert "export { Card } from './Card';" in index

    def test_library_index_vue(self, button_payload):
        opts = _opts(framework="vue")
        index = build_library_index(transform(normalize_batch(button_payload), opts), opts)
        assert index == "export { default as Button } from './Button.vue';\n"


# ─── 深層樹 / inline style key ───────────────────────────────────────────────

def _chain(depth):
    """depth 層 FRAME 一路包到最內層的文字節點"""
    node = text("leaf", "Leaf", "Deep")
    for i in range(depth, 0, -1):
        node = box(f"{i}:1", f"Level {i}", children=[node])
    return [node]


class TestDeepTrees:

    DEPTH = 1200

    @pytest.mark.parametrize("framework, styling", supported_pairs())
    def test_deep_chain_emits_for_every_pair(self, framework, styling):
        roots = normalize_batch(_chain(self.DEPTH))
        result = transform(roots, _opts(framework=framework, styling=styling))[0]
        assert result.ok, result.error
        assert result.artifacts.markup.count("</div>") >= self.DEPTH
        assert "Deep" in result.artifacts.markup

    def test_scss_blocks_nest_to_full_depth(self):
        styles = _emit(_chain(self.DEPTH), styling="scss").artifacts.styles
        assert styles.count("{") == styles.count("}")
        assert "\n" + "  " * self.DEPTH + ".level-1-leaf-" in styles

    def test_markup_closes_in_reverse_order(self):
        markup = _emit(_chain(3), styling="plain-css").artifacts.markup
        lines = [line for line in markup.splitlines() if "level-1" in line or "</div>" in line]
        opens = [line for line in lines if "<div" in line]
        closes = [line for line in lines if line.strip() == "</div>"]
        assert len(opens) == len(closes) == 3
        assert [len(line) - len(line.lstrip()) for line in closes] == \
            sorted((len(line) - len(line.lstrip()) for line in opens), reverse=True)


class TestInlineStyleKeys:

    def test_merged_camel_case_keys_are_deduplicated(self):
        """button-a-1-1 與 button-a-11 camelCase 後相同，key 仍需唯一"""
        children = [box(f"c{i}", "A1" if i == 0 else ("A" if i == 10 else "B"), x=i) for i in range(11)]
        comp = _emit([box("root", "Button", children=children)], styling="css-in-source")
        markup = comp.artifacts.markup
        section = markup.split("const styles = {", 1)[1].split("};", 1)[0] if "const styles = {" in markup \
            else markup.split("React.CSSProperties> = {", 1)[1].split("};", 1)[0]
        keys = [line.strip()[:-3] for line in section.splitlines() if line.startswith("  ") and
                not line.startswith("    ") and line.strip().endswith(": {")]
        assert len(keys) == 12
        assert len(set(keys)) == 12
        assert "buttonA11" in keys
        assert "buttonA11_2" in keys
        assert "style={styles.buttonA11_2}" in markup
