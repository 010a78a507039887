"""
Code Emitter — canonical tree + styles → framework source artifacts

Strategy table keyed by (framework, styling). Each emission runs three
independent sub-steps against the same element plan:

  markup: pre-order walk on an explicit stack, kind → element, text bound to props
  styles: stylesheet / nested scss / inline style object / utility classes
  types : TypeScript props interface (typed_output + include_type_declarations)

One color rule per emission: hex everywhere except css-in-source (rgb).
"""

from __future__ import annotations

import html
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError, TransformFailure
from .models import (
    RGBA,
    Artifacts,
    CanonicalStyle,
    Framework,
    GradientPaint,
    ImagePaint,
    NodeKind,
    PropSpec,
    SceneNode,
    Styling,
    TransformedComponent,
    TransformOptions,
)
from .naming import apply_convention, identifier, to_camel_case, to_kebab_case
from .styles import resolve_style, resolve_tree, to_hex, to_rgb
from .tokens import extract_tokens

logger = logging.getLogger(__name__)

VOID_TAGS = {"img", "hr"}

PLACEHOLDER_TEXT = "Text"

NAMED_BREAKPOINTS = {
    "mobile": 480, "sm": 640, "md": 768, "tablet": 768,
    "lg": 1024, "desktop": 1024, "xl": 1280, "2xl": 1536,
}

_TAG_RE = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")


def _px(value: float) -> str:
    return f"{round(value, 2):g}px"


def _css_align(value: str, axis: str) -> str:
    if value == "CENTER":
        return "center"
    if value == "MAX":
        return "flex-end"
    if value == "SPACE_BETWEEN" and axis == "primary":
        return "space-between"
    if value in ("STRETCH", "BASELINE") and axis == "counter":
        return "stretch" if value == "STRETCH" else "baseline"
    return "flex-start"


def escape_text(text: str) -> str:
    """Escape literal text for JSX / Vue / Angular templates."""
    out = html.escape(text, quote=False)
    return out.replace("{", "&#123;").replace("}", "&#125;")


def _breakpoint_px(value: str) -> Optional[int]:
    value = str(value).strip().lower()
    if value in NAMED_BREAKPOINTS:
        return NAMED_BREAKPOINTS[value]
    m = re.fullmatch(r"(\d+)(px)?", value)
    return int(m.group(1)) if m else None


# ════════════════════════════════════════════════════════════
# Element plan
# ════════════════════════════════════════════════════════════

@dataclass
class Element:
    node: SceneNode
    tag: str
    class_name: str
    declarations: Dict[str, str]
    text: Optional[str] = None
    text_prop: Optional[str] = None
    show_prop: Optional[str] = None
    attrs: Dict[str, Optional[str]] = field(default_factory=dict)
    children: List["Element"] = field(default_factory=list)

    @property
    def is_text(self) -> bool:
        return self.text is not None or self.text_prop is not None

    def walk(self):
        stack = [self]
        while stack:
            el = stack.pop()
            yield el
            stack.extend(reversed(el.children))


@dataclass
class Plan:
    root: Element
    ident: str
    props: List[PropSpec]
    breakpoints: List[int]


def _prop_type(value) -> Tuple[str, object]:
    """Infer (ts type, default) from a component property value."""
    if isinstance(value, dict) and "value" in value:
        kind = str(value.get("type", "")).upper()
        inner = value["value"]
        if kind == "BOOLEAN":
            return "boolean", bool(inner)
        if kind in ("TEXT", "VARIANT", "INSTANCE_SWAP"):
            return "string", "" if inner is None else str(inner)
        value = inner
    if isinstance(value, bool):
        return "boolean", value
    if isinstance(value, (int, float)):
        return "number", value
    return "string", "" if value is None else str(value)


class PlanBuilder:
    """Walks the tree once (pre-order) producing elements, class names and props."""

    def __init__(self, root: SceneNode, styles: Dict[str, CanonicalStyle], options: TransformOptions,
                 color: Callable[[RGBA], str]):
        self.root = root
        self.styles = styles
        self.options = options
        self.color = color
        self.ident = identifier(root.display_name)
        self.prefix = to_kebab_case(self.ident) or "component"
        self.counter = 0
        self.props: List[PropSpec] = []
        self._prop_names: set = set()
        self._text_props = 0

    def build(self) -> Plan:
        root_el = None
        stack: List[Tuple[SceneNode, Optional[Element]]] = [(self.root, None)]
        while stack:
            node, parent_el = stack.pop()
            el = self._element(node, parent_el.node if parent_el else None)
            if parent_el is None:
                root_el = el
            else:
                parent_el.children.append(el)
            if el.tag in VOID_TAGS or el.is_text:
                continue
            for child in reversed(node.children):
                stack.append((child, el))

        if self.options.include_props:
            self._add_prop("visible", "boolean", self.root.visible)
            for key, value in self.root.component_properties.items():
                ts_type, default = _prop_type(value)
                self._add_prop(to_camel_case(key.split("#")[0]) or "prop", ts_type, default)

        breakpoints = []
        for bp in self.options.responsive_breakpoints:
            px = _breakpoint_px(bp)
            if px is None:
                logger.debug("[emit] unknown breakpoint %r ignored", bp)
            elif px not in breakpoints:
                breakpoints.append(px)
        return Plan(root=root_el, ident=self.ident, props=self.props, breakpoints=sorted(breakpoints, reverse=True))

    def _add_prop(self, name: str, ts_type: str, default) -> str:
        base = name
        n = 1
        while name in self._prop_names:
            n += 1
            name = f"{base}{n}"
        self._prop_names.add(name)
        self.props.append(PropSpec(name=name, type=ts_type, required=False, default=default))
        return name

    def _class_name(self, node: SceneNode) -> str:
        if node is self.root:
            return self.prefix
        self.counter += 1
        base = to_kebab_case(node.name) or node.kind.value
        return f"{self.prefix}-{base}-{self.counter}"

    def _tag(self, node: SceneNode, style: CanonicalStyle) -> str:
        mappings = self.options.custom_mappings
        for key in (node.display_name, node.name, node.kind.value):
            tag = mappings.get(key)
            if tag and _TAG_RE.match(tag):
                return tag
        if node.kind == NodeKind.TEXT:
            return "span"
        if style.images and node.is_leaf:
            return "img"
        if node.kind == NodeKind.VECTOR:
            return "svg"
        if node.kind == NodeKind.LINE:
            return "hr"
        return "div"

    def _element(self, node: SceneNode, parent: Optional[SceneNode]) -> Element:
        style = self.styles.get(node.id) or resolve_style(node)
        tag = self._tag(node, style)
        el = Element(
            node=node,
            tag=tag,
            class_name=self._class_name(node),
            declarations=self.declarations(node, parent, style, tag),
        )

        if tag == "img":
            image = style.images[0]
            el.attrs["src"] = f"./assets/{image.image_ref or node.id}.png"
            el.attrs["alt"] = node.display_name
            if self.options.optimize_images:
                el.attrs["loading"] = "lazy"
                el.attrs["decoding"] = "async"

        if node.kind == NodeKind.TEXT:
            chars = node.characters or ""
            if self.options.include_props:
                name = "text" if self._text_props == 0 else f"text{self._text_props + 1}"
                self._text_props += 1
                el.text_prop = self._add_prop(name, "string", chars or PLACEHOLDER_TEXT)
            else:
                el.text = chars or PLACEHOLDER_TEXT

        if not node.visible and node is not self.root:
            if self.options.include_props:
                suffix = identifier(node.display_name, identifier(node.kind.value))
                el.show_prop = self._add_prop(f"show{suffix}", "boolean", False)
            else:
                el.attrs["hidden"] = None
        elif not node.visible and not self.options.include_props:
            el.attrs["hidden"] = None
        return el

    # ─── Declarations ───

    def declarations(self, node: SceneNode, parent: Optional[SceneNode], style: CanonicalStyle, tag: str) -> Dict[str, str]:
        d: Dict[str, str] = {}
        is_text = node.kind == NodeKind.TEXT
        color = self.color

        if not is_text:
            d["box-sizing"] = "border-box"
        if parent is None:
            if node.children and node.layout is None:
                d["position"] = "relative"
        elif parent.layout is None:
            d["position"] = "absolute"
            d["left"] = _px(node.x - parent.x)
            d["top"] = _px(node.y - parent.y)
        if not is_text:
            if node.width:
                d["width"] = _px(node.width)
            if node.height:
                d["height"] = _px(node.height)

        if tag == "img":
            d["object-fit"] = "contain" if style.images[0].scale_mode == "FIT" else "cover"
        else:
            layers = []
            for paint in reversed(style.fills):
                if isinstance(paint, GradientPaint):
                    layers.append(self._gradient(paint))
                elif isinstance(paint, ImagePaint):
                    layers.append(f"url(./assets/{paint.image_ref or node.id}.png)")
            if layers:
                d["background-image"] = ", ".join(layers)
                if style.images:
                    d["background-size"] = "cover"
            if style.background is not None:
                d["background-color"] = color(style.background)

        if style.opacity < 1:
            d["opacity"] = f"{round(style.opacity, 2):g}"
        if style.radius is not None:
            r = style.radius
            if r.is_uniform:
                if r.top_left:
                    d["border-radius"] = _px(r.top_left)
            else:
                d["border-radius"] = " ".join(_px(v) for v in (r.top_left, r.top_right, r.bottom_right, r.bottom_left))
        if style.border is not None:
            b = style.border
            d["border"] = f"{_px(b.width)} {b.style} {color(b.color)}"
        if style.shadows:
            d["box-shadow"] = ", ".join(
                ("inset " if s.inset else "")
                + f"{_px(s.offset_x)} {_px(s.offset_y)} {_px(s.blur)} {_px(s.spread)} {color(s.color)}"
                for s in style.shadows
            )

        if node.layout is not None:
            al = node.layout
            d["display"] = "flex"
            d["flex-direction"] = "row" if al.direction == "HORIZONTAL" else "column"
            if al.item_spacing:
                d["gap"] = _px(al.item_spacing)
            pads = (al.padding_top, al.padding_right, al.padding_bottom, al.padding_left)
            if any(pads):
                d["padding"] = " ".join(_px(p) for p in pads)
            d["justify-content"] = _css_align(al.primary_align, "primary")
            d["align-items"] = _css_align(al.counter_align, "counter")

        t = style.typography
        if t is not None:
            d["font-family"] = t.family if re.fullmatch(r"[\w-]+", t.family) else f"'{t.family}'"
            d["font-size"] = _px(t.size)
            d["font-weight"] = f"{int(t.weight)}"
            if t.line_height:
                d["line-height"] = _px(t.line_height)
            if t.letter_spacing:
                d["letter-spacing"] = _px(t.letter_spacing)
            if t.align != "left":
                d["text-align"] = t.align
        if style.text_color is not None:
            d["color"] = color(style.text_color)
        return d

    def _gradient(self, paint: GradientPaint) -> str:
        stops = ", ".join(f"{self.color(s.color)} {round(s.position * 100, 2):g}%" for s in paint.stops)
        if paint.kind == "linear":
            return f"linear-gradient(180deg, {stops})"
        if paint.kind == "angular":
            return f"conic-gradient({stops})"
        return f"radial-gradient(circle, {stops})"


# ════════════════════════════════════════════════════════════
# Styling strategies
# ════════════════════════════════════════════════════════════

class StyleStrategy:
    styling: Styling
    extension = ""

    def __init__(self):
        self.plan: Optional[Plan] = None

    def bind(self, plan: Plan) -> None:
        self.plan = plan

    def color(self, c: RGBA) -> str:
        return to_hex(c)

    def attr(self, el: Element, framework: Framework) -> Optional[str]:
        attr_name = "className" if framework == Framework.REACT else "class"
        return f'{attr_name}="{el.class_name}"'

    def stylesheet(self, plan: Plan) -> str:
        return ""

    def preamble(self, plan: Plan, typed: bool) -> str:
        return ""


class PlainCssStyles(StyleStrategy):
    styling = Styling.PLAIN_CSS
    extension = "css"

    def stylesheet(self, plan: Plan) -> str:
        blocks = []
        for el in plan.root.walk():
            if not el.declarations:
                continue
            body = "\n".join(f"  {prop}: {val};" for prop, val in el.declarations.items())
            blocks.append(f".{el.class_name} {{\n{body}\n}}")
        for bp in plan.breakpoints:
            blocks.append(
                f"@media (max-width: {bp}px) {{\n"
                f"  .{plan.root.class_name} {{\n    width: 100%;\n    max-width: {bp}px;\n  }}\n}}"
            )
        return "\n\n".join(blocks) + "\n" if blocks else ""


class ScssStyles(StyleStrategy):
    styling = Styling.SCSS
    extension = "scss"

    def stylesheet(self, plan: Plan) -> str:
        # nested blocks; closing braces are queued on the stack behind the children
        lines: List[str] = []
        stack: List[Union[str, Tuple[Element, int]]] = [(plan.root, 0)]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                lines.append(item)
                continue
            el, indent = item
            pad = "  " * indent
            lines.append(f"{pad}.{el.class_name} {{")
            lines.extend(f"{pad}  {prop}: {val};" for prop, val in el.declarations.items())
            if el is plan.root:
                for bp in plan.breakpoints:
                    lines.append(f"{pad}  @media (max-width: {bp}px) {{")
                    lines.append(f"{pad}    width: 100%;")
                    lines.append(f"{pad}    max-width: {bp}px;")
                    lines.append(f"{pad}  }}")
            stack.append(f"{pad}}}")
            for child in reversed(el.children):
                stack.append((child, indent + 1))
                stack.append("")
        return "\n".join(lines) + "\n"


def _css_to_camel(prop: str) -> str:
    head, *rest = prop.split("-")
    return head + "".join(p.title() for p in rest)


class InlineStyles(StyleStrategy):
    """css-in-source: one style object per element, declared in the component file."""
    styling = Styling.CSS_IN_SOURCE

    def __init__(self):
        super().__init__()
        self._keys: Dict[int, str] = {}

    def color(self, c: RGBA) -> str:
        return to_rgb(c)

    def bind(self, plan: Plan) -> None:
        # camelCase can merge distinct class names ("a-1-1" / "a-11"); "_n" suffixes keep keys unique
        super().bind(plan)
        self._keys = {}
        taken = set()
        for el in plan.root.walk():
            base = to_camel_case(el.class_name) or "root"
            key, n = base, 1
            while key in taken:
                n += 1
                key = f"{base}_{n}"
            taken.add(key)
            self._keys[id(el)] = key

    def key(self, el: Element) -> str:
        return self._keys[id(el)]

    def attr(self, el: Element, framework: Framework) -> Optional[str]:
        if not el.declarations:
            return None
        return f"style={{styles.{self.key(el)}}}"

    def preamble(self, plan: Plan, typed: bool) -> str:
        if plan.breakpoints:
            logger.debug("[emit] breakpoints are not expressible as inline styles; skipped")
        decl = "const styles: Record<string, React.CSSProperties> = {" if typed else "const styles = {"
        lines = [decl]
        for el in plan.root.walk():
            if not el.declarations:
                continue
            lines.append(f"  {self.key(el)}: {{")
            for prop, val in el.declarations.items():
                lines.append(f"    {_css_to_camel(prop)}: {json.dumps(val)},")
            lines.append("  },")
        lines.append("};")
        return "\n".join(lines)


_FONT_WEIGHTS = {
    100: "thin", 200: "extralight", 300: "light", 400: "normal",
    500: "medium", 600: "semibold", 700: "bold",
    800: "extrabold", 900: "black",
}

_KEYWORD_CLASSES = {
    ("box-sizing", "border-box"): "box-border",
    ("position", "absolute"): "absolute",
    ("position", "relative"): "relative",
    ("display", "flex"): "flex",
    ("flex-direction", "row"): "flex-row",
    ("flex-direction", "column"): "flex-col",
    ("justify-content", "flex-start"): "justify-start",
    ("justify-content", "center"): "justify-center",
    ("justify-content", "flex-end"): "justify-end",
    ("justify-content", "space-between"): "justify-between",
    ("align-items", "flex-start"): "items-start",
    ("align-items", "center"): "items-center",
    ("align-items", "flex-end"): "items-end",
    ("align-items", "stretch"): "items-stretch",
    ("align-items", "baseline"): "items-baseline",
    ("background-size", "cover"): "bg-cover",
    ("object-fit", "cover"): "object-cover",
    ("object-fit", "contain"): "object-contain",
}

_ARBITRARY_PREFIX = {
    "left": "left", "top": "top", "width": "w", "height": "h",
    "background-color": "bg", "background-image": "bg", "opacity": "opacity",
    "border-radius": "rounded", "box-shadow": "shadow", "gap": "gap",
    "padding": "p", "font-family": "font", "font-size": "text",
    "line-height": "leading", "letter-spacing": "tracking", "color": "text",
}


def _arb(value: str) -> str:
    return value.replace(", ", ",").replace(" ", "_")


def utility_classes(declarations: Dict[str, str]) -> List[str]:
    """CSS declarations → Tailwind classes (arbitrary values where no scale step fits)."""
    classes = []
    for prop, value in declarations.items():
        keyword = _KEYWORD_CLASSES.get((prop, value))
        if keyword:
            classes.append(keyword)
        elif prop == "font-weight":
            classes.append(f"font-{_FONT_WEIGHTS.get(int(value), f'[{value}]')}")
        elif prop == "text-align":
            classes.append(f"text-{value}")
        elif prop == "border":
            width, line, color = value.split(" ", 2)
            classes.extend([f"border-[{width}]", f"border-{line}", f"border-[{_arb(color)}]"])
        elif prop in _ARBITRARY_PREFIX:
            classes.append(f"{_ARBITRARY_PREFIX[prop]}-[{_arb(value)}]")
        else:
            classes.append(f"[{prop}:{_arb(value)}]")
    return classes


class UtilityStyles(StyleStrategy):
    styling = Styling.UTILITY_CLASSES

    def attr(self, el: Element, framework: Framework) -> Optional[str]:
        classes = utility_classes(el.declarations)
        if self.plan is not None and el is self.plan.root:
            classes.extend(f"max-[{bp}px]:w-full" for bp in self.plan.breakpoints)
        if not classes:
            return None
        attr_name = "className" if framework == Framework.REACT else "class"
        return f'{attr_name}="{" ".join(classes)}"'


# ════════════════════════════════════════════════════════════
# Framework renderers
# ════════════════════════════════════════════════════════════

def _ts_default(value) -> str:
    return json.dumps(value, ensure_ascii=False)


def _interface(name: str, props: Sequence[PropSpec], export: bool = True) -> str:
    lines = [f"{'export ' if export else ''}interface {name} {{"]
    for p in props:
        lines.append(f"  {p.name}{'' if p.required else '?'}: {p.type};")
    lines.append("}")
    return "\n".join(lines)


class Renderer:
    framework: Framework

    def __init__(self, strategy: StyleStrategy, options: TransformOptions):
        self.strategy = strategy
        self.options = options
        self._root: Optional[Element] = None

    @property
    def typed(self) -> bool:
        return self.options.typed_output

    @property
    def separate_types(self) -> bool:
        return self.options.typed_output and self.options.include_type_declarations

    # ─── markup ───

    def element_attrs(self, el: Element) -> str:
        parts = []
        style_attr = self.strategy.attr(el, self.framework)
        if style_attr:
            parts.append(style_attr)
        cond = self.condition_attr(el)
        if cond:
            parts.append(cond)
        for key, value in el.attrs.items():
            if value is None:
                parts.append(key)
            else:
                parts.append(f'{key}="{html.escape(value, quote=True)}"')
        return (" " + " ".join(parts)) if parts else ""

    def condition_attr(self, el: Element) -> Optional[str]:
        return None

    def text_binding(self, prop: str) -> str:
        return f"{{{{ {prop} }}}}"

    def void(self, tag: str, attrs: str) -> str:
        return f"<{tag}{attrs}>"

    def render(self, root: Element, indent: int) -> str:
        """Markup for `root` and its subtree, one line per tag, without recursion."""
        lines: List[str] = []
        stack: List[Union[str, Tuple[Element, int]]] = [(root, indent)]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                lines.append(item)
                continue
            el, depth = item
            pad = "  " * depth
            tag = el.tag
            attrs = self.element_attrs(el)
            if tag in VOID_TAGS:
                lines.append(f"{pad}{self.void(tag, attrs)}")
            elif el.is_text:
                content = self.text_binding(el.text_prop) if el.text_prop else escape_text(el.text or "")
                lines.append(f"{pad}<{tag}{attrs}>{content}</{tag}>")
            elif not el.children:
                lines.append(f"{pad}<{tag}{attrs}></{tag}>")
            else:
                lines.append(f"{pad}<{tag}{attrs}>")
                stack.append(f"{pad}</{tag}>")
                for child in reversed(el.children):
                    before, child_depth, after = self.wrap_child(child, depth + 1)
                    stack.extend(reversed(after))
                    stack.append((child, child_depth))
                    stack.extend(reversed(before))
        return "\n".join(lines)

    def wrap_child(self, el: Element, indent: int) -> Tuple[List[str], int, List[str]]:
        """Lines placed around a child element, and the indent the child renders at."""
        return [], indent, []

    # ─── artifacts ───

    def file_stem(self, name: str) -> str:
        return name

    def types(self, plan: Plan) -> str:
        if not self.separate_types:
            return ""
        return _interface(f"{plan.ident}Props", plan.props) + "\n"

    def emit(self, plan: Plan, name: str) -> Tuple[Artifacts, Dict[str, str]]:
        raise NotImplementedError


class ReactRenderer(Renderer):
    framework = Framework.REACT

    def void(self, tag: str, attrs: str) -> str:
        return f"<{tag}{attrs} />"

    def text_binding(self, prop: str) -> str:
        return f"{{{prop}}}"

    def wrap_child(self, el: Element, indent: int) -> Tuple[List[str], int, List[str]]:
        if el.show_prop:
            pad = "  " * indent
            return [f"{pad}{{{el.show_prop} && ("], indent + 1, [f"{pad})}}"]
        return [], indent, []

    def emit(self, plan: Plan, name: str) -> Tuple[Artifacts, Dict[str, str]]:
        stem = self.file_stem(name)
        ext = "tsx" if self.typed else "jsx"
        ident = plan.ident
        props = plan.props
        stylesheet = self.strategy.stylesheet(plan)

        head = ["import React from 'react';"]
        if stylesheet:
            head.append(f"import './{stem}.{self.strategy.extension}';")
        if self.separate_types and props:
            head.append(f"import type {{ {ident}Props }} from './{stem}.types';")
        sections = ["\n".join(head)]
        if self.typed and props and not self.separate_types:
            sections.append(_interface(f"{ident}Props", props, export=False))
        preamble = self.strategy.preamble(plan, self.typed)
        if preamble:
            sections.append(preamble)

        if props:
            params = ", ".join(f"{p.name} = {_ts_default(p.default)}" for p in props)
            signature = f"({{ {params} }}: {ident}Props)" if self.typed else f"({{ {params} }})"
        else:
            signature = "()"
        body = [f"export const {ident} = {signature} => {{"]
        if any(p.name == "visible" for p in props):
            body.append("  if (!visible) return null;")
        body.append("  return (")
        body.append(self.render(plan.root, 2))
        body.append("  );")
        body.append("};")
        sections.append("\n".join(body))
        sections.append(f"export default {ident};")
        markup = "\n\n".join(sections) + "\n"

        artifacts = Artifacts(markup=markup, styles=stylesheet, types=self.types(plan))
        files = {"markup": f"{stem}.{ext}"}
        if stylesheet:
            files["styles"] = f"{stem}.{self.strategy.extension}"
        if artifacts.types:
            files["types"] = f"{stem}.types.ts"
        if self.options.generate_storybook_stub:
            artifacts.story = self.story(plan, stem)
            files["story"] = f"{stem}.stories.{ext}"
        if self.options.generate_test_stub:
            artifacts.test = self.test(plan, stem)
            files["test"] = f"{stem}.test.{ext}"
        return artifacts, files

    def story(self, plan: Plan, stem: str) -> str:
        ident = plan.ident
        args = ", ".join(f"{p.name}: {_ts_default(p.default)}" for p in plan.props)
        lines = []
        if self.typed:
            lines.append("import type { Meta, StoryObj } from '@storybook/react';")
        lines.append(f"import {{ {ident} }} from './{stem}';")
        lines.append("")
        if self.typed:
            lines.append(f"const meta: Meta<typeof {ident}> = {{ title: 'Components/{ident}', component: {ident} }};")
            lines.append("export default meta;")
            lines.append("")
            lines.append(f"export const Default: StoryObj<typeof {ident}> = {{ args: {{ {args} }} }};")
        else:
            lines.append(f"export default {{ title: 'Components/{ident}', component: {ident} }};")
            lines.append("")
            lines.append(f"export const Default = {{ args: {{ {args} }} }};")
        return "\n".join(lines) + "\n"

    def test(self, plan: Plan, stem: str) -> str:
        ident = plan.ident
        return (
            "import { render } from '@testing-library/react';\n"
            f"import {{ {ident} }} from './{stem}';\n\n"
            f"describe('{ident}', () => {{\n"
            "  it('renders', () => {\n"
            f"    const {{ container }} = render(<{ident} />);\n"
            "    expect(container.firstChild).toBeTruthy();\n"
            "  });\n"
            "});\n"
        )


_VUE_TYPES = {"string": "String", "boolean": "Boolean", "number": "Number"}


class VueRenderer(Renderer):
    framework = Framework.VUE

    def condition_attr(self, el: Element) -> Optional[str]:
        if el.show_prop:
            return f'v-if="{el.show_prop}"'
        if el is self._root and self.options.include_props:
            return 'v-if="visible"'
        return None

    def emit(self, plan: Plan, name: str) -> Tuple[Artifacts, Dict[str, str]]:
        self._root = plan.root
        stem = self.file_stem(name)
        ident = plan.ident
        props = plan.props
        stylesheet = self.strategy.stylesheet(plan)

        sections = ["<template>\n" + self.render(plan.root, 1) + "\n</template>"]
        if props:
            if self.typed:
                script = ['<script setup lang="ts">']
                if self.separate_types:
                    script.append(f"import type {{ {ident}Props }} from './{stem}.types';")
                else:
                    script.append(_interface(f"{ident}Props", props, export=False))
                script.append("")
                script.append(f"withDefaults(defineProps<{ident}Props>(), {{")
                script.extend(f"  {p.name}: {_ts_default(p.default)}," for p in props)
                script.append("});")
            else:
                script = ["<script setup>", "defineProps({"]
                script.extend(
                    f"  {p.name}: {{ type: {_VUE_TYPES.get(p.type, 'String')}, default: {_ts_default(p.default)} }},"
                    for p in props
                )
                script.append("});")
            script.append("</script>")
            sections.append("\n".join(script))
        if stylesheet:
            lang = ' lang="scss"' if self.strategy.styling == Styling.SCSS else ""
            sections.append(f"<style scoped{lang}>\n{stylesheet}</style>")
        markup = "\n\n".join(sections) + "\n"

        artifacts = Artifacts(markup=markup, styles=stylesheet, types=self.types(plan))
        files = {"markup": f"{stem}.vue"}
        if artifacts.types:
            files["types"] = f"{stem}.types.ts"
        ext = "ts" if self.typed else "js"
        if self.options.generate_storybook_stub:
            artifacts.story = (
                f"import {ident} from './{stem}.vue';\n\n"
                f"export default {{ title: 'Components/{ident}', component: {ident} }};\n\n"
                "export const Default = { args: { "
                + ", ".join(f"{p.name}: {_ts_default(p.default)}" for p in props)
                + " } };\n"
            )
            files["story"] = f"{stem}.stories.{ext}"
        if self.options.generate_test_stub:
            artifacts.test = (
                "import { render } from '@testing-library/vue';\n"
                f"import {ident} from './{stem}.vue';\n\n"
                f"describe('{ident}', () => {{\n"
                "  it('renders', () => {\n"
                f"    const {{ container }} = render({ident});\n"
                "    expect(container.firstChild).toBeTruthy();\n"
                "  });\n"
                "});\n"
            )
            files["test"] = f"{stem}.test.{ext}"
        return artifacts, files


class AngularRenderer(Renderer):
    framework = Framework.ANGULAR

    def condition_attr(self, el: Element) -> Optional[str]:
        if el.show_prop:
            return f'*ngIf="{el.show_prop}"'
        if el is self._root and self.options.include_props:
            return '*ngIf="visible"'
        return None

    def file_stem(self, name: str) -> str:
        return f"{name}.component"

    def emit(self, plan: Plan, name: str) -> Tuple[Artifacts, Dict[str, str]]:
        self._root = plan.root
        stem = self.file_stem(name)
        ident = plan.ident
        cls = f"{ident}Component"
        props = plan.props
        stylesheet = self.strategy.stylesheet(plan)
        template = self.render(plan.root, 2).replace("`", "\\`").replace("${", "\\${")

        head = []
        if props:
            head.append("import { Component, Input } from '@angular/core';")
        else:
            head.append("import { Component } from '@angular/core';")
        head.append("import { CommonModule } from '@angular/common';")
        if self.separate_types and props:
            head.append(f"import type {{ {ident}Props }} from './{name}.types';")

        decorator = [
            "@Component({",
            f"  selector: 'app-{to_kebab_case(ident)}',",
            "  standalone: true,",
            "  imports: [CommonModule],",
            "  template: `",
            template,
            "  `,",
        ]
        if stylesheet:
            decorator.append(f"  styleUrls: ['./{stem}.{self.strategy.extension}'],")
        decorator.append("})")

        implements = f" implements {ident}Props" if self.separate_types and props else ""
        body = [f"export class {cls}{implements} {{"]
        for p in props:
            annotation = f": {p.type}" if self.typed else ""
            body.append(f"  @Input() {p.name}{annotation} = {_ts_default(p.default)};")
        body.append("}")

        markup = "\n".join(head) + "\n\n" + "\n".join(decorator) + "\n" + "\n".join(body) + "\n"
        artifacts = Artifacts(markup=markup, styles=stylesheet, types=self.types(plan))
        files = {"markup": f"{stem}.ts"}
        if stylesheet:
            files["styles"] = f"{stem}.{self.strategy.extension}"
        if artifacts.types:
            files["types"] = f"{name}.types.ts"
        if self.options.generate_storybook_stub:
            artifacts.story = (
                "import type { Meta, StoryObj } from '@storybook/angular';\n"
                f"import {{ {cls} }} from './{stem}';\n\n"
                f"const meta: Meta<{cls}> = {{ title: 'Components/{ident}', component: {cls} }};\n"
                "export default meta;\n\n"
                f"export const Default: StoryObj<{cls}> = {{ args: {{ "
                + ", ".join(f"{p.name}: {_ts_default(p.default)}" for p in props)
                + " } };\n"
            )
            files["story"] = f"{name}.stories.ts"
        if self.options.generate_test_stub:
            artifacts.test = (
                "import { TestBed } from '@angular/core/testing';\n"
                f"import {{ {cls} }} from './{stem}';\n\n"
                f"describe('{cls}', () => {{\n"
                "  it('creates', async () => {\n"
                f"    await TestBed.configureTestingModule({{ imports: [{cls}] }}).compileComponents();\n"
                f"    const fixture = TestBed.createComponent({cls});\n"
                "    expect(fixture.componentInstance).toBeTruthy();\n"
                "  });\n"
                "});\n"
            )
            files["test"] = f"{stem}.spec.ts"
        return artifacts, files


# ════════════════════════════════════════════════════════════
# Strategy table
# ════════════════════════════════════════════════════════════

STRATEGIES: Dict[Tuple[Framework, Styling], Tuple[type, type]] = {
    (Framework.REACT, Styling.PLAIN_CSS): (ReactRenderer, PlainCssStyles),
    (Framework.REACT, Styling.SCSS): (ReactRenderer, ScssStyles),
    (Framework.REACT, Styling.CSS_IN_SOURCE): (ReactRenderer, InlineStyles),
    (Framework.REACT, Styling.UTILITY_CLASSES): (ReactRenderer, UtilityStyles),
    (Framework.VUE, Styling.PLAIN_CSS): (VueRenderer, PlainCssStyles),
    (Framework.VUE, Styling.SCSS): (VueRenderer, ScssStyles),
    (Framework.VUE, Styling.UTILITY_CLASSES): (VueRenderer, UtilityStyles),
    (Framework.ANGULAR, Styling.PLAIN_CSS): (AngularRenderer, PlainCssStyles),
    (Framework.ANGULAR, Styling.SCSS): (AngularRenderer, ScssStyles),
    (Framework.ANGULAR, Styling.UTILITY_CLASSES): (AngularRenderer, UtilityStyles),
}


def supported_pairs() -> List[Tuple[str, str]]:
    return [(fw.value, st.value) for fw, st in STRATEGIES]


def check_pair(options: TransformOptions) -> Tuple[type, type]:
    strategy = STRATEGIES.get((options.framework, options.styling))
    if strategy is None:
        fw, st = options.pair
        raise ConfigurationError(f"Unsupported combination: {fw}+{st}", supported_pairs())
    return strategy


def emit(root: SceneNode, styles: Optional[Dict[str, CanonicalStyle]], options: TransformOptions) -> TransformedComponent:
    renderer_cls, strategy_cls = check_pair(options)
    if styles is None:
        styles = resolve_tree(root)
    strategy = strategy_cls()
    plan = PlanBuilder(root, styles, options, strategy.color).build()
    strategy.bind(plan)
    name = apply_convention(root.display_name, options.naming_convention)
    artifacts, files = renderer_cls(strategy, options).emit(plan, name)

    fw, st = options.pair
    return TransformedComponent(
        id=f"{root.id}:{fw}:{st}",
        name=name,
        framework=fw,
        styling=st,
        source_node_id=root.id,
        artifacts=artifacts,
        props=plan.props,
        tokens=extract_tokens(root, styles) if options.extract_tokens else [],
        file_names=files,
    )


def transform(roots: Sequence[SceneNode], options: TransformOptions,
              styles: Optional[Dict[str, CanonicalStyle]] = None) -> List[TransformedComponent]:
    """Emit every root independently; a failing root only marks its own result."""
    check_pair(options)
    if styles is None:
        styles = resolve_tree(roots)
    fw, st = options.pair
    results = []
    for root in roots:
        try:
            results.append(emit(root, styles, options))
        except Exception as exc:
            failure = TransformFailure(root.id, f"{type(exc).__name__}: {exc}")
            logger.warning("[emit] component %s failed: %s", root.id, failure.message, exc_info=True)
            results.append(TransformedComponent(
                id=f"{root.id}:{fw}:{st}",
                name=apply_convention(root.display_name, options.naming_convention),
                framework=fw,
                styling=st,
                source_node_id=root.id,
                error=failure.message,
            ))
    ok = sum(1 for r in results if r.ok)
    logger.info("[emit] %s+%s: %d/%d component(s) emitted", fw, st, ok, len(results))
    return results


def build_library_index(components: Sequence[TransformedComponent], options: TransformOptions) -> str:
    """index.ts / index.js re-exporting every successfully emitted component."""
    lines = []
    for comp in components:
        if not comp.ok:
            continue
        markup = comp.file_names.get("markup", "")
        module = markup.rsplit(".", 1)[0]
        ident = identifier(comp.name)
        if options.framework == Framework.VUE:
            lines.append(f"export {{ default as {ident} }} from './{markup}';")
        elif options.framework == Framework.ANGULAR:
            lines.append(f"export {{ {ident}Component }} from './{module}';")
        else:
            lines.append(f"export {{ {ident} }} from './{module}';")
    return "\n".join(lines) + "\n" if lines else ""
