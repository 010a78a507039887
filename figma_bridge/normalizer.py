"""
normalizer.py — Raw exported node dicts → canonical SceneNode tree

Accepts the plugin / REST export shape:
  id, name, type|kind, customName, visible, locked, absoluteBoundingBox,
  fills, strokes, strokeWeight, cornerRadius, rectangleCornerRadii, effects,
  characters, style, layoutMode + paddings, componentId, componentProperties,
  children

Every problem in a batch is collected before failing; nothing is returned
for a batch with any invalid node.
"""

import logging
from typing import Iterator, List, Optional, Sequence, Tuple

from .errors import ValidationError, ValidationIssue
from .models import (
    FIGMA_KIND_MAP,
    AutoLayout,
    EffectLayer,
    GradientStopRaw,
    NodeKind,
    PaintLayer,
    RawColor,
    SceneNode,
    TypographyRaw,
)

logger = logging.getLogger(__name__)

# Keys consumed by the normalizer; anything else lands in `extension`.
KNOWN_KEYS = {
    "id", "name", "type", "kind", "customName", "visible", "locked", "removed",
    "opacity", "absoluteBoundingBox", "x", "y", "width", "height",
    "fills", "strokes", "strokeWeight", "strokeDashes", "cornerRadius",
    "rectangleCornerRadii", "effects", "characters", "style", "fontSize",
    "fontName", "letterSpacing", "lineHeight", "textAlignHorizontal",
    "textAlignVertical", "layoutMode", "itemSpacing", "paddingTop",
    "paddingRight", "paddingBottom", "paddingLeft", "primaryAxisAlignItems",
    "counterAxisAlignItems", "primaryAxisSizingMode", "counterAxisSizingMode",
    "componentId", "componentName", "componentProperties", "children",
    "pluginData",
}

_CANONICAL_KINDS = {kind.value: kind for kind in NodeKind}


def _num(value, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def _opt_num(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class TreeNormalizer:

    def normalize(self, raw_components: Sequence[dict]) -> List[SceneNode]:
        issues: List[ValidationIssue] = []
        seen_ids: dict[str, str] = {}
        roots: List[SceneNode] = []

        if not isinstance(raw_components, (list, tuple)):
            raise ValidationError([ValidationIssue("components", "components", "must be a list of nodes")])

        # (raw, path, parent node, ancestor ids, ancestor object ids)
        stack: List[Tuple[dict, str, Optional[SceneNode], frozenset, frozenset]] = []
        for index in reversed(range(len(raw_components))):
            stack.append((raw_components[index], f"components[{index}]", None, frozenset(), frozenset()))

        while stack:
            raw, path, parent, ancestor_ids, ancestor_objs = stack.pop()

            if not isinstance(raw, dict):
                issues.append(ValidationIssue(path, "node", "must be an object"))
                continue
            if id(raw) in ancestor_objs:
                issues.append(ValidationIssue(path, "children", "node is its own ancestor"))
                continue

            node_id = raw.get("id")
            node_ok = True
            if not isinstance(node_id, str) or not node_id.strip():
                issues.append(ValidationIssue(path, "id", "missing or empty id"))
                node_ok = False
            elif node_id in ancestor_ids:
                issues.append(ValidationIssue(path, "id", f"id '{node_id}' appears as its own descendant"))
                continue
            elif node_id in seen_ids:
                issues.append(ValidationIssue(path, "id", f"duplicate id '{node_id}' (first seen at {seen_ids[node_id]})"))
                node_ok = False
            else:
                seen_ids[node_id] = path

            raw_kind = raw.get("kind", raw.get("type"))
            if not isinstance(raw_kind, str) or not raw_kind.strip():
                issues.append(ValidationIssue(path, "kind", "missing node kind"))
                node_ok = False

            raw_children = raw.get("children", [])
            if raw_children is None:
                raw_children = []
            if not isinstance(raw_children, list):
                issues.append(ValidationIssue(path, "children", "must be a list"))
                raw_children = []

            node = None
            if node_ok and not issues:
                node = self._convert_node(raw, raw_kind)
                if parent is None:
                    roots.append(node)
                else:
                    parent.children.append(node)

            child_ids = ancestor_ids | {node_id} if isinstance(node_id, str) else ancestor_ids
            child_objs = ancestor_objs | {id(raw)}
            for index in reversed(range(len(raw_children))):
                stack.append((raw_children[index], f"{path}.children[{index}]", node, child_ids, child_objs))

        if issues:
            logger.warning("[normalize] rejected batch with %d issue(s)", len(issues))
            raise ValidationError(issues)

        logger.debug("[normalize] %d root(s), %d node(s)", len(roots), len(seen_ids))
        return roots

    # ════════════════════════════════════════════════════════════
    # Node Conversion
    # ════════════════════════════════════════════════════════════

    def _determine_kind(self, raw_kind: str) -> NodeKind:
        if raw_kind in FIGMA_KIND_MAP:
            return FIGMA_KIND_MAP[raw_kind]
        lowered = raw_kind.strip().lower()
        if lowered in _CANONICAL_KINDS:
            return _CANONICAL_KINDS[lowered]
        if lowered.upper() in FIGMA_KIND_MAP:
            return FIGMA_KIND_MAP[lowered.upper()]
        return NodeKind.UNRECOGNIZED

    def _convert_node(self, raw: dict, raw_kind: str) -> SceneNode:
        kind = self._determine_kind(raw_kind)
        bbox = raw.get("absoluteBoundingBox") or {}
        name = raw.get("name")
        custom_name = raw.get("customName")
        if not isinstance(custom_name, str) or not custom_name.strip():
            custom_name = None

        node = SceneNode(
            id=raw["id"],
            name=name if isinstance(name, str) and name else raw_kind,
            kind=kind,
            custom_name=custom_name,
            x=_num(bbox.get("x", raw.get("x"))),
            y=_num(bbox.get("y", raw.get("y"))),
            width=_num(bbox.get("width", raw.get("width"))),
            height=_num(bbox.get("height", raw.get("height"))),
            visible=raw.get("visible", True) is not False,
            locked=raw.get("locked", False) is True,
            opacity=_num(raw.get("opacity"), 1.0),
            fills=self._build_paints(raw.get("fills")),
            strokes=self._build_paints(raw.get("strokes")),
            stroke_weight=_num(raw.get("strokeWeight")),
            stroke_dashes=[_num(d) for d in raw.get("strokeDashes") or [] if _opt_num(d) is not None],
            corner_radius=self._build_radius(raw),
            effects=self._build_effects(raw.get("effects")),
            layout=self._build_layout(raw),
            component_id=raw.get("componentId") if isinstance(raw.get("componentId"), str) else None,
            component_properties=dict(raw.get("componentProperties") or {}),
            raw_kind=raw_kind,
        )

        # ─── Text ───
        if kind == NodeKind.TEXT:
            chars = raw.get("characters")
            node.characters = chars if isinstance(chars, str) else ""
            node.typography = self._build_typography(raw)

        # ─── Extension bag ───
        if kind == NodeKind.UNRECOGNIZED:
            node.extension = {k: v for k, v in raw.items() if k != "children"}
        else:
            node.extension = {k: v for k, v in raw.items() if k not in KNOWN_KEYS}
        return node

    def _build_color(self, raw) -> Optional[RawColor]:
        if not isinstance(raw, dict):
            return None
        return RawColor(
            r=_num(raw.get("r")),
            g=_num(raw.get("g")),
            b=_num(raw.get("b")),
            a=_num(raw.get("a"), 1.0),
        )

    def _build_paints(self, raw_paints) -> List[PaintLayer]:
        if not isinstance(raw_paints, list):
            return []
        paints = []
        for p in raw_paints:
            if not isinstance(p, dict):
                continue
            stops = []
            for s in p.get("gradientStops") or []:
                if isinstance(s, dict):
                    stops.append(GradientStopRaw(
                        position=_num(s.get("position")),
                        color=self._build_color(s.get("color")) or RawColor(),
                    ))
            paints.append(PaintLayer(
                type=str(p.get("type", "SOLID")),
                visible=p.get("visible", True) is not False,
                opacity=_num(p.get("opacity"), 1.0),
                color=self._build_color(p.get("color")),
                gradient_stops=stops,
                image_ref=p.get("imageRef") or p.get("imageHash"),
                scale_mode=p.get("scaleMode"),
                blend_mode=p.get("blendMode"),
            ))
        return paints

    def _build_effects(self, raw_effects) -> List[EffectLayer]:
        if not isinstance(raw_effects, list):
            return []
        effects = []
        for e in raw_effects:
            if not isinstance(e, dict):
                continue
            offset = e.get("offset") or {}
            effects.append(EffectLayer(
                type=str(e.get("type", "DROP_SHADOW")),
                visible=e.get("visible", True) is not False,
                radius=_num(e.get("radius")),
                spread=_num(e.get("spread")),
                offset_x=_num(offset.get("x")),
                offset_y=_num(offset.get("y")),
                color=self._build_color(e.get("color")),
            ))
        return effects

    def _build_radius(self, raw: dict):
        corners = raw.get("rectangleCornerRadii")
        if isinstance(corners, list) and len(corners) == 4 and all(_opt_num(c) is not None for c in corners):
            return tuple(float(c) for c in corners)
        return _opt_num(raw.get("cornerRadius"))

    def _build_layout(self, raw: dict) -> Optional[AutoLayout]:
        mode = raw.get("layoutMode")
        if mode not in ("HORIZONTAL", "VERTICAL"):
            return None
        return AutoLayout(
            direction=mode,
            item_spacing=_num(raw.get("itemSpacing")),
            padding_top=_num(raw.get("paddingTop")),
            padding_right=_num(raw.get("paddingRight")),
            padding_bottom=_num(raw.get("paddingBottom")),
            padding_left=_num(raw.get("paddingLeft")),
            primary_align=raw.get("primaryAxisAlignItems") or "MIN",
            counter_align=raw.get("counterAxisAlignItems") or "MIN",
        )

    def _build_typography(self, raw: dict) -> TypographyRaw:
        style = raw.get("style") if isinstance(raw.get("style"), dict) else {}
        font_name = raw.get("fontName") if isinstance(raw.get("fontName"), dict) else {}
        line_height = style.get("lineHeightPx")
        if line_height is None and isinstance(raw.get("lineHeight"), dict):
            line_height = raw["lineHeight"].get("value")
        letter_spacing = style.get("letterSpacing")
        if letter_spacing is None and isinstance(raw.get("letterSpacing"), dict):
            letter_spacing = raw["letterSpacing"].get("value")
        return TypographyRaw(
            font_family=style.get("fontFamily") or font_name.get("family"),
            font_size=_opt_num(style.get("fontSize", raw.get("fontSize"))),
            font_weight=_opt_num(style.get("fontWeight")),
            line_height=_opt_num(line_height),
            letter_spacing=_opt_num(letter_spacing),
            text_align=style.get("textAlignHorizontal") or raw.get("textAlignHorizontal"),
        )


def normalize_batch(raw_components: Sequence[dict]) -> List[SceneNode]:
    return TreeNormalizer().normalize(raw_components)


def check_tree(roots: Sequence[SceneNode]) -> List[SceneNode]:
    """Id-uniqueness and cycle check for SceneNode trees built without `normalize_batch`."""
    issues: List[ValidationIssue] = []
    seen_ids: dict[str, str] = {}
    stack: List[Tuple[SceneNode, str, frozenset]] = [
        (roots[index], f"components[{index}]", frozenset()) for index in reversed(range(len(roots)))
    ]
    while stack:
        node, path, ancestors = stack.pop()
        if id(node) in ancestors:
            issues.append(ValidationIssue(path, "children", "node is its own ancestor"))
            continue
        if not isinstance(node.id, str) or not node.id.strip():
            issues.append(ValidationIssue(path, "id", "missing or empty id"))
        elif node.id in seen_ids:
            issues.append(ValidationIssue(path, "id", f"duplicate id '{node.id}' (first seen at {seen_ids[node.id]})"))
        else:
            seen_ids[node.id] = path
        below = ancestors | {id(node)}
        for index in reversed(range(len(node.children))):
            stack.append((node.children[index], f"{path}.children[{index}]", below))

    if issues:
        logger.warning("[normalize] rejected prebuilt tree with %d issue(s)", len(issues))
        raise ValidationError(issues)
    return list(roots)


# ════════════════════════════════════════════════════════════
# Traversal helpers
# ════════════════════════════════════════════════════════════

def iter_nodes(roots) -> Iterator[Tuple[SceneNode, int, Optional[SceneNode]]]:
    """Depth-first pre-order walk yielding (node, depth, parent); roots have depth 1."""
    if isinstance(roots, SceneNode):
        roots = [roots]
    stack = [(root, 1, None) for root in reversed(list(roots))]
    visited: set[int] = set()
    while stack:
        node, depth, parent = stack.pop()
        if id(node) in visited:
            continue
        visited.add(id(node))
        yield node, depth, parent
        for child in reversed(node.children):
            stack.append((child, depth + 1, node))


def find_node(roots, node_id: str) -> Optional[SceneNode]:
    for node, _, _ in iter_nodes(roots):
        if node.id == node_id:
            return node
    return None


def count_nodes(roots) -> int:
    return sum(1 for _ in iter_nodes(roots))


def node_to_dict(node: SceneNode) -> dict:
    """Serialize a normalized node back to the export shape (children included)."""
    out = {}
    stack = [(node, out)]
    while stack:
        current, target = stack.pop()
        target.update(_node_fields(current))
        if current.children:
            target["children"] = [{} for _ in current.children]
            for child, slot in zip(current.children, target["children"]):
                stack.append((child, slot))
    return out


def _color_dict(color: Optional[RawColor]) -> Optional[dict]:
    if color is None:
        return None
    return {"r": color.r, "g": color.g, "b": color.b, "a": color.a}


def _node_fields(node: SceneNode) -> dict:
    data = dict(node.extension) if node.kind != NodeKind.UNRECOGNIZED else {}
    data.update({
        "id": node.id,
        "name": node.name,
        "type": node.raw_kind or node.kind.value,
        "visible": node.visible,
        "locked": node.locked,
        "absoluteBoundingBox": {"x": node.x, "y": node.y, "width": node.width, "height": node.height},
    })
    if node.custom_name:
        data["customName"] = node.custom_name
    if node.opacity != 1.0:
        data["opacity"] = node.opacity
    paint_lists = (("fills", node.fills), ("strokes", node.strokes))
    for key, paints in paint_lists:
        data[key] = [
            {
                "type": p.type,
                "visible": p.visible,
                "opacity": p.opacity,
                **({"color": _color_dict(p.color)} if p.color else {}),
                **({"gradientStops": [{"position": s.position, "color": _color_dict(s.color)}
                                      for s in p.gradient_stops]} if p.gradient_stops else {}),
                **({"imageRef": p.image_ref} if p.image_ref else {}),
            }
            for p in paints
        ]
    if node.stroke_weight:
        data["strokeWeight"] = node.stroke_weight
    if isinstance(node.corner_radius, tuple):
        data["rectangleCornerRadii"] = list(node.corner_radius)
    elif node.corner_radius is not None:
        data["cornerRadius"] = node.corner_radius
    data["effects"] = [
        {
            "type": e.type, "visible": e.visible, "radius": e.radius, "spread": e.spread,
            "offset": {"x": e.offset_x, "y": e.offset_y},
            **({"color": _color_dict(e.color)} if e.color else {}),
        }
        for e in node.effects
    ]
    if node.kind == NodeKind.TEXT:
        data["characters"] = node.characters or ""
        t = node.typography or TypographyRaw()
        data["style"] = {
            k: v for k, v in {
                "fontFamily": t.font_family, "fontSize": t.font_size, "fontWeight": t.font_weight,
                "lineHeightPx": t.line_height, "letterSpacing": t.letter_spacing,
                "textAlignHorizontal": t.text_align,
            }.items() if v is not None
        }
    if node.layout:
        al = node.layout
        data.update({
            "layoutMode": al.direction, "itemSpacing": al.item_spacing,
            "paddingTop": al.padding_top, "paddingRight": al.padding_right,
            "paddingBottom": al.padding_bottom, "paddingLeft": al.padding_left,
            "primaryAxisAlignItems": al.primary_align, "counterAxisAlignItems": al.counter_align,
        })
    if node.component_id:
        data["componentId"] = node.component_id
    if node.component_properties:
        data["componentProperties"] = dict(node.component_properties)
    if node.kind == NodeKind.UNRECOGNIZED:
        for key, value in node.extension.items():
            data.setdefault(key, value)
    return data
