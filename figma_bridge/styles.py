"""
Style Resolver — raw paint/effect/typography layers → CanonicalStyle

Channels arrive as 0..1 floats and are stored as 8-bit ints:
round(channel * 255) clamped to [0, 255]. Paint opacity multiplies alpha.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .models import (
    RGBA,
    Border,
    CanonicalStyle,
    GradientPaint,
    GradientStop,
    ImagePaint,
    NodeKind,
    PaintLayer,
    Radius,
    RawColor,
    SceneNode,
    Shadow,
    SolidPaint,
    TRANSPARENT,
    Typography,
)
from .normalizer import iter_nodes

logger = logging.getLogger(__name__)

_GRADIENT_KINDS = {
    "GRADIENT_LINEAR": "linear",
    "GRADIENT_RADIAL": "radial",
    "GRADIENT_ANGULAR": "angular",
    "GRADIENT_DIAMOND": "diamond",
}

_SHADOW_KINDS = {"DROP_SHADOW": False, "INNER_SHADOW": True}

_NEUTRAL_BLEND_MODES = {None, "NORMAL", "PASS_THROUGH"}

# Figma 匯出沒有字體資訊時的預設
DEFAULT_FONT_FAMILY = "Inter"
DEFAULT_FONT_SIZE = 14.0
DEFAULT_FONT_WEIGHT = 400.0
DEFAULT_SHADOW_COLOR = RawColor(0.0, 0.0, 0.0, 0.25)

_ALIGN = {"LEFT": "left", "CENTER": "center", "RIGHT": "right", "JUSTIFIED": "justify"}


# ─── Color helpers ───

def channel_to_byte(value: float) -> int:
    return max(0, min(255, round(value * 255)))


def to_rgba(color: Optional[RawColor], opacity: float = 1.0) -> RGBA:
    if color is None:
        return TRANSPARENT
    return RGBA(
        channel_to_byte(color.r),
        channel_to_byte(color.g),
        channel_to_byte(color.b),
        channel_to_byte(color.a * opacity),
    )


def to_hex(color: RGBA) -> str:
    if color.is_opaque:
        return f"#{color.r:02x}{color.g:02x}{color.b:02x}"
    return f"#{color.r:02x}{color.g:02x}{color.b:02x}{color.a:02x}"


def format_alpha(alpha: int) -> str:
    return f"{round(alpha / 255, 2):g}"


def to_rgb(color: RGBA) -> str:
    if color.is_opaque:
        return f"rgb({color.r}, {color.g}, {color.b})"
    return f"rgba({color.r}, {color.g}, {color.b}, {format_alpha(color.a)})"


def relative_luminance(color: RGBA) -> float:
    """WCAG 2.x relative luminance of the sRGB color (alpha ignored)."""
    def linear(c: int) -> float:
        s = c / 255
        return s / 12.92 if s <= 0.03928 else ((s + 0.055) / 1.055) ** 2.4

    return 0.2126 * linear(color.r) + 0.7152 * linear(color.g) + 0.0722 * linear(color.b)


def contrast_ratio(fg: RGBA, bg: RGBA) -> float:
    l1, l2 = relative_luminance(fg), relative_luminance(bg)
    lighter, darker = max(l1, l2), min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)


# ════════════════════════════════════════════════════════════
# Resolver
# ════════════════════════════════════════════════════════════

class StyleResolver:

    def resolve(self, node: SceneNode) -> CanonicalStyle:
        paints = self._resolve_paints(node.fills, node.id)
        text_color = None
        typography = None
        if node.kind == NodeKind.TEXT:
            # 文字節點的 fill 是文字顏色而不是背景
            solids = [p for p in paints if isinstance(p, SolidPaint)]
            text_color = solids[-1].color if solids else RGBA(0, 0, 0)
            paints = ()
            typography = self._resolve_typography(node)

        return CanonicalStyle(
            fills=paints,
            border=self._resolve_border(node),
            radius=self._resolve_radius(node),
            shadows=self._resolve_shadows(node),
            typography=typography,
            text_color=text_color,
            opacity=max(0.0, min(1.0, node.opacity)),
        )

    def _resolve_paints(self, layers: Iterable[PaintLayer], node_id: str) -> tuple:
        out = []
        for layer in layers:
            if not layer.visible:
                continue
            if layer.blend_mode not in _NEUTRAL_BLEND_MODES:
                logger.debug("[styles] %s: blend mode %s ignored", node_id, layer.blend_mode)
            if layer.type == "SOLID":
                out.append(SolidPaint(to_rgba(layer.color, layer.opacity)))
            elif layer.type in _GRADIENT_KINDS:
                stops = tuple(
                    GradientStop(position=s.position, color=to_rgba(s.color, layer.opacity))
                    for s in layer.gradient_stops
                )
                out.append(GradientPaint(kind=_GRADIENT_KINDS[layer.type], stops=stops))
            elif layer.type == "IMAGE":
                out.append(ImagePaint(image_ref=layer.image_ref, scale_mode=layer.scale_mode or "FILL"))
            else:
                logger.debug("[styles] %s: unsupported paint type %s skipped", node_id, layer.type)
        return tuple(out)

    def _resolve_border(self, node: SceneNode) -> Optional[Border]:
        for layer in node.strokes:
            if not layer.visible:
                continue
            if layer.type != "SOLID":
                logger.debug("[styles] %s: non-solid stroke %s skipped", node.id, layer.type)
                continue
            return Border(
                width=node.stroke_weight or 1.0,
                style="dashed" if node.stroke_dashes else "solid",
                color=to_rgba(layer.color, layer.opacity),
            )
        return None

    def _resolve_radius(self, node: SceneNode) -> Optional[Radius]:
        cr = node.corner_radius
        if cr is None:
            return None
        if isinstance(cr, tuple):
            return Radius(*cr)
        return Radius(cr, cr, cr, cr)

    def _resolve_shadows(self, node: SceneNode) -> tuple:
        shadows: List[Shadow] = []
        for effect in node.effects:
            if not effect.visible:
                continue
            if effect.type not in _SHADOW_KINDS:
                logger.debug("[styles] %s: effect %s skipped", node.id, effect.type)
                continue
            shadows.append(Shadow(
                offset_x=effect.offset_x,
                offset_y=effect.offset_y,
                blur=effect.radius,
                spread=effect.spread,
                color=to_rgba(effect.color or DEFAULT_SHADOW_COLOR),
                inset=_SHADOW_KINDS[effect.type],
            ))
        return tuple(shadows)

    def _resolve_typography(self, node: SceneNode) -> Typography:
        raw = node.typography
        if raw is None:
            return Typography(DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE, DEFAULT_FONT_WEIGHT, None, 0.0)
        return Typography(
            family=raw.font_family or DEFAULT_FONT_FAMILY,
            size=raw.font_size if raw.font_size is not None else DEFAULT_FONT_SIZE,
            weight=raw.font_weight if raw.font_weight is not None else DEFAULT_FONT_WEIGHT,
            line_height=raw.line_height,
            letter_spacing=raw.letter_spacing or 0.0,
            align=_ALIGN.get((raw.text_align or "LEFT").upper(), "left"),
        )


_resolver = StyleResolver()


def resolve_style(node: SceneNode) -> CanonicalStyle:
    return _resolver.resolve(node)


def resolve_tree(roots) -> Dict[str, CanonicalStyle]:
    """node id → CanonicalStyle for every node under `roots` (pre-order)."""
    return {node.id: _resolver.resolve(node) for node, _, _ in iter_nodes(roots)}
