"""
Token Extractor — canonical styles of a batch → deduplicated design tokens

從正規化後的節點樹擷取設計 token（顏色、字級、間距、陰影、邊框）。
Token order is first encounter in a depth-first walk, so the same batch
always yields the same list.
"""

import json
import logging
from typing import Dict, List, Optional

from .models import CanonicalStyle, DesignToken, GradientPaint, SolidPaint, TokenCategory, Typography
from .normalizer import iter_nodes
from .styles import resolve_style, to_hex

logger = logging.getLogger(__name__)

# 具名常數顏色，不佔用計數器
_NAMED_COLORS = {
    (0, 0, 0, 255): "color-black",
    (255, 255, 255, 255): "color-white",
}

_CATEGORY_ORDER = (
    TokenCategory.COLOR,
    TokenCategory.TYPOGRAPHY,
    TokenCategory.SPACING,
    TokenCategory.SHADOW,
    TokenCategory.BORDER,
)


def _px(value: float) -> str:
    return f"{value:g}px"


def typography_value(t: Typography) -> str:
    size = _px(t.size)
    if t.line_height:
        size = f"{size}/{_px(t.line_height)}"
    return f"{t.weight:g} {size} {t.family}"


def shadow_value(shadow) -> str:
    parts = [_px(shadow.offset_x), _px(shadow.offset_y), _px(shadow.blur), _px(shadow.spread), to_hex(shadow.color)]
    if shadow.inset:
        parts.insert(0, "inset")
    return " ".join(parts)


def border_value(border) -> str:
    return f"{_px(border.width)} {border.style} {to_hex(border.color)}"


class TokenExtractor:
    """One instance per extraction call; counters never leak across calls."""

    def __init__(self):
        self._tokens: List[DesignToken] = []
        self._seen: Dict[TokenCategory, Dict[object, DesignToken]] = {c: {} for c in TokenCategory}
        self._counters: Dict[TokenCategory, int] = {c: 0 for c in TokenCategory}

    def extract(self, roots, styles: Optional[Dict[str, CanonicalStyle]] = None) -> List[DesignToken]:
        for node, _, _ in iter_nodes(roots):
            style = styles.get(node.id) if styles else None
            if style is None:
                style = resolve_style(node)
            self._collect(node, style)
        logger.debug("[tokens] extracted %d token(s)", len(self._tokens))
        return list(self._tokens)

    def _collect(self, node, style: CanonicalStyle) -> None:
        for paint in style.fills:
            if isinstance(paint, SolidPaint):
                self._color(paint.color)
            elif isinstance(paint, GradientPaint):
                for stop in paint.stops:
                    self._color(stop.color)
        if style.text_color is not None:
            self._color(style.text_color)
        if style.border is not None:
            self._color(style.border.color)

        if style.typography is not None:
            self._add(TokenCategory.TYPOGRAPHY, style.typography, typography_value(style.typography))

        if node.layout is not None:
            al = node.layout
            for value in (al.item_spacing, al.padding_top, al.padding_right, al.padding_bottom, al.padding_left):
                if value > 0:
                    self._add(TokenCategory.SPACING, value, _px(value))

        for shadow in style.shadows:
            self._add(TokenCategory.SHADOW, shadow, shadow_value(shadow))

        if style.border is not None:
            self._add(TokenCategory.BORDER, style.border, border_value(style.border))

    def _color(self, color) -> None:
        key = (color.r, color.g, color.b, color.a)
        self._add(TokenCategory.COLOR, color, to_hex(color), _NAMED_COLORS.get(key))

    def _add(self, category: TokenCategory, key, value: str, name: Optional[str] = None) -> None:
        seen = self._seen[category]
        if key in seen:
            return
        if name is None:
            self._counters[category] += 1
            name = f"{category.value}-{self._counters[category]}"
        token = DesignToken(name=name, value=value, category=category)
        seen[key] = token
        self._tokens.append(token)


def extract_tokens(roots, styles: Optional[Dict[str, CanonicalStyle]] = None) -> List[DesignToken]:
    return TokenExtractor().extract(roots, styles)


def token_counts(tokens: List[DesignToken]) -> Dict[str, int]:
    counts = {c.value: 0 for c in _CATEGORY_ORDER}
    for token in tokens:
        counts[token.category.value] += 1
    return counts


def group_tokens(tokens: List[DesignToken]) -> Dict[str, Dict[str, object]]:
    grouped: Dict[str, Dict[str, object]] = {c.value: {} for c in _CATEGORY_ORDER}
    for token in tokens:
        grouped[token.category.value][token.name] = token.value
    return grouped


def format_tokens(tokens: List[DesignToken], fmt: str = "css") -> str:
    """Render tokens as css custom properties, scss variables, a js module or json."""
    fmt = fmt.lower()
    if fmt == "css":
        lines = [f"  --{t.name}: {t.value};" for t in tokens]
        return ":root {\n" + "\n".join(lines) + "\n}\n" if lines else ":root {\n}\n"
    if fmt == "scss":
        return "".join(f"${t.name}: {t.value};\n" for t in tokens)
    if fmt == "js":
        mapping = {t.name: t.value for t in tokens}
        return "export const tokens = " + json.dumps(mapping, indent=2, ensure_ascii=False) + ";\n"
    if fmt == "json":
        return json.dumps(group_tokens(tokens), indent=2, ensure_ascii=False) + "\n"
    raise ValueError(f"Unsupported token format: {fmt}")
