"""
Pattern Analyzer — structural statistics and heuristic classification

Each root is walked once for node count, depth, kind histogram, distinct
styles, accessibility and cost. Classification is tried in priority order
list → card → form → nav → grid; the first match wins.
"""

import logging
from collections import Counter
from statistics import median
from typing import Dict, List, Optional, Sequence

from .models import (
    AccessibilityFinding,
    CanonicalStyle,
    ComponentAnalysis,
    NodeKind,
    Pattern,
    SceneNode,
)
from .normalizer import iter_nodes
from .styles import contrast_ratio, resolve_style

logger = logging.getLogger(__name__)

# ─── Weights / tolerances ───

NODE_WEIGHT = 1.0
DEPTH_WEIGHT = 2.0
STYLE_WEIGHT = 1.5

SIZE_TOLERANCE = 0.2        # relative, list items
NAV_SIZE_TOLERANCE = 0.5    # relative, cross-axis size of nav items
POSITION_TOLERANCE = 2.0    # px floor for alignment / spacing checks
SPACING_TOLERANCE = 0.1     # relative to mean spacing

MIN_CONTRAST = 3.0

BUTTON_MAX_WIDTH = 240.0
BUTTON_MAX_HEIGHT = 64.0
BUTTON_MAX_CHARS = 24
INPUT_MAX_HEIGHT = 80.0

PLACEHOLDER_TEXTS = {"text", "label", "placeholder", "type something", "lorem ipsum"}

KIND_COST = {
    NodeKind.CONTAINER: 1.0,
    NodeKind.GROUP: 0.5,
    NodeKind.TEXT: 1.5,
    NodeKind.VECTOR: 2.0,
    NodeKind.RECTANGLE: 0.5,
    NodeKind.ELLIPSE: 0.5,
    NodeKind.LINE: 0.25,
    NodeKind.COMPONENT: 1.0,
    NodeKind.COMPONENT_INSTANCE: 1.5,
    NodeKind.UNRECOGNIZED: 1.0,
}

_BOXLIKE = {NodeKind.CONTAINER, NodeKind.GROUP, NodeKind.COMPONENT, NodeKind.COMPONENT_INSTANCE, NodeKind.RECTANGLE}
_CONTAINERS = {NodeKind.CONTAINER, NodeKind.GROUP, NodeKind.COMPONENT, NodeKind.COMPONENT_INSTANCE}


def complexity_bucket(node_count: int, depth: int) -> str:
    if node_count <= 5 and depth <= 2:
        return "simple"
    if node_count <= 15 and depth <= 4:
        return "moderate"
    if node_count <= 30 and depth <= 6:
        return "complex"
    return "very-complex"


def is_parametrizable(text: Optional[str]) -> bool:
    value = " ".join((text or "").split()).lower()
    if not value or value in PLACEHOLDER_TEXTS:
        return False
    return not value.startswith("lorem ipsum")


def _close(a: float, b: float, tolerance: float) -> bool:
    scale = max(abs(a), abs(b))
    return abs(a - b) <= max(POSITION_TOLERANCE, tolerance * scale)


def _spread(values: Sequence[float]) -> float:
    return max(values) - min(values) if values else 0.0


def _buckets(values: Sequence[float], tolerance: float) -> int:
    """Count position clusters: sorted values closer than `tolerance` share a bucket."""
    count = 0
    last = None
    for v in sorted(values):
        if last is None or v - last > tolerance:
            count += 1
        last = v
    return count


class PatternAnalyzer:

    def analyze(self, roots: Sequence[SceneNode], styles: Optional[Dict[str, CanonicalStyle]] = None) -> List[ComponentAnalysis]:
        return [self.analyze_component(root, styles) for root in roots]

    def analyze_component(self, root: SceneNode, styles: Optional[Dict[str, CanonicalStyle]] = None) -> ComponentAnalysis:
        histogram: Counter = Counter()
        distinct_styles = set()
        findings: List[AccessibilityFinding] = []
        backgrounds: Dict[str, object] = {}
        resolved: Dict[str, CanonicalStyle] = {}
        node_count = 0
        max_depth = 0
        cost = 0.0
        has_component_ref = False
        param_texts = 0

        for node, depth, parent in iter_nodes(root):
            style = styles.get(node.id) if styles else None
            if style is None:
                style = resolve_style(node)
            resolved[node.id] = style

            node_count += 1
            max_depth = max(max_depth, depth)
            histogram[node.kind.value] += 1
            cost += KIND_COST.get(node.kind, 1.0)
            if not style.is_empty:
                distinct_styles.add(style)
            if node.kind in (NodeKind.COMPONENT, NodeKind.COMPONENT_INSTANCE):
                has_component_ref = True

            inherited = backgrounds.get(parent.id) if parent is not None else None
            backgrounds[node.id] = style.background or inherited

            if node.kind == NodeKind.TEXT:
                if not (node.characters or "").strip():
                    findings.append(AccessibilityFinding(
                        node.id, node.display_name, "missing-text-content", "missing text content"))
                elif is_parametrizable(node.characters):
                    param_texts += 1
                if style.text_color is not None and inherited is not None:
                    ratio = contrast_ratio(style.text_color, inherited)
                    if ratio < MIN_CONTRAST:
                        findings.append(AccessibilityFinding(
                            node.id, node.display_name, "low-contrast",
                            f"low contrast ({ratio:.2f}:1, minimum {MIN_CONTRAST:g}:1)"))

        complexity = NODE_WEIGHT * node_count + DEPTH_WEIGHT * max_depth + STYLE_WEIGHT * len(distinct_styles)
        reusability = (0.5 if has_component_ref else 0.0) + 0.25 * min(param_texts, 2)
        pattern = self.classify(root, max_depth, resolved)

        analysis = ComponentAnalysis(
            component_id=root.id,
            name=root.display_name,
            node_count=node_count,
            max_depth=max_depth,
            kind_histogram=dict(histogram),
            pattern=pattern,
            complexity_score=round(complexity, 2),
            complexity_bucket=complexity_bucket(node_count, max_depth),
            reusability_score=round(reusability, 2),
            accessibility=findings,
            performance_cost=round(cost, 2),
        )
        analysis.recommendations = self._recommend(analysis)
        logger.debug("[analyze] %s → %s (%d nodes)", root.id, pattern.value, node_count)
        return analysis

    # ════════════════════════════════════════════════════════════
    # Classification
    # ════════════════════════════════════════════════════════════

    def classify(self, root: SceneNode, max_depth: int, styles: Dict[str, CanonicalStyle]) -> Pattern:
        if self._is_list(root):
            return Pattern.LIST
        if self._is_card(root, max_depth, styles):
            return Pattern.CARD
        if self._is_form(root, styles):
            return Pattern.FORM
        if self._is_nav(root, max_depth):
            return Pattern.NAV
        if self._is_grid(root):
            return Pattern.GRID
        return Pattern.UNCLASSIFIED

    def _is_list(self, root: SceneNode) -> bool:
        items = root.children
        if len(items) < 3:
            return False
        if len({c.kind for c in items}) != 1:
            return False
        ref_w = median(c.width for c in items)
        ref_h = median(c.height for c in items)
        if not all(_close(c.width, ref_w, SIZE_TOLERANCE) and _close(c.height, ref_h, SIZE_TOLERANCE) for c in items):
            return False
        if _spread([len(c.children) for c in items]) > 1:
            return False
        if root.layout is not None:
            return True
        return self._evenly_spaced(items, "y", "x") or self._evenly_spaced(items, "x", "y")

    def _evenly_spaced(self, items: Sequence[SceneNode], axis: str, cross: str) -> bool:
        ordered = sorted(items, key=lambda n: getattr(n, axis))
        deltas = [getattr(b, axis) - getattr(a, axis) for a, b in zip(ordered, ordered[1:])]
        if any(d <= POSITION_TOLERANCE for d in deltas):
            return False
        mean = sum(deltas) / len(deltas)
        if _spread(deltas) > max(POSITION_TOLERANCE, SPACING_TOLERANCE * mean):
            return False
        return _spread([getattr(n, cross) for n in items]) <= POSITION_TOLERANCE

    def _is_card(self, root: SceneNode, max_depth: int, styles: Dict[str, CanonicalStyle]) -> bool:
        if root.kind not in _CONTAINERS or max_depth > 3:
            return False
        regions = 0
        texts = 0
        for node, _, _ in iter_nodes(root.children):
            style = styles[node.id]
            if node.kind == NodeKind.TEXT:
                texts += 1
            elif style.images or (node.is_leaf and style.fills):
                regions += 1
        return regions == 1 and texts >= 1

    def _is_button(self, node: SceneNode, styles: Dict[str, CanonicalStyle]) -> bool:
        if node.kind not in _CONTAINERS or not styles[node.id].fills:
            return False
        if node.width > BUTTON_MAX_WIDTH or node.height > BUTTON_MAX_HEIGHT:
            return False
        if len(node.children) != 1 or node.children[0].kind != NodeKind.TEXT:
            return False
        label = (node.children[0].characters or "").strip()
        return 0 < len(label) <= BUTTON_MAX_CHARS and len(label.split()) <= 3

    def _is_input_box(self, node: SceneNode, styles: Dict[str, CanonicalStyle]) -> bool:
        if node.kind not in _BOXLIKE or node.height > INPUT_MAX_HEIGHT:
            return False
        style = styles[node.id]
        if style.border is None and not style.fills:
            return False
        return not self._is_button(node, styles)

    def _is_form(self, root: SceneNode, styles: Dict[str, CanonicalStyle]) -> bool:
        pairs = 0
        has_button = False
        for node, _, _ in iter_nodes(root):
            if node is not root and self._is_button(node, styles):
                has_button = True
            texts = sum(1 for c in node.children if c.kind == NodeKind.TEXT)
            boxes = sum(1 for c in node.children if self._is_input_box(c, styles))
            pairs += min(texts, boxes)
        return pairs >= 2 and has_button

    def _is_nav(self, root: SceneNode, max_depth: int) -> bool:
        if max_depth > 2:
            return False
        leaves = [c for c in root.children if c.is_leaf and c.kind in (NodeKind.TEXT, NodeKind.VECTOR)]
        if len(leaves) < 3:
            return False
        horizontal = _spread([c.y for c in leaves]) <= POSITION_TOLERANCE
        vertical = _spread([c.x for c in leaves]) <= POSITION_TOLERANCE
        if horizontal:
            sizes = [c.height for c in leaves]
        elif vertical:
            sizes = [c.width for c in leaves]
        else:
            return False
        ref = median(sizes)
        return all(_close(s, ref, NAV_SIZE_TOLERANCE) for s in sizes)

    def _is_grid(self, root: SceneNode) -> bool:
        items = root.children
        if len(items) < 4:
            return False
        col_tol = max(POSITION_TOLERANCE, SPACING_TOLERANCE * median(c.width for c in items))
        row_tol = max(POSITION_TOLERANCE, SPACING_TOLERANCE * median(c.height for c in items))
        cols = _buckets([c.x for c in items], col_tol)
        rows = _buckets([c.y for c in items], row_tol)
        if rows < 2 or cols < 2:
            return False
        # 最後一列可以不滿
        return (rows - 1) * cols < len(items) <= rows * cols

    # ─── Recommendations ───

    def _recommend(self, analysis: ComponentAnalysis) -> List[str]:
        recs = []
        if analysis.complexity_bucket == "very-complex":
            recs.append("Consider breaking down very complex components into smaller, reusable parts")
        containers = analysis.kind_histogram.get(NodeKind.CONTAINER.value, 0)
        if analysis.node_count > 3 and containers > analysis.node_count * 0.7:
            recs.append("Most nodes are plain containers; consider more semantic component types")
        if analysis.accessibility:
            recs.append(f"Resolve {len(analysis.accessibility)} accessibility finding(s)")
        if analysis.pattern == Pattern.LIST:
            recs.append("Render the repeated children from a data array")
        elif analysis.pattern == Pattern.GRID:
            recs.append("Use a CSS grid for the two-dimensional layout")
        if analysis.reusability_score == 0.0:
            recs.append("Expose text content as props to make the component reusable")
        return recs


def analyze_components(roots: Sequence[SceneNode], styles: Optional[Dict[str, CanonicalStyle]] = None) -> List[ComponentAnalysis]:
    return PatternAnalyzer().analyze(roots, styles)


def summarize(analyses: Sequence[ComponentAnalysis]) -> dict:
    """Batch overview: totals, average depth, merged kind histogram, bucket and pattern counts."""
    kinds: Counter = Counter()
    buckets = {"simple": 0, "moderate": 0, "complex": 0, "very-complex": 0}
    patterns: Counter = Counter()
    recommendations: List[str] = []
    for a in analyses:
        kinds.update(a.kind_histogram)
        buckets[a.complexity_bucket] += 1
        patterns[a.pattern.value] += 1
        for rec in a.recommendations:
            if rec not in recommendations:
                recommendations.append(rec)
    depths = [a.max_depth for a in analyses]
    return {
        "totalComponents": len(analyses),
        "totalNodes": sum(a.node_count for a in analyses),
        "averageDepth": round(sum(depths) / len(depths), 2) if depths else 0,
        "componentTypes": dict(kinds),
        "complexity": buckets,
        "patterns": dict(patterns),
        "recommendations": recommendations,
    }
