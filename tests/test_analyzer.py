"""
PatternAnalyzer 測試：結構統計、樣式分類、無障礙檢查、批次摘要。
"""
import pytest

from figma_bridge.analyzer import (
    complexity_bucket,
    is_parametrizable,
    PatternAnalyzer,
    analyze_components,
    summarize,
)
from figma_bridge.models import Pattern
from figma_bridge.normalizer import normalize_batch
from figma_bridge.styles import resolve_tree

from conftest import box, solid, text


def _analyze(payload):
    roots = normalize_batch(payload)
    return analyze_components(roots, resolve_tree(roots))


# ─── 結構統計 ────────────────────────────────────────────────────────────────

class TestStatistics:

    def test_lone_root_depth_one(self):
        analysis = _analyze([box("1", "Solo")])[0]
        assert analysis.node_count == 1
        assert analysis.max_depth == 1
        assert analysis.kind_histogram == {"container": 1}

    def test_counts_and_histogram(self, button_payload):
        analysis = _analyze(button_payload)[0]
        assert analysis.node_count == 2
        assert analysis.max_depth == 2
        assert analysis.kind_histogram == {"container": 1, "text": 1}

    def test_complexity_score(self, button_payload):
        analysis = _analyze(button_payload)[0]
        # 2 nodes, depth 2, 2 distinct styles
        assert analysis.complexity_score == pytest.approx(1.0 * 2 + 2.0 * 2 + 1.5 * 2)
        assert analysis.complexity_bucket == "simple"

    def test_performance_cost(self, button_payload):
        analysis = _analyze(button_payload)[0]
        assert analysis.performance_cost == pytest.approx(1.0 + 1.5)

    @pytest.mark.parametrize("nodes, depth, bucket", [
        (3, 2, "simple"),
        (10, 3, "moderate"),
        (20, 5, "complex"),
        (50, 3, "very-complex"),
    ])
    def test_buckets(self, nodes, depth, bucket):
        assert complexity_bucket(nodes, depth) == bucket


# ─── Reusability ─────────────────────────────────────────────────────────────

class TestReusability:

    def test_placeholder_text_not_parametrizable(self):
        assert not is_parametrizable("Text")
        assert not is_parametrizable("  ")
        assert not is_parametrizable("Lorem ipsum dolor")
        assert is_parametrizable("Click me")

    def test_instance_with_texts(self):
        payload = [box("1", "Chip", kind="INSTANCE", componentId="c:1", children=[
            text("2", "A", "Alpha"),
            text("3", "B", "Beta", y=30),
            text("4", "C", "Gamma", y=60),
        ])]
        assert _analyze(payload)[0].reusability_score == 1.0

    def test_plain_frame_scores_zero(self):
        analysis = _analyze([box("1", "Frame", children=[text("2", "T", "Text")])])[0]
        assert analysis.reusability_score == 0.0
        assert "Expose text content as props to make the component reusable" in analysis.recommendations


# ─── Accessibility ───────────────────────────────────────────────────────────

class TestAccessibility:

    def test_empty_text_flagged(self):
        analysis = _analyze([box("1", "Frame", children=[text("2", "Empty", "")])])[0]
        assert [f.rule for f in analysis.accessibility] == ["missing-text-content"]
        assert analysis.accessibility[0].message == "missing text content"

    def test_low_contrast_against_nearest_filled_ancestor(self):
        payload = [box("1", "Frame", fills=[solid(1, 1, 1)], children=[
            box("2", "Wrapper", children=[
                text("3", "Pale", "Hello", fills=[solid(0.9, 0.9, 0.9)]),
            ]),
        ])]
        findings = _analyze(payload)[0].accessibility
        assert len(findings) == 1
        assert findings[0].rule == "low-contrast"
        assert findings[0].node_id == "3"

    def test_good_contrast_not_flagged(self, button_payload):
        assert _analyze(button_payload)[0].accessibility == []


# ─── Pattern classification ──────────────────────────────────────────────────

class TestClassification:

    def test_list(self, list_payload):
        analysis = _analyze(list_payload)[0]
        assert analysis.pattern == Pattern.LIST
        assert "Render the repeated children from a data array" in analysis.recommendations

    def test_card(self, card_payload):
        assert _analyze(card_payload)[0].pattern == Pattern.CARD

    def test_form(self, form_payload):
        assert _analyze(form_payload)[0].pattern == Pattern.FORM

    def test_nav(self, nav_payload):
        assert _analyze(nav_payload)[0].pattern == Pattern.NAV

    def test_grid(self, grid_payload):
        assert _analyze(grid_payload)[0].pattern == Pattern.GRID

    def test_unclassified(self, button_payload):
        assert _analyze(button_payload)[0].pattern == Pattern.UNCLASSIFIED

    def test_list_with_auto_layout_needs_no_even_spacing(self):
        rows = [box(f"r{i}", "Row", x=0, y=y, w=200, h=40) for i, y in enumerate([0, 50, 130])]
        payload = [box("1", "Stack", layoutMode="VERTICAL", children=rows)]
        assert _analyze(payload)[0].pattern == Pattern.LIST

    def test_uneven_rows_not_a_list(self):
        rows = [box(f"r{i}", "Row", x=0, y=y, w=200, h=40) for i, y in enumerate([0, 50, 130])]
        payload = [box("1", "Stack", children=rows)]
        assert _analyze(payload)[0].pattern != Pattern.LIST

    def test_card_needs_single_region(self, card_payload):
        card_payload[0]["children"].append(
            box("3:9", "Second image", y=260, w=240, h=40, kind="RECTANGLE",
                fills=[{"type": "IMAGE", "imageRef": "def456"}]))
        assert _analyze(card_payload)[0].pattern != Pattern.CARD

    def test_classifier_reusable(self, grid_payload):
        analyzer = PatternAnalyzer()
        roots = normalize_batch(grid_payload)
        first = analyzer.analyze(roots)[0].pattern
        second = analyzer.analyze(roots)[0].pattern
        assert first == second == Pattern.GRID


# ─── 批次摘要 ────────────────────────────────────────────────────────────────

class TestSummary:

    def test_summary(self, button_payload, list_payload):
        analyses = _analyze(button_payload + list_payload)
        overview = summarize(analyses)
        assert overview["totalComponents"] == 2
        assert overview["totalNodes"] == 2 + 9
        assert overview["averageDepth"] == pytest.approx((2 + 3) / 2)
        assert overview["patterns"] == {"unclassified": 1, "list": 1}
        assert overview["componentTypes"]["text"] == 5
        assert sum(overview["complexity"].values()) == 2

    def test_empty(self):
        overview = summarize([])
        assert overview["totalComponents"] == 0
        assert overview["averageDepth"] == 0
