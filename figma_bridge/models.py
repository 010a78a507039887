"""
Data model shared by the pipeline: scene nodes, canonical styles, tokens,
transform options/results, analyses and sessions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class NodeKind(str, Enum):
    CONTAINER = "container"
    GROUP = "group"
    TEXT = "text"
    VECTOR = "vector"
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    LINE = "line"
    COMPONENT = "component"
    COMPONENT_INSTANCE = "component-instance"
    UNRECOGNIZED = "unrecognized"


# Figma API / plugin spellings → kind
FIGMA_KIND_MAP = {
    "FRAME": NodeKind.CONTAINER,
    "SECTION": NodeKind.CONTAINER,
    "CANVAS": NodeKind.CONTAINER,
    "GROUP": NodeKind.GROUP,
    "TEXT": NodeKind.TEXT,
    "VECTOR": NodeKind.VECTOR,
    "BOOLEAN_OPERATION": NodeKind.VECTOR,
    "STAR": NodeKind.VECTOR,
    "POLYGON": NodeKind.VECTOR,
    "RECTANGLE": NodeKind.RECTANGLE,
    "ELLIPSE": NodeKind.ELLIPSE,
    "LINE": NodeKind.LINE,
    "COMPONENT": NodeKind.COMPONENT,
    "COMPONENT_SET": NodeKind.COMPONENT,
    "INSTANCE": NodeKind.COMPONENT_INSTANCE,
}


class Framework(str, Enum):
    REACT = "react"
    VUE = "vue"
    ANGULAR = "angular"


class Styling(str, Enum):
    PLAIN_CSS = "plain-css"
    SCSS = "scss"
    CSS_IN_SOURCE = "css-in-source"
    UTILITY_CLASSES = "utility-classes"


class NamingConvention(str, Enum):
    PASCAL = "pascal"
    CAMEL = "camel"
    KEBAB = "kebab"


class TokenCategory(str, Enum):
    COLOR = "color"
    TYPOGRAPHY = "typography"
    SPACING = "spacing"
    SHADOW = "shadow"
    BORDER = "border"


class Pattern(str, Enum):
    LIST = "list"
    CARD = "card"
    FORM = "form"
    NAV = "nav"
    GRID = "grid"
    UNCLASSIFIED = "unclassified"


# ════════════════════════════════════════════════════════════
# Scene graph
# ════════════════════════════════════════════════════════════

@dataclass
class RawColor:
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 1.0


@dataclass
class GradientStopRaw:
    position: float
    color: RawColor


@dataclass
class PaintLayer:
    """One raw fill/stroke layer as exported (channels 0..1)."""
    type: str = "SOLID"
    visible: bool = True
    opacity: float = 1.0
    color: Optional[RawColor] = None
    gradient_stops: List[GradientStopRaw] = field(default_factory=list)
    image_ref: Optional[str] = None
    scale_mode: Optional[str] = None
    blend_mode: Optional[str] = None


@dataclass
class EffectLayer:
    type: str = "DROP_SHADOW"
    visible: bool = True
    radius: float = 0.0
    spread: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    color: Optional[RawColor] = None


@dataclass
class TypographyRaw:
    font_family: Optional[str] = None
    font_size: Optional[float] = None
    font_weight: Optional[float] = None
    line_height: Optional[float] = None
    letter_spacing: Optional[float] = None
    text_align: Optional[str] = None


@dataclass
class AutoLayout:
    direction: str = "HORIZONTAL"
    item_spacing: float = 0.0
    padding_top: float = 0.0
    padding_right: float = 0.0
    padding_bottom: float = 0.0
    padding_left: float = 0.0
    primary_align: str = "MIN"
    counter_align: str = "MIN"


CornerRadius = Union[float, Tuple[float, float, float, float]]


@dataclass
class SceneNode:
    id: str
    name: str
    kind: NodeKind
    custom_name: Optional[str] = None
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    visible: bool = True
    locked: bool = False
    opacity: float = 1.0
    fills: List[PaintLayer] = field(default_factory=list)
    strokes: List[PaintLayer] = field(default_factory=list)
    stroke_weight: float = 0.0
    stroke_dashes: List[float] = field(default_factory=list)
    corner_radius: Optional[CornerRadius] = None
    effects: List[EffectLayer] = field(default_factory=list)
    typography: Optional[TypographyRaw] = None
    characters: Optional[str] = None
    layout: Optional[AutoLayout] = None
    component_id: Optional[str] = None
    component_properties: Dict[str, Any] = field(default_factory=dict)
    children: List["SceneNode"] = field(default_factory=list)
    raw_kind: Optional[str] = None
    extension: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.custom_name or self.name

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass
class BatchMetadata:
    file_key: str = ""
    file_name: str = ""
    page_id: Optional[str] = None
    page_name: Optional[str] = None
    extension: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "BatchMetadata":
        data = dict(data or {})
        page = data.pop("currentPage", None) or {}
        return cls(
            file_key=data.pop("fileKey", "") or "",
            file_name=data.pop("fileName", "") or "",
            page_id=page.get("id"),
            page_name=page.get("name"),
            extension=data,
        )

    def to_dict(self) -> dict:
        out = dict(self.extension)
        out.update({"fileKey": self.file_key, "fileName": self.file_name})
        if self.page_id or self.page_name:
            out["currentPage"] = {"id": self.page_id, "name": self.page_name}
        return out


@dataclass
class Batch:
    id: str
    session_id: str
    components: List[SceneNode]
    metadata: BatchMetadata
    received_at: datetime
    status: str = "received"


@dataclass
class Session:
    id: str
    created_at: datetime
    last_activity: datetime
    status: str = "active"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "lastActivity": self.last_activity.isoformat(),
            "status": self.status,
        }


# ════════════════════════════════════════════════════════════
# Canonical styles
# ════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RGBA:
    r: int
    g: int
    b: int
    a: int = 255

    @property
    def is_opaque(self) -> bool:
        return self.a == 255


TRANSPARENT = RGBA(0, 0, 0, 0)


@dataclass(frozen=True)
class SolidPaint:
    color: RGBA


@dataclass(frozen=True)
class GradientStop:
    position: float
    color: RGBA


@dataclass(frozen=True)
class GradientPaint:
    kind: str  # linear / radial / angular / diamond
    stops: Tuple[GradientStop, ...]


@dataclass(frozen=True)
class ImagePaint:
    image_ref: Optional[str]
    scale_mode: str = "FILL"


Paint = Union[SolidPaint, GradientPaint, ImagePaint]


@dataclass(frozen=True)
class Radius:
    top_left: float
    top_right: float
    bottom_right: float
    bottom_left: float

    @property
    def is_uniform(self) -> bool:
        return self.top_left == self.top_right == self.bottom_right == self.bottom_left


@dataclass(frozen=True)
class Border:
    width: float
    style: str  # solid / dashed
    color: RGBA


@dataclass(frozen=True)
class Shadow:
    offset_x: float
    offset_y: float
    blur: float
    spread: float
    color: RGBA
    inset: bool = False


@dataclass(frozen=True)
class Typography:
    family: str
    size: float
    weight: float
    line_height: Optional[float]
    letter_spacing: float
    align: str = "left"


@dataclass(frozen=True)
class CanonicalStyle:
    fills: Tuple[Paint, ...] = ()
    border: Optional[Border] = None
    radius: Optional[Radius] = None
    shadows: Tuple[Shadow, ...] = ()
    typography: Optional[Typography] = None
    text_color: Optional[RGBA] = None
    opacity: float = 1.0

    @property
    def background(self) -> Optional[RGBA]:
        """Topmost solid fill, the color a flat renderer would show."""
        for paint in reversed(self.fills):
            if isinstance(paint, SolidPaint):
                return paint.color
        return None

    @property
    def gradients(self) -> Tuple[GradientPaint, ...]:
        return tuple(p for p in self.fills if isinstance(p, GradientPaint))

    @property
    def images(self) -> Tuple[ImagePaint, ...]:
        return tuple(p for p in self.fills if isinstance(p, ImagePaint))

    @property
    def is_empty(self) -> bool:
        return self == CanonicalStyle()


# ════════════════════════════════════════════════════════════
# Tokens / analysis / transform
# ════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DesignToken:
    name: str
    value: Union[str, float]
    category: TokenCategory

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value, "category": self.category.value}


@dataclass
class AccessibilityFinding:
    node_id: str
    node_name: str
    rule: str
    message: str

    def to_dict(self) -> dict:
        return {"nodeId": self.node_id, "nodeName": self.node_name, "rule": self.rule, "message": self.message}


@dataclass
class ComponentAnalysis:
    component_id: str
    name: str
    node_count: int
    max_depth: int
    kind_histogram: Dict[str, int]
    pattern: Pattern
    complexity_score: float
    complexity_bucket: str
    reusability_score: float
    accessibility: List[AccessibilityFinding] = field(default_factory=list)
    performance_cost: float = 0.0
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "componentId": self.component_id,
            "name": self.name,
            "nodeCount": self.node_count,
            "maxDepth": self.max_depth,
            "kindHistogram": dict(self.kind_histogram),
            "pattern": self.pattern.value,
            "complexityScore": self.complexity_score,
            "complexityBucket": self.complexity_bucket,
            "reusabilityScore": self.reusability_score,
            "accessibility": [f.to_dict() for f in self.accessibility],
            "performanceCost": self.performance_cost,
            "recommendations": list(self.recommendations),
        }


@dataclass
class PropSpec:
    name: str
    type: str
    required: bool = False
    default: Any = None

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type, "required": self.required, "defaultValue": self.default}


@dataclass
class Artifacts:
    markup: str = ""
    styles: str = ""
    types: str = ""
    story: str = ""
    test: str = ""


@dataclass
class TransformedComponent:
    id: str
    name: str
    framework: str
    styling: str
    source_node_id: str
    artifacts: Artifacts = field(default_factory=Artifacts)
    props: List[PropSpec] = field(default_factory=list)
    tokens: List[DesignToken] = field(default_factory=list)
    file_names: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def files(self) -> Dict[str, str]:
        """file name → content for every non-empty artifact."""
        out = {}
        for artifact, file_name in self.file_names.items():
            content = getattr(self.artifacts, artifact)
            if content:
                out[file_name] = content
        return out

    def to_dict(self) -> dict:
        body = {
            "id": self.id,
            "name": self.name,
            "framework": self.framework,
            "styling": self.styling,
            "sourceNodeId": self.source_node_id,
        }
        if self.error is not None:
            body["error"] = self.error
            return body
        body["code"] = {
            "component": self.artifacts.markup,
            "styles": self.artifacts.styles,
            "types": self.artifacts.types,
            "story": self.artifacts.story,
            "test": self.artifacts.test,
        }
        body["props"] = [p.to_dict() for p in self.props]
        if self.tokens:
            body["tokens"] = [t.to_dict() for t in self.tokens]
        return body


# ════════════════════════════════════════════════════════════
# Transform options
# ════════════════════════════════════════════════════════════

_FRAMEWORK_ALIASES = {
    "react": Framework.REACT, "react-like": Framework.REACT,
    "vue": Framework.VUE, "vue-like": Framework.VUE,
    "angular": Framework.ANGULAR, "angular-like": Framework.ANGULAR,
}

_STYLING_ALIASES = {
    "plain-css": Styling.PLAIN_CSS, "css": Styling.PLAIN_CSS,
    "scss": Styling.SCSS,
    "css-in-source": Styling.CSS_IN_SOURCE, "styled-components": Styling.CSS_IN_SOURCE,
    "emotion": Styling.CSS_IN_SOURCE,
    "utility-classes": Styling.UTILITY_CLASSES, "tailwind": Styling.UTILITY_CLASSES,
}

# option name → accepted input keys (camelCase as sent by the plugin, snake_case)
_OPTION_KEYS = {
    "typed_output": ("typedOutput", "typescript", "typed_output"),
    "naming_convention": ("namingConvention", "componentNaming", "naming_convention"),
    "include_props": ("includeProps", "include_props"),
    "include_type_declarations": ("includeTypeDeclarations", "includeTypes", "include_type_declarations"),
    "generate_storybook_stub": ("generateStorybookStub", "generateStorybook", "generate_storybook_stub"),
    "generate_test_stub": ("generateTestStub", "generateTests", "generate_test_stub"),
    "extract_tokens": ("extractTokens", "extract_tokens"),
    "optimize_images": ("optimizeImages", "optimize_images"),
    "responsive_breakpoints": ("responsiveBreakpoints", "responsive_breakpoints"),
    "custom_mappings": ("customMappings", "custom_mappings"),
}


@dataclass
class TransformOptions:
    framework: Framework = Framework.REACT
    typed_output: bool = True
    styling: Styling = Styling.PLAIN_CSS
    naming_convention: NamingConvention = NamingConvention.PASCAL
    include_props: bool = True
    include_type_declarations: bool = True
    generate_storybook_stub: bool = False
    generate_test_stub: bool = False
    extract_tokens: bool = True
    optimize_images: bool = True
    responsive_breakpoints: List[str] = field(default_factory=list)
    custom_mappings: Dict[str, str] = field(default_factory=dict)

    @property
    def pair(self) -> Tuple[str, str]:
        return self.framework.value, self.styling.value

    @classmethod
    def from_dict(cls, data: Optional[dict] = None, defaults: Optional[dict] = None) -> "TransformOptions":
        """Build options from a request/config dict; `defaults` is applied first."""
        from .errors import ConfigurationError

        merged = dict(defaults or {})
        merged.update(data or {})
        opts = cls()

        framework = merged.get("framework")
        if framework is not None:
            key = str(framework).lower()
            if key not in _FRAMEWORK_ALIASES:
                raise ConfigurationError(
                    f"Unknown framework '{framework}' (known: {', '.join(f.value for f in Framework)})"
                )
            opts.framework = _FRAMEWORK_ALIASES[key]

        styling = merged.get("styling")
        if styling is not None:
            key = str(styling).lower()
            if key not in _STYLING_ALIASES:
                raise ConfigurationError(
                    f"Unknown styling '{styling}' (known: {', '.join(s.value for s in Styling)})"
                )
            opts.styling = _STYLING_ALIASES[key]

        for attr, keys in _OPTION_KEYS.items():
            for key in keys:
                if key in merged and merged[key] is not None:
                    setattr(opts, attr, merged[key])
                    break

        if not isinstance(opts.naming_convention, NamingConvention):
            try:
                opts.naming_convention = NamingConvention(str(opts.naming_convention).lower())
            except ValueError:
                raise ConfigurationError(
                    f"Unknown naming convention '{opts.naming_convention}' (known: pascal, camel, kebab)"
                ) from None
        opts.responsive_breakpoints = [str(b) for b in opts.responsive_breakpoints or []]
        opts.custom_mappings = {str(k): str(v) for k, v in (opts.custom_mappings or {}).items()}
        return opts

    def to_dict(self) -> dict:
        return {
            "framework": self.framework.value,
            "typedOutput": self.typed_output,
            "styling": self.styling.value,
            "namingConvention": self.naming_convention.value,
            "includeProps": self.include_props,
            "includeTypeDeclarations": self.include_type_declarations,
            "generateStorybookStub": self.generate_storybook_stub,
            "generateTestStub": self.generate_test_stub,
            "extractTokens": self.extract_tokens,
            "optimizeImages": self.optimize_images,
            "responsiveBreakpoints": list(self.responsive_breakpoints),
            "customMappings": dict(self.custom_mappings),
        }
