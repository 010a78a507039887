"""
figma-bridge — 設計稿匯出 JSON → 多框架元件程式碼

Normalizes an exported scene graph, resolves canonical styles, extracts
design tokens, analyzes component patterns and emits React / Vue / Angular
source, with an alias index for looking ingested components up by name.
"""

__version__ = "0.1.0"

from .errors import (
    BridgeError,
    ConfigurationError,
    NotFoundError,
    TransformFailure,
    ValidationError,
    ValidationIssue,
    error_response,
)
from .models import (
    CanonicalStyle,
    ComponentAnalysis,
    DesignToken,
    Framework,
    NodeKind,
    SceneNode,
    Styling,
    TransformedComponent,
    TransformOptions,
)
from .normalizer import TreeNormalizer, check_tree, normalize_batch, iter_nodes
from .styles import StyleResolver, resolve_tree, contrast_ratio
from .tokens import extract_tokens, format_tokens
from .analyzer import PatternAnalyzer, analyze_components, summarize
from .emitter import emit, transform, supported_pairs, build_library_index
from .naming import preview_naming_tree
from .alias_index import AliasIndex
from .store import SessionStore
from .events import EventBus
from .service import BridgeService
from .config import load_config, validate_config
from .figma_reader import FigmaAPIClient

__all__ = [
    "__version__",
    "BridgeError",
    "ConfigurationError",
    "NotFoundError",
    "TransformFailure",
    "ValidationError",
    "ValidationIssue",
    "error_response",
    "CanonicalStyle",
    "ComponentAnalysis",
    "DesignToken",
    "Framework",
    "NodeKind",
    "SceneNode",
    "Styling",
    "TransformedComponent",
    "TransformOptions",
    "TreeNormalizer",
    "normalize_batch",
    "check_tree",
    "iter_nodes",
    "StyleResolver",
    "resolve_tree",
    "contrast_ratio",
    "extract_tokens",
    "format_tokens",
    "PatternAnalyzer",
    "analyze_components",
    "summarize",
    "emit",
    "transform",
    "supported_pairs",
    "build_library_index",
    "preview_naming_tree",
    "AliasIndex",
    "SessionStore",
    "EventBus",
    "BridgeService",
    "load_config",
    "validate_config",
    "FigmaAPIClient",
]
