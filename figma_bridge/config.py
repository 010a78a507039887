"""設定檔載入與基本驗證."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .models import Framework, NamingConvention, Styling

DEFAULT_CONFIG_PATH = "figma-bridge.config.json"

LOG_LEVEL_ENV = "FIGMA_BRIDGE_LOG_LEVEL"
TOKEN_ENV = "FIGMA_TOKEN"

# 已知有效的頂層欄位
_KNOWN_TOP_KEYS = {"figma", "transform", "server", "watch"}

# 各區塊已知欄位（用於拼字提示）
_KNOWN_SECTION_KEYS = {
    "figma": {"personalAccessToken", "fileKey", "page", "pageIndex"},
    "transform": {
        "framework", "styling", "typedOutput", "namingConvention", "includeProps",
        "includeTypeDeclarations", "generateStorybookStub", "generateTestStub",
        "extractTokens", "optimizeImages", "responsiveBreakpoints", "customMappings",
        "outputDir",
    },
    "server": {"debug", "searchLimit", "logLevel"},
    "watch": {"path", "debounce", "extensions"},
}

_VALID_FRAMEWORKS = {f.value for f in Framework} | {"react-like", "vue-like", "angular-like"}
_VALID_STYLINGS = {s.value for s in Styling} | {"css", "tailwind", "styled-components", "emotion"}
_VALID_NAMING = {n.value for n in NamingConvention}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _warn(msg: str) -> None:
    print(f"   ⚠️  [config] {msg}")


def validate_config(cfg: dict) -> None:
    """對 config 做基本欄位驗證，印出警告但不拋例外。"""
    if not cfg:
        return

    # 頂層未知欄位
    for key in cfg:
        if key not in _KNOWN_TOP_KEYS:
            known = ", ".join(sorted(_KNOWN_TOP_KEYS))
            _warn(f"未知頂層欄位 '{key}'（已知欄位：{known}）")

    # 各區塊欄位
    for section, known_keys in _KNOWN_SECTION_KEYS.items():
        section_cfg = cfg.get(section, {})
        if not isinstance(section_cfg, dict):
            _warn(f"'{section}' 應為物件，目前是 {type(section_cfg).__name__}")
            continue
        for key in section_cfg:
            if key not in known_keys:
                known = ", ".join(sorted(known_keys))
                _warn(f"[{section}] 未知欄位 '{key}'（已知欄位：{known}）")

    transform = cfg.get("transform", {}) if isinstance(cfg.get("transform"), dict) else {}

    framework = transform.get("framework")
    if framework and framework not in _VALID_FRAMEWORKS:
        valid = ", ".join(sorted(_VALID_FRAMEWORKS))
        _warn(f"transform.framework '{framework}' 不在已知值中（{valid}）")

    styling = transform.get("styling")
    if styling and styling not in _VALID_STYLINGS:
        valid = ", ".join(sorted(_VALID_STYLINGS))
        _warn(f"transform.styling '{styling}' 不在已知值中（{valid}）")

    naming = transform.get("namingConvention")
    if naming and naming not in _VALID_NAMING:
        valid = ", ".join(sorted(_VALID_NAMING))
        _warn(f"transform.namingConvention '{naming}' 不在已知值中（{valid}）")

    breakpoints = transform.get("responsiveBreakpoints")
    if breakpoints is not None and not isinstance(breakpoints, list):
        _warn(f"transform.responsiveBreakpoints 應為陣列，目前是 {type(breakpoints).__name__}")

    watch = cfg.get("watch", {}) if isinstance(cfg.get("watch"), dict) else {}
    debounce = watch.get("debounce")
    if debounce is not None and not isinstance(debounce, (int, float)):
        _warn(f"watch.debounce 應為數字，目前是 {type(debounce).__name__}")

    server = cfg.get("server", {}) if isinstance(cfg.get("server"), dict) else {}
    level = server.get("logLevel")
    if level and str(level).upper() not in _VALID_LOG_LEVELS:
        _warn(f"server.logLevel '{level}' 不在已知值中（{', '.join(sorted(_VALID_LOG_LEVELS))}）")

    # watch.path 存在性提示（不強制）
    watch_path = watch.get("path")
    if watch_path and not Path(watch_path).exists():
        _warn(f"watch.path '{watch_path}' 目錄不存在（watch 時需要）")


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """載入 JSON 設定檔，不存在則回傳空 dict；存在則做基本驗證。"""
    path = Path(config_path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        cfg: Any = json.load(f)
    if not isinstance(cfg, dict):
        _warn(f"'{config_path}' 格式錯誤，應為 JSON 物件，回傳空設定。")
        return {}
    validate_config(cfg)
    return cfg


def transform_defaults(cfg: dict) -> dict:
    """The `transform` section minus non-option keys, for TransformOptions.from_dict."""
    section = cfg.get("transform") if isinstance(cfg.get("transform"), dict) else {}
    return {k: v for k, v in section.items() if k != "outputDir"}


def resolve_token(cfg: dict, explicit: Optional[str] = None) -> Optional[str]:
    """--token > FIGMA_TOKEN > figma.personalAccessToken."""
    if explicit:
        return explicit
    env = os.environ.get(TOKEN_ENV)
    if env:
        return env
    figma = cfg.get("figma") if isinstance(cfg.get("figma"), dict) else {}
    return figma.get("personalAccessToken") or None


def configure_logging(level: Optional[str] = None, cfg: Optional[dict] = None) -> None:
    """Root logging setup: explicit level > FIGMA_BRIDGE_LOG_LEVEL > server.logLevel > WARNING."""
    if not level:
        level = os.environ.get(LOG_LEVEL_ENV)
    if not level and cfg:
        server = cfg.get("server") if isinstance(cfg.get("server"), dict) else {}
        level = server.get("logLevel")
    level = str(level or "WARNING").upper()
    if level not in _VALID_LOG_LEVELS:
        level = "WARNING"
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("figma_bridge").setLevel(getattr(logging, level))
