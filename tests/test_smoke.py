"""
Smoke tests：驗證套件可匯入、版本與公開 API 存在。
"""


def test_import_package():
    """套件可正常匯入"""
    import figma_bridge
    assert figma_bridge.__version__ == "0.1.0"


def test_public_api():
    """公開 API 可從 figma_bridge 取得"""
    from figma_bridge import (
        __version__,
        BridgeService,
        TransformOptions,
        emit,
        transform,
        supported_pairs,
        normalize_batch,
        extract_tokens,
        analyze_components,
        AliasIndex,
        load_config,
    )
    assert __version__ == "0.1.0"
    assert callable(emit)
    assert callable(transform)
    assert callable(normalize_batch)
    assert callable(extract_tokens)
    assert callable(analyze_components)
    assert callable(load_config)
    assert len(supported_pairs()) == 10
    assert TransformOptions().framework.value == "react"
    assert isinstance(BridgeService().index, AliasIndex)


def test_end_to_end_click_me(button_payload):
    """ingest → transform：#007aff、6px、text prop 預設 Click me"""
    from figma_bridge import BridgeService

    service = BridgeService()
    service.ingest(button_payload, {"fileName": "DS"}, session_id="s1")
    comp = service.transform(button_payload, {"framework": "react", "styling": "plain-css"}, session_id="s1").components[0]
    assert "#007aff" in comp.artifacts.styles
    assert "6px" in comp.artifacts.styles
    text_prop = next(p for p in comp.props if p.name == "text")
    assert text_prop.default == "Click me"
