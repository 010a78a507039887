"""
設定檔載入 / 驗證測試（只印警告，不拋例外）。
"""
import json
import logging

import pytest

from figma_bridge.config import (
    LOG_LEVEL_ENV,
    TOKEN_ENV,
    configure_logging,
    load_config,
    resolve_token,
    transform_defaults,
    validate_config,
)
from figma_bridge.models import Framework, Styling, TransformOptions


def _write(tmp_path, data):
    path = tmp_path / "figma-bridge.config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestLoadConfig:

    def test_missing_file_is_empty(self, tmp_path):
        assert load_config(str(tmp_path / "nope.json")) == {}

    def test_loads_object(self, tmp_path):
        path = _write(tmp_path, {"transform": {"framework": "vue"}})
        assert load_config(path)["transform"]["framework"] == "vue"

    def test_non_object_warns(self, tmp_path, capsys):
        path = _write(tmp_path, [1, 2])
        assert load_config(path) == {}
        assert "[config]" in capsys.readouterr().out

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_config(str(path))


class TestValidateConfig:

    def test_clean_config_silent(self, capsys):
        validate_config({"transform": {"framework": "react", "styling": "scss", "responsiveBreakpoints": ["md"]}})
        assert capsys.readouterr().out == ""

    def test_unknown_keys_warn(self, capsys):
        validate_config({"transfrom": {}, "transform": {"framwork": "react"}})
        out = capsys.readouterr().out
        assert "transfrom" in out
        assert "framwork" in out

    def test_bad_values_warn(self, capsys):
        validate_config({
            "transform": {"framework": "svelte", "styling": "less", "responsiveBreakpoints": "md"},
            "watch": {"debounce": "fast"},
            "server": {"logLevel": "chatty"},
        })
        out = capsys.readouterr().out
        for needle in ("svelte", "less", "responsiveBreakpoints", "debounce", "chatty"):
            assert needle in out

    def test_section_must_be_object(self, capsys):
        validate_config({"figma": "token"})
        assert "'figma'" in capsys.readouterr().out


class TestHelpers:

    def test_transform_defaults_feed_options(self):
        cfg = {"transform": {"framework": "vue", "styling": "scss", "outputDir": "./out"}}
        defaults = transform_defaults(cfg)
        assert "outputDir" not in defaults
        opts = TransformOptions.from_dict({}, defaults)
        assert (opts.framework, opts.styling) == (Framework.VUE, Styling.SCSS)

    def test_request_overrides_defaults(self):
        opts = TransformOptions.from_dict({"framework": "angular"}, {"framework": "vue"})
        assert opts.framework == Framework.ANGULAR

    def test_resolve_token_order(self, monkeypatch):
        cfg = {"figma": {"personalAccessToken": "from-config"}}
        monkeypatch.delenv(TOKEN_ENV, raising=False)
        assert resolve_token(cfg) == "from-config"
        monkeypatch.setenv(TOKEN_ENV, "from-env")
        assert resolve_token(cfg) == "from-env"
        assert resolve_token(cfg, "explicit") == "explicit"
        monkeypatch.delenv(TOKEN_ENV)
        assert resolve_token({}) is None

    def test_configure_logging_levels(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "debug")
        configure_logging()
        assert logging.getLogger("figma_bridge").level == logging.DEBUG
        configure_logging("error")
        assert logging.getLogger("figma_bridge").level == logging.ERROR
        monkeypatch.delenv(LOG_LEVEL_ENV)
        configure_logging(None, {"server": {"logLevel": "INFO"}})
        assert logging.getLogger("figma_bridge").level == logging.INFO
        configure_logging("bogus")
        assert logging.getLogger("figma_bridge").level == logging.WARNING
