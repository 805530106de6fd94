"""集中配置测试"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml

from artpkg.core import config as config_mod
from artpkg.core.config import Config, get_config, init_config
from artpkg.core.exceptions import ConfigError


class TestConfigDefaults:
    def test_defaults(self) -> None:
        cfg = Config()
        assert cfg.registry_domain == "pkgr.art"
        assert cfg.source_ext == ".art"
        assert cfg.default_entry == "main"
        assert cfg.info_file == "info"
        assert cfg.packages_dir == os.path.expanduser("~/.arturo/packages")

    def test_source_ext_gets_dot(self) -> None:
        assert Config(source_ext="art").source_ext == ".art"

    @pytest.mark.parametrize("name", ["request_timeout", "lock_timeout", "lock_stale_seconds"])
    def test_non_positive_rejected(self, name: str) -> None:
        with pytest.raises(ConfigError, match=name):
            Config(**{name: 0})

    @pytest.mark.parametrize("value", [True, False, "10"])
    def test_non_numeric_rejected(self, value: object) -> None:
        with pytest.raises(ConfigError, match="request_timeout"):
            Config(request_timeout=value)


class TestConfigFromFile:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        cfg = Config.from_file(str(tmp_path / "none.yml"))
        assert cfg == Config()

    def test_known_and_extra_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "artpkg.yml"
        path.write_text(yaml.dump({
            "packages_dir": str(tmp_path / "pkgs"),
            "registry_domain": "registry.test",
            "request_timeout": 5,
            "mirror": "https://mirror.test",
        }))
        cfg = Config.from_file(str(path))
        assert cfg.packages_dir == str(tmp_path / "pkgs")
        assert cfg.registry_domain == "registry.test"
        assert cfg.request_timeout == 5
        assert cfg.extra == {"mirror": "https://mirror.test"}
        assert cfg.to_dict()["registry_domain"] == "registry.test"


class TestGlobalConfig:
    def test_init_and_get(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(config_mod, "_current", None)
        assert get_config() == Config()

        path = tmp_path / "artpkg.yml"
        path.write_text("registry_domain: other.test\n")
        cfg = init_config(str(path))
        assert get_config() is cfg
        assert cfg.registry_domain == "other.test"
