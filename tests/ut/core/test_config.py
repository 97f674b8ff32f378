"""Config 单元测试 — 文件加载、环境变量、覆盖顺序"""

from __future__ import annotations

from pathlib import Path

import pytest

from modgraph.core.config import DEFAULT_MANIFEST_NAME, Config
from modgraph.core.exceptions import ConfigError


class TestDefaults:
    def test_paths(self, tmp_path: Path) -> None:
        cfg = Config(workspace_dir=str(tmp_path))
        assert cfg.workspace_path == tmp_path.resolve()
        assert cfg.install_path == tmp_path.resolve() / "vendor"
        assert cfg.shared_src is None
        assert cfg.vendoring is True
        assert cfg.manifest_name == DEFAULT_MANIFEST_NAME

    def test_explicit_install_dir_and_shared_root(self, tmp_path: Path) -> None:
        cfg = Config(install_dir=str(tmp_path / "deps"), shared_root=str(tmp_path / "gp"))
        assert cfg.install_path == (tmp_path / "deps").resolve()
        assert cfg.shared_src == (tmp_path / "gp").resolve() / "src"

    def test_immutable(self) -> None:
        with pytest.raises(AttributeError):
            Config().vendoring = False  # type: ignore[misc]


class TestFromFile:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert Config.from_file(str(tmp_path / "nope.yml")) == Config()

    def test_known_and_extra_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "modgraph.config.yml"
        path.write_text(
            "install_dir: /opt/deps\nvendoring: false\nsource_suffixes: .go\nteam: infra\n",
            encoding="utf-8",
        )
        cfg = Config.from_file(str(path))
        assert cfg.install_dir == "/opt/deps"
        assert cfg.vendoring is False
        assert cfg.source_suffixes == (".go",)
        assert cfg.extra == {"team": "infra"}

    def test_non_bool_vendoring_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yml"
        path.write_text("vendoring: sometimes\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="vendoring"):
            Config.from_file(str(path))


class TestFromEnv:
    def test_env_overrides_base(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODGRAPH_INSTALL_DIR", "/env/deps")
        monkeypatch.setenv("MODGRAPH_VENDORING", "off")
        cfg = Config.from_env(Config(install_dir="/file/deps", shared_root="/gp"))
        assert cfg.install_dir == "/env/deps"
        assert cfg.vendoring is False
        assert cfg.shared_root == "/gp"

    def test_unset_env_keeps_base(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("MODGRAPH_WORKSPACE", "MODGRAPH_INSTALL_DIR",
                     "MODGRAPH_SHARED_ROOT", "MODGRAPH_VENDORING"):
            monkeypatch.delenv(name, raising=False)
        base = Config(workspace_dir="/ws")
        assert Config.from_env(base) is base

    def test_invalid_bool(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODGRAPH_VENDORING", "maybe")
        with pytest.raises(ConfigError, match="MODGRAPH_VENDORING"):
            Config.from_env()


class TestOverrides:
    def test_none_values_ignored(self) -> None:
        cfg = Config(workspace_dir="/ws")
        assert cfg.with_overrides(workspace_dir=None, vendoring=None) is cfg

    def test_override_returns_new_instance(self) -> None:
        cfg = Config()
        changed = cfg.with_overrides(vendoring=False)
        assert changed.vendoring is False
        assert cfg.vendoring is True

    def test_to_dict(self) -> None:
        assert Config(workspace_dir="/ws").to_dict()["workspace_dir"] == "/ws"
