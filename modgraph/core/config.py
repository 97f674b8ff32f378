"""集中配置管理

工作区根目录、共享安装根目录、vendor 开关等进程级配置集中在一个
不可变的 Config 中，由入口显式构造后传给引擎各组件。
支持从 YAML 文件加载 + 环境变量覆盖 + 编程式覆盖。
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path

from modgraph.core.exceptions import ConfigError
from modgraph.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "modgraph.yml"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class Config:
    """引擎全局配置（只读）"""

    # 目录
    workspace_dir: str = "."
    install_dir: str = ""        # 依赖安装根目录，缺省为 <workspace>/vendor
    shared_root: str = ""        # 共享工作区根目录，其下 src/ 存放共享检出

    # 行为
    vendoring: bool = True
    manifest_name: str = DEFAULT_MANIFEST_NAME
    source_suffixes: tuple[str, ...] = (".go",)

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict, compare=False)

    @property
    def workspace_path(self) -> Path:
        return Path(self.workspace_dir).resolve()

    @property
    def install_path(self) -> Path:
        if self.install_dir:
            return Path(self.install_dir).resolve()
        return self.workspace_path / "vendor"

    @property
    def shared_src(self) -> Path | None:
        """共享工作区的 src 目录，未配置时为 None"""
        if not self.shared_root:
            return None
        return Path(self.shared_root).resolve() / "src"

    @classmethod
    def from_file(cls, path: str = "modgraph.config.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        if "source_suffixes" in matched:
            suffixes = matched["source_suffixes"]
            if isinstance(suffixes, str):
                suffixes = [suffixes]
            matched["source_suffixes"] = tuple(suffixes)
        if "vendoring" in matched and not isinstance(matched["vendoring"], bool):
            raise ConfigError(f"vendoring 必须是布尔值: {matched['vendoring']!r}")
        cfg = cls(**matched, extra=extra)
        logger.info("配置已加载: %s", path)
        return cfg

    @classmethod
    def from_env(cls, base: Config | None = None) -> Config:
        """在 base 之上叠加 MODGRAPH_* 环境变量"""
        cfg = base or cls()
        overrides: dict[str, object] = {}
        if os.getenv("MODGRAPH_WORKSPACE"):
            overrides["workspace_dir"] = os.environ["MODGRAPH_WORKSPACE"]
        if os.getenv("MODGRAPH_INSTALL_DIR"):
            overrides["install_dir"] = os.environ["MODGRAPH_INSTALL_DIR"]
        if os.getenv("MODGRAPH_SHARED_ROOT"):
            overrides["shared_root"] = os.environ["MODGRAPH_SHARED_ROOT"]
        vendoring = os.getenv("MODGRAPH_VENDORING", "").strip().lower()
        if vendoring:
            overrides["vendoring"] = _parse_bool("MODGRAPH_VENDORING", vendoring)
        return cfg.with_overrides(**overrides)

    def with_overrides(self, **overrides: object) -> Config:
        """返回覆盖了指定字段的新配置，值为 None 的项忽略"""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)


def _parse_bool(name: str, value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} 取值无效: {value}")
