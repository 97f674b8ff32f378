"""导入解析器

职责:
- 判断导入路径是否为内建/标准模块
- 把导入路径归约为托管仓库的根模块名
- 从源码目录提取单元的直接导入列表（默认提取器）
- 递归展开单元的导入，得到排序去重后的外部依赖列表
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol

from modgraph.core.config import Config
from modgraph.core.exceptions import ExtractError, NoSourceError, UnitNotFoundError
from modgraph.core.pkg.models import ImportFailure, ImportResolution, UnitMeta

logger = logging.getLogger(__name__)

# 路径前三段即为仓库根的托管平台
_THREE_SEGMENT_HOSTS = ("github.com", "bitbucket.org", "gitlab.com", "golang.org")

_COMMENT_RE = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_IMPORT_BLOCK_RE = re.compile(r"\bimport\s*\(([^)]*)\)")
_IMPORT_LINE_RE = re.compile(r'\bimport\s+(?:[\w.]+\s+)?"([^"]+)"')
_QUOTED_RE = re.compile(r'"([^"]+)"')


def is_builtin(import_path: str) -> bool:
    """首段不含 "." 的导入视为内建/标准模块（如 fmt、net/http、C）"""
    first = import_path.split("/", 1)[0]
    return "." not in first


def is_vendored(import_path: str) -> bool:
    """导入路径中含 vendor 段，表示引用的是内嵌副本"""
    return "vendor" in import_path.split("/")


def repo_name(import_path: str) -> str:
    """去掉子包段，返回托管仓库的根模块名

    >>> repo_name("github.com/a/b/sub/pkg")
    'github.com/a/b'
    >>> repo_name("gopkg.in/yaml.v2/internal")
    'gopkg.in/yaml.v2'
    """
    parts = import_path.strip("/").split("/")
    host = parts[0]
    if host in _THREE_SEGMENT_HOSTS:
        return "/".join(parts[:3])
    if host == "gopkg.in":
        # gopkg.in/pkg.v1 或 gopkg.in/user/pkg.v1
        if len(parts) >= 2 and _has_version_suffix(parts[1]):
            return "/".join(parts[:2])
        return "/".join(parts[:3])
    return "/".join(parts)


def _has_version_suffix(segment: str) -> bool:
    return re.search(r"\.v\d+$", segment) is not None


def is_subpackage(name: str, parent_name: str) -> bool:
    """name 等于 parent_name 或位于其下"""
    if not parent_name:
        return False
    return name == parent_name or name.startswith(parent_name + "/")


# =========================================================================
# 导入提取器
# =========================================================================

class ImportExtractor(Protocol):
    """导入提取器协议 — 给出单元的本地目录和直接导入列表

    找不到单元时抛 UnitNotFoundError；目录存在但无可构建源文件时抛 NoSourceError。
    """

    def extract(self, name: str, cwd: Path) -> UnitMeta:
        ...


class SourceImportExtractor:
    """基于源码扫描的默认提取器

    搜索顺序: <cwd>/vendor/<name> → <install_dir>/<name> → <shared_root>/src/<name>
    只扫描单个目录（不含子目录），与一个包对应一个目录的约定一致。
    """

    def __init__(self, config: Config) -> None:
        self.config = config

    def extract(self, name: str, cwd: Path) -> UnitMeta:
        directory = self._locate(name, cwd)
        if directory is None:
            raise UnitNotFoundError(f"找不到模块 {name} (cwd={cwd})")

        sources = [
            p for p in sorted(directory.iterdir())
            if p.is_file()
            and p.suffix in self.config.source_suffixes
            and not p.stem.endswith("_test")
        ]
        if not sources:
            raise NoSourceError(f"目录下没有可构建的源文件: {directory}", directory=str(directory))

        imports: set[str] = set()
        for src in sources:
            imports.update(parse_imports(src.read_text(encoding="utf-8", errors="replace")))

        return UnitMeta(
            dir=str(directory),
            import_path=self._import_path(name, directory),
            imports=sorted(imports),
        )

    def _locate(self, name: str, cwd: Path) -> Path | None:
        if name in ("", "."):
            return cwd if cwd.is_dir() else None
        candidates: list[Path] = []
        if self.config.vendoring:
            candidates.append(cwd / "vendor" / name)
        candidates.append(self.config.install_path / name)
        if self.config.shared_src is not None:
            candidates.append(self.config.shared_src / name)
        for c in candidates:
            if c.is_dir():
                return c
        return None

    def _import_path(self, name: str, directory: Path) -> str:
        shared = self.config.shared_src
        if shared is not None:
            try:
                return directory.resolve().relative_to(shared).as_posix()
            except ValueError:
                pass
        return name or "."


def parse_imports(text: str) -> list[str]:
    """从源文件文本中提取 import 声明的路径"""
    text = _COMMENT_RE.sub("", text)
    found: list[str] = []
    for block in _IMPORT_BLOCK_RE.findall(text):
        found.extend(_QUOTED_RE.findall(block))
    found.extend(_IMPORT_LINE_RE.findall(text))
    return found


# =========================================================================
# 递归解析
# =========================================================================

class ImportResolver:
    """把单元的直接导入展开为外部根模块列表

    注意: vendor 关闭时所有非内建导入都会被跳过，递归只在 vendor 开启时发生。
    这是有意保留的行为，由配置控制。
    """

    def __init__(self, config: Config, extractor: ImportExtractor) -> None:
        self.config = config
        self.extractor = extractor

    def resolve(self, unit_name: str, imports: list[str]) -> ImportResolution:
        """返回排序去重后的外部模块名，以及被容忍的分支失败"""
        names: list[str] = []
        failures: list[ImportFailure] = []
        self._collect(unit_name, imports, names, failures, visiting={unit_name})
        return ImportResolution(names=sorted(set(names)), failures=failures)

    def _collect(
        self,
        unit_name: str,
        imports: list[str],
        names: list[str],
        failures: list[ImportFailure],
        visiting: set[str],
    ) -> None:
        for imp in imports:
            if is_builtin(imp):
                continue
            if not self.config.vendoring or is_vendored(imp):
                continue

            # 子包自身的依赖（多数失败是因为尚未安装，跳过该分支即可）
            if imp not in visiting:
                try:
                    meta = self.extractor.extract(imp, self.config.workspace_path)
                except NoSourceError:
                    pass
                except ExtractError as e:
                    logger.debug("跳过导入分支 %s: %s", imp, e)
                    failures.append(ImportFailure(import_path=imp, reason=str(e)))
                else:
                    self._collect(imp, meta.imports, names, failures, visiting | {imp})

            name = repo_name(imp)
            if name == unit_name:
                continue
            names.append(name)
