"""测试共享 fixture — 内存版 git 远程 + 静态导入提取器

整体架构:

  FakeGitExecutor                        被测代码
  ┌────────────────────────┐        ┌──────────────────────┐
  │ remotes: url → Remote  │<───────│ GitRepo.execute(...) │
  │   tags / head / files  │        └──────────────────────┘
  │ checkouts: path → 状态 │
  │ calls: 全部命令记录    │
  └────────────────────────┘

clone 时把远程的 files 写到本地目录，SourceImportExtractor 可直接扫描，
无需真实 git 与网络。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from modgraph.core.config import Config
from modgraph.core.exceptions import UnitNotFoundError
from modgraph.core.pkg.models import UnitMeta
from modgraph.utils.shell import CommandResult


def go_source(package: str, imports: list[str]) -> str:
    """生成带 import 块的源文件文本"""
    body = "".join(f'\t"{i}"\n' for i in imports)
    return f"package {package}\n\nimport (\n{body})\n"


def write_unit(directory: Path, package: str, imports: list[str]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    src = directory / f"{package}.go"
    src.write_text(go_source(package, imports), encoding="utf-8")
    return src


# =========================================================================
# 内存版 git
# =========================================================================

@dataclass
class FakeRemote:
    head: str = "c0"
    tags: dict[str, str] = field(default_factory=dict)
    files: dict[str, str] = field(default_factory=dict)
    fail_clone: bool = False

    def resolve(self, ref: str) -> str:
        if ref in self.tags:
            return self.tags[ref]
        if ref == self.head or ref in self.tags.values():
            return ref
        return ""


@dataclass
class FakeCheckout:
    url: str
    head: str
    dirty: bool = False


class FakeGitExecutor:
    """模拟 git 命令的执行器，线程安全"""

    def __init__(self) -> None:
        self.remotes: dict[str, FakeRemote] = {}
        self.checkouts: dict[Path, FakeCheckout] = {}
        self.calls: list[tuple[str, ...]] = []
        self._lock = threading.Lock()

    def add_remote(self, url: str, **kwargs) -> FakeRemote:
        remote = FakeRemote(**kwargs)
        self.remotes[url] = remote
        return remote

    def clones(self) -> list[str]:
        return [c[2] for c in self.calls if c[:2] == ("git", "clone")]

    def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        args = tuple(cmd)
        with self._lock:
            self.calls.append(args)
            return self._dispatch(args, Path(cwd))

    def _dispatch(self, args: tuple[str, ...], cwd: Path) -> CommandResult:
        if args[0] != "git":
            return CommandResult(127, "", f"{args[0]}: command not found")
        sub = args[1]
        if sub == "clone":
            return self._clone(args[2], Path(args[3]))
        co = self.checkouts.get(cwd)
        if co is None:
            return CommandResult(128, "", "fatal: not a git repository")
        remote = self.remotes[co.url]
        if sub == "config":
            return CommandResult(0, co.url + "\n", "")
        if sub == "fetch":
            return CommandResult(0, "", "")
        if sub == "status":
            return CommandResult(0, " M main.go\n" if co.dirty else "", "")
        if sub == "tag":
            return CommandResult(0, "".join(f"{t}\n" for t in remote.tags), "")
        if sub == "rev-parse":
            if args[2] == "HEAD":
                return CommandResult(0, co.head + "\n", "")
            commit = remote.resolve(args[-1].removesuffix("^{commit}"))
            return CommandResult(0, commit + "\n", "") if commit else CommandResult(1, "", "")
        if sub == "checkout":
            commit = remote.resolve(args[-1])
            if not commit:
                return CommandResult(1, "", f"error: pathspec '{args[-1]}' did not match")
            co.head = commit
            return CommandResult(0, "", "")
        return CommandResult(1, "", f"unsupported: {' '.join(args)}")

    def _clone(self, url: str, dest: Path) -> CommandResult:
        remote = self.remotes.get(url)
        if remote is None or remote.fail_clone:
            return CommandResult(128, "", f"fatal: repository '{url}' not found")
        (dest / ".git").mkdir(parents=True, exist_ok=True)
        for rel, text in remote.files.items():
            (dest / rel).parent.mkdir(parents=True, exist_ok=True)
            (dest / rel).write_text(text, encoding="utf-8")
        self.checkouts[dest] = FakeCheckout(url=url, head=remote.head)
        return CommandResult(0, "", "")


# =========================================================================
# 静态导入提取器
# =========================================================================

class FakeExtractor:
    """按名字返回预置元信息，未登记的名字视为未安装"""

    def __init__(self, units: dict[str, list[str]] | None = None) -> None:
        self.units = dict(units or {})
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def extract(self, name: str, cwd: Path) -> UnitMeta:
        with self._lock:
            self.calls.append(name)
        if name not in self.units:
            raise UnitNotFoundError(f"找不到模块 {name}")
        return UnitMeta(dir=str(cwd / name), import_path=name, imports=list(self.units[name]))


@pytest.fixture()
def git() -> FakeGitExecutor:
    return FakeGitExecutor()


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "app"
    ws.mkdir()
    return ws


@pytest.fixture()
def config(workspace: Path) -> Config:
    return Config(workspace_dir=str(workspace))


# =========================================================================
# 通用录制执行器
# =========================================================================

class RecordingExecutor:
    """记录每条命令及其工作目录，按命令前缀返回预置输出"""

    def __init__(self, responses: dict[tuple[str, ...], str] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[tuple[str, ...], str]] = []

    def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        args = tuple(cmd)
        self.calls.append((args, str(cwd)))
        for prefix, stdout in self.responses.items():
            if args[:len(prefix)] == prefix:
                return CommandResult(0, stdout, "")
        return CommandResult(0, "", "")

    def commands(self) -> list[tuple[str, ...]]:
        return [args for args, _ in self.calls]
