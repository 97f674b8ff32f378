"""版本控制适配与检出

职责:
- Git / Mercurial / Bazaar / Subversion 四种后端的统一接口（Repo 协议）
- 从已有检出目录探测后端类型和远程地址
- 按托管平台约定从模块名推断仓库类型和地址
- 把依赖切换到约束/引用对应的版本，随后加载其嵌套清单
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Protocol

from modgraph.core.exceptions import (
    BackendResolutionError,
    CheckoutError,
    FetchError,
    ManifestError,
    VcsError,
)
from modgraph.core.pkg.models import (
    CHECKOUT_ABSENT,
    CHECKOUT_CURRENT,
    CHECKOUT_DIRTY,
    CHECKOUT_SKIPPED,
    CHECKOUT_UPDATED,
    BuildResult,
    CheckoutOutcome,
)
from modgraph.core.pkg.version import resolve_target
from modgraph.utils.shell import CommandExecutor, get_executor, run_cmd

if TYPE_CHECKING:
    from modgraph.core.config import Config
    from modgraph.core.pkg.manifest import ManifestStore
    from modgraph.core.pkg.node import ModuleNode

logger = logging.getLogger(__name__)

GIT = "git"
HG = "hg"
BZR = "bzr"
SVN = "svn"
NO_VCS = ""

_VERSION_SUFFIX_RE = re.compile(r"^(?P<name>.+)\.(?P<ver>v\d+)$")


class Repo(Protocol):
    """版本控制后端能力集"""

    vcs: str

    @property
    def local_path(self) -> Path: ...

    def remote(self) -> str: ...

    def check_local(self) -> bool: ...

    def is_dirty(self) -> bool: ...

    def get(self) -> None: ...

    def update_version(self, ref: str) -> None: ...

    def is_reference(self, ref: str) -> bool: ...

    def commit_of(self, ref: str) -> str: ...

    def version(self) -> str: ...

    def tags(self) -> list[str]: ...


# =========================================================================
# 后端实现
# =========================================================================

class _BaseRepo:
    """后端公共部分：远程地址、本地路径、命令执行"""

    vcs = NO_VCS
    marker = ""

    def __init__(
        self,
        remote: str,
        local_path: str | Path,
        executor: CommandExecutor | None = None,
    ) -> None:
        self._remote = remote
        self._local_path = Path(local_path)
        self.executor = executor or get_executor()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._remote!r}, {str(self._local_path)!r})"

    @property
    def local_path(self) -> Path:
        return self._local_path

    def check_local(self) -> bool:
        return (self._local_path / self.marker).exists()

    def is_reference(self, ref: str) -> bool:
        return bool(ref) and bool(self.commit_of(ref))

    def remote(self) -> str:
        if self._remote:
            return self._remote
        if self.check_local():
            self._remote = self._detect_remote()
        return self._remote

    def _detect_remote(self) -> str:
        return ""

    def _run(self, cmd: list[str], label: str) -> str:
        return run_cmd(self.executor, cmd, cwd=str(self._local_path), label=label).stdout

    def _query(self, cmd: list[str]) -> str:
        """只读查询，失败返回空串"""
        r = self.executor.execute(cmd, cwd=str(self._local_path))
        return r.stdout.strip() if r.success else ""

    def _clone(self, cmd: list[str]) -> None:
        if not self._remote:
            raise FetchError(f"未知远程地址，无法拉取: {self._local_path}")
        self._local_path.parent.mkdir(parents=True, exist_ok=True)
        r = self.executor.execute(cmd, cwd=str(self._local_path.parent))
        if not r.success:
            raise FetchError(
                f"{self.vcs} 拉取失败 (rc={r.returncode}): {r.stderr.strip()[:300]}"
            )


class GitRepo(_BaseRepo):
    """Git 仓库"""

    vcs = GIT
    marker = ".git"

    def _detect_remote(self) -> str:
        return self._query(["git", "config", "--get", "remote.origin.url"])

    def get(self) -> None:
        self._clone(["git", "clone", self._remote, str(self._local_path)])

    def update_version(self, ref: str) -> None:
        # 拉取失败时仍尝试用本地已有的引用切换
        r = self.executor.execute(
            ["git", "fetch", "--tags", "origin"], cwd=str(self._local_path),
        )
        if not r.success:
            logger.debug("git fetch 失败 %s: %s", self._local_path, r.stderr.strip()[:300])
        self._run(["git", "checkout", "--quiet", ref], label="git checkout")

    def is_dirty(self) -> bool:
        return bool(self._query(["git", "status", "--porcelain"]))

    def commit_of(self, ref: str) -> str:
        return self._query(["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])

    def version(self) -> str:
        return self._query(["git", "rev-parse", "HEAD"])

    def tags(self) -> list[str]:
        return self._query(["git", "tag", "--list"]).split()


class HgRepo(_BaseRepo):
    """Mercurial 仓库"""

    vcs = HG
    marker = ".hg"

    def _detect_remote(self) -> str:
        return self._query(["hg", "paths", "default"])

    def get(self) -> None:
        self._clone(["hg", "clone", self._remote, str(self._local_path)])

    def update_version(self, ref: str) -> None:
        r = self.executor.execute(["hg", "pull"], cwd=str(self._local_path))
        if not r.success:
            logger.debug("hg pull 失败 %s: %s", self._local_path, r.stderr.strip()[:300])
        self._run(["hg", "update", "-r", ref], label="hg update")

    def is_dirty(self) -> bool:
        return bool(self._query(["hg", "status", "--modified", "--added", "--removed", "--deleted"]))

    def commit_of(self, ref: str) -> str:
        return self._query(["hg", "log", "-r", ref, "--template", "{node}"])

    def version(self) -> str:
        return self._query(["hg", "log", "-r", ".", "--template", "{node}"])

    def tags(self) -> list[str]:
        return [t for t in self._query(["hg", "tags", "--quiet"]).split() if t != "tip"]


class BzrRepo(_BaseRepo):
    """Bazaar 仓库（引用为修订号或标签）"""

    vcs = BZR
    marker = ".bzr"

    def _detect_remote(self) -> str:
        for line in self._query(["bzr", "info"]).splitlines():
            key, _, value = line.strip().partition(": ")
            if key == "parent branch" and value:
                return value.strip()
        return ""

    def get(self) -> None:
        self._clone(["bzr", "branch", self._remote, str(self._local_path)])

    def update_version(self, ref: str) -> None:
        r = self.executor.execute(["bzr", "pull"], cwd=str(self._local_path))
        if not r.success:
            logger.debug("bzr pull 失败 %s: %s", self._local_path, r.stderr.strip()[:300])
        self._run(["bzr", "update", "-r", ref], label="bzr update")

    def is_dirty(self) -> bool:
        return bool(self._query(["bzr", "status"]))

    def commit_of(self, ref: str) -> str:
        return self._query(["bzr", "revno", "-r", ref])

    def version(self) -> str:
        return self._query(["bzr", "revno", "--tree"])

    def tags(self) -> list[str]:
        return [line.split()[0] for line in self._query(["bzr", "tags"]).splitlines() if line.strip()]


class SvnRepo(_BaseRepo):
    """Subversion 仓库（集中式，引用即修订号）"""

    vcs = SVN
    marker = ".svn"

    def _detect_remote(self) -> str:
        return self._query(["svn", "info", "--show-item", "url"])

    def get(self) -> None:
        self._clone(["svn", "checkout", self._remote, str(self._local_path)])

    def update_version(self, ref: str) -> None:
        self._run(["svn", "update", "-r", ref], label="svn update")

    def is_dirty(self) -> bool:
        return bool(self._query(["svn", "status", "--quiet"]))

    def commit_of(self, ref: str) -> str:
        return self._query(["svn", "info", "-r", ref, "--show-item", "last-changed-revision"])

    def version(self) -> str:
        return self._query(["svn", "info", "--show-item", "last-changed-revision"])

    def tags(self) -> list[str]:
        return []


_BACKENDS: dict[str, type[_BaseRepo]] = {
    GIT: GitRepo,
    HG: HgRepo,
    BZR: BzrRepo,
    SVN: SvnRepo,
}


def detect_vcs_from_fs(path: str | Path) -> str | None:
    """根据目录下的元数据目录判断后端类型"""
    p = Path(path)
    for kind, cls in _BACKENDS.items():
        if (p / cls.marker).exists():
            return kind
    return None


def new_repo(
    kind: str,
    remote: str,
    local_path: str | Path,
    executor: CommandExecutor | None = None,
) -> _BaseRepo:
    cls = _BACKENDS.get(kind)
    if cls is None:
        raise BackendResolutionError(f"不支持的版本控制类型: {kind or 'none'}")
    return cls(remote, local_path, executor)


def repo_from_path(
    *paths: str | Path,
    executor: CommandExecutor | None = None,
) -> _BaseRepo | None:
    """依次尝试各路径，返回第一个已有检出对应的后端"""
    for path in paths:
        kind = detect_vcs_from_fs(path)
        if kind is None:
            continue
        return new_repo(kind, "", path, executor)
    return None


# =========================================================================
# 版本控制器
# =========================================================================

RebuildHook = Callable[["ModuleNode"], "BuildResult | None"]


class VersionController:
    """为节点解析版本控制后端并执行检出"""

    def __init__(
        self,
        config: Config,
        manifests: ManifestStore,
        executor: CommandExecutor | None = None,
        rebuild: RebuildHook | None = None,
    ) -> None:
        self.config = config
        self.manifests = manifests
        self.executor = executor
        # 无清单时对父节点重新推导依赖，由引擎注入
        self.rebuild = rebuild

    # ------------------------------------------------------------------
    # 后端解析
    # ------------------------------------------------------------------

    def vcs(self, node: ModuleNode) -> Repo:
        """解析并缓存节点的版本控制后端"""
        with node.lock:
            if node.repo is not None:
                return node.repo
            kind = self.repo_type(node)
            url = self.repo_url(node)
            if kind == NO_VCS and node.url:
                kind = GIT
            if kind == NO_VCS:
                raise BackendResolutionError(
                    f"无法为 {node.name} 解析版本控制后端 (url={url or '未知'})"
                )
            node.repo = new_repo(kind, url, self.repo_path(node), self.executor)
            return node.repo

    def repo_path(self, node: ModuleNode) -> Path:
        return node.repo_path(self.config.install_path)

    def _existing(self, node: ModuleNode) -> _BaseRepo | None:
        paths: list[Path] = [self.repo_path(node)]
        if self.config.shared_src is not None:
            paths.append(self.config.shared_src / node.name)
        return repo_from_path(*paths, executor=self.executor)

    def repo_type(self, node: ModuleNode) -> str:
        """已有检出以其元数据为准，否则按模块名推断"""
        repo = self._existing(node)
        if repo is not None:
            return repo.vcs
        host = node.name.split("/", 1)[0]
        if host in ("github.com", "golang.org", "gopkg.in", "bitbucket.org", "gitlab.com"):
            return GIT
        return NO_VCS

    def repo_url(self, node: ModuleNode) -> str:
        """解析远程地址

        gopkg.in 的模块名末段带版本后缀（如 yaml.v2），推断地址时会
        顺带把后缀写入节点的版本约束。调用方负责持有 node.lock。
        """
        if node.url:
            return node.url
        repo = self._existing(node)
        if repo is not None and repo.remote():
            return repo.remote()

        parts = node.name.split("/")
        host = parts[0]
        if host in ("github.com", "bitbucket.org", "gitlab.com") and len(parts) >= 3:
            return f"https://{host}/{parts[1]}/{parts[2]}.git"
        if host == "golang.org" and len(parts) >= 3:
            return f"https://github.com/golang/{parts[2]}.git"
        if host == "gopkg.in" and len(parts) >= 2:
            if len(parts) >= 3 and _VERSION_SUFFIX_RE.match(parts[2]):
                owner, segment = parts[1], parts[2]
            else:
                owner, segment = "", parts[1]
            m = _VERSION_SUFFIX_RE.match(segment)
            if m is None:
                return ""
            pkg = m.group("name")
            node.version = m.group("ver")
            return f"https://github.com/{owner or 'go-' + pkg}/{pkg}.git"
        return ""

    # ------------------------------------------------------------------
    # 检出
    # ------------------------------------------------------------------

    def checkout(self, node: ModuleNode) -> CheckoutOutcome:
        """把依赖切换到目标版本

        目标为已记录的引用，缺省时为版本约束；约束能匹配仓库标签时取最高的匹配标签。
        工作区有本地修改时跳过，不覆盖。切换成功后加载嵌套清单，
        没有清单则用父节点的元信息重新推导依赖。
        """
        parent = node.parent
        if parent is None:
            return CheckoutOutcome(name=node.name, status=CHECKOUT_SKIPPED)

        repo = self.vcs(node)
        if not repo.check_local():
            with node.lock:
                node.installed = False
            logger.warning("跳过检出 %s: 本地不存在", node.name)
            return CheckoutOutcome(name=node.name, status=CHECKOUT_ABSENT)

        if repo.is_dirty():
            logger.warning("跳过检出 %s: 工作区有本地修改", node.name)
            return CheckoutOutcome(name=node.name, status=CHECKOUT_DIRTY, reference=node.reference)

        with node.lock:
            node.installed = True
            target = node.reference or node.version

        if target:
            target = resolve_target(target, repo.tags())
            current = repo.version()
            if current and repo.commit_of(target) == current:
                logger.info("OK %s", node.name)
                return CheckoutOutcome(
                    name=node.name, status=CHECKOUT_CURRENT, reference=node.reference,
                )
            try:
                repo.update_version(target)
            except VcsError as e:
                logger.error("检出失败 %s@%s: %s", node.name, target, e)
                raise CheckoutError(f"{node.name} 无法切换到 {target}: {e}") from e

        with node.lock:
            node.reference = repo.version()
            node.path = str(repo.local_path)
            reference = node.reference
        logger.info("已检出 %s@%s", node.name, reference[:12] or "-")

        outcome = CheckoutOutcome(name=node.name, status=CHECKOUT_UPDATED, reference=reference)
        try:
            self.manifests.load(node)
            outcome.manifest = True
        except ManifestError as e:
            logger.debug("%s 无可用清单，按源码重新推导: %s", node.name, e)
            if self.rebuild is not None:
                outcome.build = self.rebuild(parent)
                outcome.rebuilt = True
        return outcome
