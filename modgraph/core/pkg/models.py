"""依赖图数据模型

数据类:
- UnitMeta: 单元的本地目录与直接导入列表
- ImportFailure / ImportResolution: 导入解析结果（含可容忍的失败）
- CheckoutOutcome / InstallOutcome: 检出与安装结果
- BuildResult: 一次依赖图构建的结果
"""

from __future__ import annotations

from dataclasses import dataclass, field

# 检出状态
CHECKOUT_SKIPPED = "skipped"    # 根模块，不改动当前工作区
CHECKOUT_ABSENT = "absent"      # 本地无检出（通常是拉取失败）
CHECKOUT_DIRTY = "dirty"        # 工作区有本地修改，保留现状
CHECKOUT_CURRENT = "current"    # 当前版本已满足目标
CHECKOUT_UPDATED = "updated"    # 已切换并记录引用

# 安装状态
INSTALL_OK = "ok"
INSTALL_SKIPPED = "skipped"
INSTALL_FETCH_FAILED = "fetch_failed"
INSTALL_ERROR = "error"


@dataclass
class UnitMeta:
    """导入提取器返回的单元元信息"""

    dir: str
    import_path: str = ""
    imports: list[str] = field(default_factory=list)


@dataclass
class ImportFailure:
    """某个导入分支的元信息加载失败（递归在此分支停止）"""

    import_path: str
    reason: str


@dataclass
class ImportResolution:
    """导入解析结果：排序去重后的外部模块名 + 被容忍的失败"""

    names: list[str] = field(default_factory=list)
    failures: list[ImportFailure] = field(default_factory=list)


@dataclass
class CheckoutOutcome:
    name: str
    status: str
    reference: str = ""
    manifest: bool = False
    rebuilt: bool = False
    # 无清单时对父节点重新推导的结果，其中的安装结果同样计入汇总
    build: BuildResult | None = None


@dataclass
class InstallOutcome:
    """单个依赖的安装结果"""

    name: str
    status: str
    reference: str = ""
    message: str = ""
    checkout: CheckoutOutcome | None = None

    @property
    def success(self) -> bool:
        return self.status in (INSTALL_OK, INSTALL_SKIPPED)

    @property
    def nested(self) -> BuildResult | None:
        """检出后重新推导父节点产生的构建结果"""
        if self.checkout is None:
            return None
        return self.checkout.build


@dataclass
class BuildResult:
    """一次 GraphBuilder.build 的结果"""

    name: str
    added: list[str] = field(default_factory=list)
    outcomes: list[InstallOutcome] = field(default_factory=list)
    failures: list[ImportFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(o.success for o in self.all_outcomes())

    def all_outcomes(self) -> list[InstallOutcome]:
        """本次及其触发的全部重新推导中的安装结果（深度优先）"""
        return flatten_outcomes(self.outcomes)

    def all_failures(self) -> list[ImportFailure]:
        return self.failures + flatten_failures(self.outcomes)


def flatten_outcomes(outcomes: list[InstallOutcome]) -> list[InstallOutcome]:
    """展开安装结果中嵌套的重新推导结果"""
    flat: list[InstallOutcome] = []
    for o in outcomes:
        flat.append(o)
        if o.nested is not None:
            flat.extend(o.nested.all_outcomes())
    return flat


def flatten_failures(outcomes: list[InstallOutcome]) -> list[ImportFailure]:
    """收集安装结果中嵌套的重新推导所记录的导入失败"""
    failures: list[ImportFailure] = []
    for o in outcomes:
        if o.nested is not None:
            failures.extend(o.nested.all_failures())
    return failures
