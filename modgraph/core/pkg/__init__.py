"""依赖图引擎

模块说明:
- node.py: 模块节点与祖先链查找
- imports.py: 导入提取与递归解析
- graph.py: 依赖图构建
- installer.py: 安装编排
- vcs.py: 版本控制后端与检出
- version.py: 版本约束匹配
- manifest.py: 清单读写
- engine.py: 组件装配
"""

from modgraph.core.pkg.engine import DependencyEngine
from modgraph.core.pkg.manifest import ManifestStore
from modgraph.core.pkg.models import BuildResult, CheckoutOutcome, InstallOutcome, UnitMeta
from modgraph.core.pkg.node import ModuleNode

__all__ = [
    "DependencyEngine",
    "ManifestStore",
    "ModuleNode",
    "UnitMeta",
    "BuildResult",
    "InstallOutcome",
    "CheckoutOutcome",
]
