"""统一异常体系

所有业务异常继承 ModGraphError，替代散落的 ValueError / RuntimeError。
CLI 层据此输出友好提示；可容忍的失败（未安装、无清单、脏工作区）
由调用方捕获后转为结果对象，不会中断整张依赖图。
"""

from __future__ import annotations


class ModGraphError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(ModGraphError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


# =========================================================================
# 源码元信息提取
# =========================================================================

class ExtractError(ModGraphError):
    """无法提取单元的目录与导入列表"""

    code = "EXTRACT_ERROR"


class UnitNotFoundError(ExtractError):
    """单元在任何搜索路径下都不存在（通常是尚未安装）"""

    code = "UNIT_NOT_FOUND"


class NoSourceError(ExtractError):
    """目录存在但没有可构建的源文件"""

    code = "NO_SOURCE"

    def __init__(self, message: str, directory: str = "") -> None:
        super().__init__(message)
        self.directory = directory


# =========================================================================
# 版本控制
# =========================================================================

class VcsError(ModGraphError):
    """版本控制命令执行失败"""

    code = "VCS_ERROR"


class BackendResolutionError(VcsError):
    """无法为模块构造版本控制后端"""

    code = "BACKEND_RESOLUTION"


class FetchError(VcsError):
    """首次拉取（clone）失败"""

    code = "FETCH_ERROR"


class CheckoutError(VcsError):
    """切换到目标引用失败"""

    code = "CHECKOUT_ERROR"


# =========================================================================
# 清单
# =========================================================================

class ManifestError(ModGraphError):
    """清单文件读取或解析失败"""

    code = "MANIFEST_ERROR"


class ManifestNotFoundError(ManifestError):
    """目录下不存在清单文件（正常情况，触发重新推导）"""

    code = "MANIFEST_NOT_FOUND"


class ManifestWriteError(ManifestError):
    """清单文件写入失败"""

    code = "MANIFEST_WRITE_ERROR"
