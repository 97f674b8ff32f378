"""modgraph - 模块依赖图解析与安装引擎"""

__version__ = "0.3.0"
