"""simplex - 基于源码构建的极简包管理器"""

__version__ = "0.1.0"
