"""vendlock - 依赖图解析、锁定与本地安装工具"""

__version__ = "0.3.0"
