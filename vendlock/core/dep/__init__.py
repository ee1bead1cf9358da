"""依赖解析与安装模块

- models.py: 数据模型（DependencySpec / Version / Conflict）
- lockfile.py: 清单与锁文件读写
- scanner.py / stdlib.py: 源码 import 扫描与标准库排除
- registry.py: 推断依赖的默认来源
- library.py: 已拉取依赖的发现 / 安装 / 序列化
- fetcher.py: Git / 本地拉取
- resolver.py: 分层并行的依赖图解析
- installer.py: 安装到导入根目录
"""

from vendlock.core.dep.fetcher import Fetcher, GitFetcher, LocalFetcher, SourceFetcher
from vendlock.core.dep.installer import Installer, InstallReport
from vendlock.core.dep.library import Library
from vendlock.core.dep.models import Conflict, DependencySpec, SourceType, Version
from vendlock.core.dep.registry import SourceRegistry
from vendlock.core.dep.resolver import DependencyGraph, Resolver
from vendlock.core.dep.scanner import GoImportExtractor, ImportScanner

__all__ = [
    "Conflict",
    "DependencyGraph",
    "DependencySpec",
    "Fetcher",
    "GitFetcher",
    "GoImportExtractor",
    "ImportScanner",
    "InstallReport",
    "Installer",
    "Library",
    "LocalFetcher",
    "Resolver",
    "SourceFetcher",
    "SourceRegistry",
    "SourceType",
    "Version",
]
