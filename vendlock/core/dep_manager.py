"""依赖管理器

一次完整运行:
  1. 读取根依赖（默认锁文件优先，update 模式只读清单）
  2. Resolver 分层拉取 + 发现，得到完整依赖图
  3. 写入锁文件（仅成功时写一次）
  4. Installer 安装到导入根目录并清理暂存

解析失败时不写锁文件、不安装任何依赖。

用法:
    from vendlock.core.dep_manager import DepManager

    dm = DepManager(project_root=".")
    report = dm.install()
    report = dm.install(update=True)   # 忽略锁文件重新解析
    specs = dm.list_locked()
"""

from __future__ import annotations

import logging
from pathlib import Path

from vendlock.core.config import Config, get_config
from vendlock.core.dep.fetcher import Fetcher, SourceFetcher
from vendlock.core.dep.installer import Installer, InstallReport
from vendlock.core.dep.lockfile import load_depsfile, write_lockfile
from vendlock.core.dep.models import DependencySpec
from vendlock.core.dep.registry import SourceRegistry
from vendlock.core.dep.resolver import DependencyGraph, Resolver
from vendlock.core.dep.scanner import ImportScanner
from vendlock.core.exceptions import ConfigError, InstallError

logger = logging.getLogger(__name__)


class DepManager:
    """依赖统一管理器"""

    def __init__(
        self,
        project_root: Path | str = ".",
        config: Config | None = None,
        fetcher: Fetcher | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.config = config or get_config()
        self.log = log or logger
        self.fetcher = fetcher or SourceFetcher.default(
            base_dir=self.project_root,
            staging_root=self.config.staging_dir,
            timeout=self.config.fetch_timeout,
            log=self.log,
        )
        self.registry = SourceRegistry.from_config(self.config.sources)
        self.scanner = ImportScanner.for_languages(self.config.languages)

    @property
    def lockfile_path(self) -> Path:
        return self.project_root / self.config.lockfile

    @property
    def manifest_path(self) -> Path:
        return self.project_root / self.config.manifest_file

    @property
    def install_root(self) -> Path:
        return self.project_root / self.config.install_root

    # ------------------------------------------------------------------
    # 根依赖
    # ------------------------------------------------------------------

    def load_root_specs(self, update: bool = False) -> list[DependencySpec]:
        """读取根依赖: 锁文件优先；update=True 时只读清单"""
        candidates = [self.manifest_path] if update else [self.lockfile_path, self.manifest_path]
        specs = load_depsfile(*candidates)
        if specs is None:
            raise ConfigError(
                f"找不到依赖清单: {' / '.join(str(p) for p in candidates)}"
            )
        self.log.info("已加载 %d 个根依赖", len(specs))
        return specs

    # ------------------------------------------------------------------
    # 解析 / 锁定 / 安装
    # ------------------------------------------------------------------

    def resolve(self, update: bool = False) -> DependencyGraph:
        resolver = Resolver(
            self.fetcher,
            self.registry,
            self.scanner,
            max_workers=self.config.max_workers,
            strict_conflicts=self.config.strict_conflicts,
            log=self.log,
        )
        return resolver.resolve(self.load_root_specs(update))

    def _write_lock(self, graph: DependencyGraph) -> None:
        try:
            write_lockfile(self.lockfile_path, graph.serialize())
        except OSError as e:
            graph.destroy(self.log)
            raise InstallError(f"无法写入锁文件 {self.lockfile_path}: {e}") from e

    def lock(self, update: bool = False) -> DependencyGraph:
        """只解析并写锁文件，不安装"""
        graph = self.resolve(update)
        self._write_lock(graph)
        graph.destroy(self.log)
        return graph

    def install(self, update: bool = False) -> InstallReport:
        """完整运行: 解析 → 写锁文件 → 安装 → 清理"""
        graph = self.resolve(update)
        self._write_lock(graph)
        report = Installer(self.install_root, self.log).install(graph)
        for warning in report.warnings:
            self.log.warning("  %s", warning)
        return report

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def list_locked(self) -> list[DependencySpec]:
        """列出锁文件中的依赖；没有锁文件时返回空列表"""
        return load_depsfile(self.lockfile_path) or []
