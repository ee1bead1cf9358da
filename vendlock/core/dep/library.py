"""已拉取的依赖库

Library 组合一个 DependencySpec（通过只读属性暴露其字段），并持有:
- version: 解析出的版本（无版本时为 0.0.0）
- staging_dir: 独占的暂存目录，仅在拉取与销毁之间有效
- provides: 该库提供的完整导入路径
- dependencies: 发现的子依赖（发现顺序）

provides / dependencies 由 discover_dependencies() 一次性填充，之后不可变。
"""

from __future__ import annotations

import logging
from pathlib import Path

from vendlock.core.dep.lockfile import format_record, load_depsfile
from vendlock.core.dep.models import (
    LOCKFILE_NAME,
    MANIFEST_NAME,
    DependencySpec,
    SourceType,
    Version,
)
from vendlock.core.dep.scanner import ImportScanner
from vendlock.core.exceptions import CleanupError, ImportScanError, InstallError
from vendlock.utils.fileops import copy_file_tree, list_subdirectories, remove_tree

logger = logging.getLogger(__name__)


class Library:
    """已拉取、已暂存的依赖库"""

    def __init__(
        self,
        spec: DependencySpec,
        version: Version | None = None,
        staging_dir: Path | str = "",
    ) -> None:
        self.spec = spec
        self.version = version or Version()
        self.staging_dir = Path(staging_dir) if staging_dir else None
        self._provides: tuple[str, ...] = ()
        self._dependencies: tuple[DependencySpec, ...] = ()
        self._discovered = False
        self.scan_warnings: list[str] = []

    # ------------------------------------------------------------------
    # 声明字段访问
    # ------------------------------------------------------------------

    @property
    def import_path(self) -> str:
        return self.spec.import_path

    @property
    def source_type(self) -> SourceType:
        return self.spec.source_type

    @property
    def url(self) -> str:
        return self.spec.url

    @property
    def branch(self) -> str:
        return self.spec.branch

    @property
    def tag(self) -> str:
        return self.spec.tag

    @property
    def provides(self) -> tuple[str, ...]:
        return self._provides

    @property
    def dependencies(self) -> tuple[DependencySpec, ...]:
        return self._dependencies

    # ------------------------------------------------------------------
    # 依赖发现
    # ------------------------------------------------------------------

    def discover_dependencies(
        self,
        scanner: ImportScanner | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        """确定该库的子依赖

        顺序: 锁文件 → 清单 → 结构推断（子目录 + 源码 import 扫描）。
        找到锁文件或清单时直接采用其内容，不再推断。
        清单损坏抛 DiscoveryError；import 扫描失败只记录告警。
        """
        log = log or logger
        if self.staging_dir is None or self._discovered:
            return

        declared = load_depsfile(
            self.staging_dir / LOCKFILE_NAME,
            self.staging_dir / MANIFEST_NAME,
        )
        if declared is not None:
            log.debug("%s: 采用声明的 %d 个依赖", self.import_path, len(declared))
            self._freeze((), declared)
            return

        provides = tuple(
            f"{self.import_path}/{name}"
            for name in list_subdirectories(self.staging_dir)
        )

        scanner = scanner or ImportScanner()
        try:
            imports = scanner.scan(self.staging_dir, log)
        except ImportScanError as e:
            log.warning("%s 没有可处理的 import: %s", self.import_path, e)
            self.scan_warnings.append(f"{self.import_path}: {e}")
            imports = []

        deps = []
        for name in imports:
            if name == self.import_path or name.startswith(self.import_path + "/"):
                continue
            log.info("%s: 发现间接依赖 %s", self.import_path, name)
            deps.append(DependencySpec.inferred(name))
        self._freeze(provides, deps)

    def _freeze(
        self, provides: tuple[str, ...], deps: list[DependencySpec],
    ) -> None:
        self._provides = provides
        self._dependencies = tuple(deps)
        self._discovered = True

    # ------------------------------------------------------------------
    # 安装 / 销毁
    # ------------------------------------------------------------------

    def install(self, target_root: Path | str, log: logging.Logger | None = None) -> Path:
        """复制暂存树到 target_root/import_path，返回目标目录

        失败抛 InstallError，已复制的文件不回滚。
        """
        log = log or logger
        if self.staging_dir is None:
            raise InstallError(f"{self.import_path} 尚未拉取，无法安装")
        target = Path(target_root) / self.import_path
        log.debug("安装到: %s", target)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InstallError(f"无法创建目标目录 '{target}': {e}") from e
        try:
            count = copy_file_tree(target, self.staging_dir)
        except OSError as e:
            raise InstallError(f"复制依赖文件树失败 {self.import_path}: {e}") from e
        log.info("已安装 %s (%d 个文件) -> %s", self.import_path, count, target)
        return target

    def destroy(self, log: logging.Logger | None = None) -> None:
        """删除暂存目录；目录已不存在时忽略，删除失败抛 CleanupError"""
        log = log or logger
        if self.staging_dir is None:
            return
        try:
            removed = remove_tree(self.staging_dir)
        except OSError as e:
            raise CleanupError(f"无法删除暂存目录 {self.staging_dir}: {e}") from e
        if removed:
            log.debug("已清理暂存目录: %s", self.staging_dir)
        self.staging_dir = None

    # ------------------------------------------------------------------
    # 序列化
    # ------------------------------------------------------------------

    def serialize(self) -> str:
        """输出一条锁文件记录"""
        return format_record(
            version=self.version,
            source_type=self.source_type.value if self.source_type is not SourceType.UNKNOWN else "",
            import_path=self.import_path,
            url=self.url,
            branch=self.branch,
            tag=self.tag,
        )

    def to_spec(self) -> DependencySpec:
        """锁定后的声明：major >= 1 时精确锁定到解析版本"""
        return self.spec.with_source(
            version_constraint=str(self.version) if self.version.pinned else "",
        )

    def __repr__(self) -> str:
        return f"Library({self.import_path!r}, version={self.version})"
