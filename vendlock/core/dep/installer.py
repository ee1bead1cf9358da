"""依赖安装器

在依赖图完整解析后，把每个 Library 的暂存树复制到
install_root/<import_path>，随后清理暂存目录。

安装失败是致命的（不回滚已复制的文件）；暂存清理失败只记录告警，
不影响已完成的安装。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from vendlock.core.dep.resolver import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """安装结果汇总"""

    installed: dict[str, Path] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def summary(self) -> str:
        return f"已安装 {len(self.installed)} 个依赖, {len(self.warnings)} 条告警"


class Installer:
    """把解析完成的依赖图安装到目标导入根目录"""

    def __init__(self, target_root: Path | str, log: logging.Logger | None = None) -> None:
        self.target_root = Path(target_root)
        self.log = log or logger

    def install(self, graph: DependencyGraph) -> InstallReport:
        """逐个安装依赖，遇到 InstallError 立即中止；无论成败都清理暂存"""
        report = InstallReport()
        try:
            for lib in graph:
                report.installed[lib.import_path] = lib.install(self.target_root, self.log)
        finally:
            graph.destroy(self.log)
            report.warnings.extend(graph.warnings)
        self.log.info("%s -> %s", report.summary(), self.target_root)
        return report
