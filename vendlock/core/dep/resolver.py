"""依赖图解析器

按层广度优先构建依赖图:
  1. 每一层的依赖互相独立，交给线程池并行拉取 + 发现
  2. 一层全部结束后，按提交顺序（再按发现顺序）收集子依赖，
     未访问过的进入下一层，已访问过但来源不同的记录冲突
  3. 某层没有新依赖时结束

依赖在调度拉取前即被标记为已访问，同一导入路径不会被重复拉取；
循环依赖的回边被访问集过滤，自然终止。

任一拉取或发现失败都会中止整个解析: 同层已派发的任务允许跑完，
不再调度后续层，已拉取的全部 Library 被清理，抛出提交顺序上的第一个错误。
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from vendlock.core.dep.fetcher import Fetcher
from vendlock.core.dep.library import Library
from vendlock.core.dep.models import Conflict, DependencySpec
from vendlock.core.dep.registry import SourceRegistry
from vendlock.core.dep.scanner import ImportScanner
from vendlock.core.exceptions import (
    CleanupError,
    ConflictError,
    DiscoveryError,
    FetchError,
    ValidationError,
    VendlockError,
)

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    """解析结果: 去重后的 Library 节点 + 父子边"""

    libraries: dict[str, Library] = field(default_factory=dict)
    edges: list[tuple[str, str]] = field(default_factory=list)
    roots: list[str] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add(self, library: Library) -> None:
        self.libraries[library.import_path] = library

    def __len__(self) -> int:
        return len(self.libraries)

    def __contains__(self, import_path: object) -> bool:
        return import_path in self.libraries

    def __iter__(self):
        return iter(self.libraries.values())

    def children(self, import_path: str) -> list[str]:
        return [child for parent, child in self.edges if parent == import_path]

    def serialize(self) -> list[str]:
        """按图顺序输出全部节点的锁文件记录"""
        return [lib.serialize() for lib in self.libraries.values()]

    def destroy(self, log: logging.Logger | None = None) -> None:
        """清理全部暂存目录，清理失败只记录告警"""
        log = log or logger
        for lib in self.libraries.values():
            try:
                lib.destroy(log)
            except CleanupError as e:
                log.warning("%s", e)
                self.warnings.append(str(e))


class VisitedSet:
    """按导入路径去重的访问集（线程安全）"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._specs: dict[str, DependencySpec] = {}

    def claim(self, spec: DependencySpec) -> DependencySpec | None:
        """尝试登记依赖；首次登记返回 None，否则返回先登记的声明"""
        with self._lock:
            existing = self._specs.get(spec.import_path)
            if existing is None:
                self._specs[spec.import_path] = spec
            return existing

    def __len__(self) -> int:
        with self._lock:
            return len(self._specs)


@dataclass
class _LayerResult:
    spec: DependencySpec
    library: Library | None = None
    error: VendlockError | None = None


class Resolver:
    """分层并行的依赖图解析器"""

    def __init__(
        self,
        fetcher: Fetcher,
        registry: SourceRegistry,
        scanner: ImportScanner | None = None,
        *,
        max_workers: int = 8,
        strict_conflicts: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.registry = registry
        self.scanner = scanner or ImportScanner()
        self.max_workers = max(1, max_workers)
        self.strict_conflicts = strict_conflicts
        self.log = log or logger

    def resolve(self, root_specs: list[DependencySpec]) -> DependencyGraph:
        """从根依赖构建完整依赖图，失败时抛出第一个致命错误"""
        graph = DependencyGraph()
        visited = VisitedSet()
        try:
            layer = self._admit(root_specs, graph, visited, parent="")
            graph.roots = [s.import_path for s in layer]
            depth = 0
            while layer:
                self.log.info("解析第 %d 层: %d 个依赖", depth, len(layer))
                libraries = self._process_layer(layer, graph)
                next_layer: list[DependencySpec] = []
                for lib in libraries:
                    children = self._admit(
                        list(lib.dependencies), graph, visited,
                        parent=lib.import_path,
                    )
                    next_layer.extend(children)
                layer = next_layer
                depth += 1
        except Exception:
            graph.destroy(self.log)
            raise

        self.log.info(
            "解析完成: %d 个依赖, %d 个冲突, %d 条告警",
            len(graph), len(graph.conflicts), len(graph.warnings),
        )
        return graph

    # ------------------------------------------------------------------
    # 准入
    # ------------------------------------------------------------------

    def _admit(
        self,
        specs: list[DependencySpec],
        graph: DependencyGraph,
        visited: VisitedSet,
        parent: str,
    ) -> list[DependencySpec]:
        """补全来源、记录边、登记访问集，返回需要拉取的新依赖"""
        admitted = []
        for raw in specs:
            try:
                spec = self.registry.complete(raw)
            except ValidationError as e:
                raise FetchError(str(e), raw.import_path) from e
            if parent and spec.import_path == parent:
                continue
            if parent:
                edge = (parent, spec.import_path)
                if edge not in graph.edges:
                    graph.edges.append(edge)

            existing = visited.claim(spec)
            if existing is None:
                admitted.append(spec)
                continue
            self._check_conflict(existing, spec, parent, graph)
        return admitted

    def _check_conflict(
        self,
        kept: DependencySpec,
        requested: DependencySpec,
        parent: str,
        graph: DependencyGraph,
    ) -> None:
        fields = kept.differs_from(requested)
        if not fields:
            return
        conflict = Conflict(
            import_path=kept.import_path,
            kept=kept,
            dropped=requested,
            requested_by=parent,
            fields=fields,
        )
        if self.strict_conflicts and conflict.versions_incompatible:
            raise ConflictError(str(conflict))
        self.log.warning("%s", conflict, extra={"import_path": conflict.import_path})
        graph.conflicts.append(conflict)
        graph.warnings.append(str(conflict))

    # ------------------------------------------------------------------
    # 拉取 + 发现
    # ------------------------------------------------------------------

    def _process_one(self, spec: DependencySpec) -> _LayerResult:
        result = _LayerResult(spec=spec)
        try:
            result.library = self.fetcher.fetch(spec)
            result.library.discover_dependencies(self.scanner, self.log)
        except (FetchError, DiscoveryError) as e:
            result.error = e
        except Exception as e:  # noqa: BLE001
            # 拉取器的意外异常也按拉取失败处理
            result.error = FetchError(f"拉取 {spec} 失败: {e}", spec.import_path)
        return result

    def _run_layer(self, layer: list[DependencySpec]) -> list[_LayerResult]:
        run = self._process_one
        if self.max_workers == 1 or len(layer) == 1:
            results = []
            for spec in layer:
                result = run(spec)
                results.append(result)
                if result.error is not None:
                    break
            return results

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(run, spec) for spec in layer]
            return [future.result() for future in futures]

    def _process_layer(
        self, layer: list[DependencySpec], graph: DependencyGraph,
    ) -> list[Library]:
        results = self._run_layer(layer)
        libraries = []
        first_error: VendlockError | None = None
        for result in results:
            if result.library is not None:
                graph.add(result.library)
                libraries.append(result.library)
                graph.warnings.extend(result.library.scan_warnings)
            if result.error is not None:
                self.log.error(
                    "依赖解析失败 %s: %s", result.spec, result.error,
                    extra={"import_path": result.spec.import_path},
                )
                first_error = first_error or result.error
        if first_error is not None:
            raise first_error
        return libraries
