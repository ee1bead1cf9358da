"""依赖拉取器

职责:
- 把 DependencySpec 物化为独占的暂存目录，返回 Library
- Git: 按 tag 选择版本后浅克隆，去掉 .git 元数据
- Local: 从本地路径复制
- SourceFetcher: 按来源类型分派

任何失败都以 FetchError 抛出，并清理已创建的暂存目录。
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol

from vendlock.core.dep.library import Library
from vendlock.core.dep.models import DependencySpec, SourceType, Version
from vendlock.core.exceptions import FetchError, ValidationError
from vendlock.utils.fileops import remove_tree
from vendlock.utils.net import validate_url_scheme
from vendlock.utils.shell import (
    NON_INTERACTIVE_GIT_ENV,
    CommandExecutor,
    CommandResult,
    LocalExecutor,
)

logger = logging.getLogger(__name__)

_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@+\-]+$")
_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9_.\-]+")


class Fetcher(Protocol):
    """拉取器协议: 返回带完整、可写暂存目录的 Library"""

    def fetch(self, spec: DependencySpec) -> Library:
        ...


def make_staging_dir(spec: DependencySpec, staging_root: str = "") -> Path:
    """为依赖创建唯一命名的暂存目录"""
    label = _UNSAFE_NAME_RE.sub("_", spec.import_path)[-40:]
    if staging_root:
        Path(staging_root).mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=f"vendlock-{label}-", dir=staging_root or None))


def _discard(staging: Path) -> None:
    try:
        remove_tree(staging)
    except OSError:
        logger.warning("暂存目录清理失败: %s", staging, exc_info=True)


class GitFetcher:
    """Git 仓库拉取器"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        staging_root: str = "",
        timeout: int = 0,
        log: logging.Logger | None = None,
    ) -> None:
        self.executor = executor or LocalExecutor(NON_INTERACTIVE_GIT_ENV)
        self.staging_root = staging_root
        self.timeout = timeout or None
        self.log = log or logger

    def fetch(self, spec: DependencySpec) -> Library:
        try:
            validate_url_scheme(spec.url, context=spec.import_path)
        except ValidationError as e:
            raise FetchError(str(e), spec.import_path) from e
        for ref in (spec.branch, spec.tag):
            if ref and not _SAFE_REF_RE.match(ref):
                raise FetchError(f"ref 包含非法字符: {ref}", spec.import_path)

        ref, version, resolved_tag = self.select_ref(spec)
        staging = make_staging_dir(spec, self.staging_root)
        try:
            self._clone(spec, ref, staging)
            remove_tree(staging / ".git")
        except (FetchError, OSError, subprocess.SubprocessError) as e:
            _discard(staging)
            if isinstance(e, FetchError):
                raise
            raise FetchError(f"git 拉取失败 {spec}: {e}", spec.import_path) from e

        self.log.info("Git 就绪: %s@%s (version=%s)", spec.import_path, ref or "HEAD", version)
        resolved = spec.with_source(tag=resolved_tag) if resolved_tag else spec
        return Library(resolved, version, staging)

    # ------------------------------------------------------------------
    # 版本选择
    # ------------------------------------------------------------------

    def select_ref(self, spec: DependencySpec) -> tuple[str, Version, str]:
        """返回 (检出 ref, 版本, 需记录的 tag)

        - 显式 tag: 直接检出，版本从 tag 解析
        - 仅 branch 且无约束: 跟踪分支头，视为未定版本
        - 否则在远端 tag 中挑选满足约束的最高正式版本
        """
        if spec.tag:
            return spec.tag, Version.try_parse(spec.tag) or Version(), spec.tag
        if spec.branch and not spec.version_constraint:
            return spec.branch, Version(), ""

        best = self._best_tag(spec, self.list_tags(spec))
        if best is not None:
            version, tag = best
            return tag, version, tag
        if spec.version_constraint:
            raise FetchError(
                f"没有满足约束 '{spec.version_constraint}' 的 tag: {spec.import_path}",
                spec.import_path,
            )
        return spec.branch, Version(), ""

    @staticmethod
    def _best_tag(
        spec: DependencySpec, tags: list[str],
    ) -> tuple[Version, str] | None:
        exact = spec.version_constraint.lstrip("v=")
        candidates = []
        for tag in tags:
            version = Version.try_parse(tag)
            if version is None or not version.satisfies(spec.version_constraint):
                continue
            if version.pre and str(version) != exact:
                continue
            candidates.append((version, tag))
        return max(candidates) if candidates else None

    def list_tags(self, spec: DependencySpec) -> list[str]:
        r = self._git(["ls-remote", "--tags", "--refs", spec.url], spec=spec)
        if not r.success:
            raise FetchError(
                f"git ls-remote 失败 ({r.error_summary()})",
                spec.import_path,
            )
        tags = []
        for line in r.stdout.splitlines():
            _, _, ref = line.partition("\t")
            if ref.startswith("refs/tags/"):
                tags.append(ref.removeprefix("refs/tags/"))
        return tags

    # ------------------------------------------------------------------
    # 克隆
    # ------------------------------------------------------------------

    def _clone(self, spec: DependencySpec, ref: str, dest: Path) -> None:
        cmd = ["clone", "--depth", "1"]
        if ref:
            cmd += ["--branch", ref]
        r = self._git([*cmd, spec.url, str(dest)], spec=spec)
        if r.success:
            return

        # 回退: 完整 clone + checkout（如 ref 为 commit）
        self.log.debug("浅克隆失败，回退完整克隆: %s", r.error_summary())
        remove_tree(dest)
        dest.mkdir(parents=True)
        r = self._git(["clone", spec.url, str(dest)], spec=spec)
        if not r.success:
            raise FetchError(
                f"git clone 失败 ({r.error_summary()})",
                spec.import_path,
            )
        if ref:
            r = self._git(["checkout", ref], spec=spec, cwd=dest)
            if not r.success:
                raise FetchError(
                    f"git checkout {ref} 失败 ({r.error_summary()})",
                    spec.import_path,
                )

    def _git(
        self, args: list[str], *, spec: DependencySpec, cwd: Path | None = None,
    ) -> CommandResult:
        try:
            return self.executor.execute(
                ["git", *args], cwd=str(cwd or "."), timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise FetchError(f"git {args[0]} 超时 ({self.timeout}秒)", spec.import_path) from e
        except OSError as e:
            raise FetchError(f"无法执行 git: {e}", spec.import_path) from e


class LocalFetcher:
    """本地路径拉取器 - url 为本地目录（可带 file:// 前缀）"""

    def __init__(
        self,
        base_dir: Path | str = ".",
        staging_root: str = "",
        log: logging.Logger | None = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.staging_root = staging_root
        self.log = log or logger

    def fetch(self, spec: DependencySpec) -> Library:
        if not spec.url:
            raise FetchError(f"本地依赖未指定 url: {spec.import_path}", spec.import_path)
        src = self.base_dir / spec.url.removeprefix("file://")
        if not src.is_dir():
            raise FetchError(f"本地依赖目录不存在: {src}", spec.import_path)

        staging = make_staging_dir(spec, self.staging_root)
        try:
            shutil.copytree(
                src, staging, dirs_exist_ok=True,
                ignore=shutil.ignore_patterns(".git"),
            )
        except OSError as e:
            _discard(staging)
            raise FetchError(f"复制本地依赖失败 {src}: {e}", spec.import_path) from e

        version = Version.try_parse(spec.tag) if spec.tag else None
        self.log.info("本地依赖就绪: %s -> %s", spec.import_path, src)
        return Library(spec, version, staging)


class SourceFetcher:
    """按来源类型分派的拉取器"""

    def __init__(self, fetchers: dict[SourceType, Fetcher]) -> None:
        self.fetchers = fetchers

    @classmethod
    def default(
        cls,
        *,
        base_dir: Path | str = ".",
        staging_root: str = "",
        timeout: int = 0,
        executor: CommandExecutor | None = None,
        log: logging.Logger | None = None,
    ) -> SourceFetcher:
        return cls({
            SourceType.GIT: GitFetcher(
                executor, staging_root=staging_root, timeout=timeout, log=log,
            ),
            SourceType.LOCAL: LocalFetcher(
                base_dir, staging_root=staging_root, log=log,
            ),
        })

    def fetch(self, spec: DependencySpec) -> Library:
        fetcher = self.fetchers.get(spec.source_type)
        if fetcher is None:
            raise FetchError(
                f"不支持的来源类型: {spec.source_type.value} ({spec.import_path})",
                spec.import_path,
            )
        return fetcher.fetch(spec)
