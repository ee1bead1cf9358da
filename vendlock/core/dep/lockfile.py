"""依赖清单 / 锁文件读写

清单（vendlock.toml）与锁文件（vendlock-lock.toml）共用同一记录格式::

    [[dependencies]]
    version = "1.2.0"
    type = "git"
    import = "github.com/acme/widgets"
    url = "https://github.com/acme/widgets"
    branch = "main"
    tag = "v1.2.0"

读取走 tomllib；写入按固定字段顺序手工输出，未锁定版本的记录
以 "# Unversioned" 注释行代替 version 键。
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from vendlock.core.dep.models import DependencySpec, SourceType, Version
from vendlock.core.exceptions import DiscoveryError, ValidationError
from vendlock.utils.fileops import atomic_write

logger = logging.getLogger(__name__)

UNVERSIONED_COMMENT = "# Unversioned"
LOCKFILE_HEADER = "# 由 vendlock 自动生成，请勿手动编辑\n"

_RECORD_KEYS = frozenset(("version", "type", "import", "url", "branch", "tag"))


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_record(
    *,
    version: Version | None,
    source_type: str = "",
    import_path: str = "",
    url: str = "",
    branch: str = "",
    tag: str = "",
) -> str:
    """输出一条依赖记录

    字段顺序固定为 version, type, import, url, branch, tag，空字段省略；
    version 为空或 major 为 0 时输出注释占位行。
    """
    lines = ["", "[[dependencies]]"]
    if version is not None and version.pinned:
        lines.append(f"version = {_quote(str(version))}")
    else:
        lines.append(UNVERSIONED_COMMENT)
    for key, value in (
        ("type", source_type),
        ("import", import_path),
        ("url", url),
        ("branch", branch),
        ("tag", tag),
    ):
        if value:
            lines.append(f"{key} = {_quote(value)}")
    return "\n".join(lines) + "\n"


def spec_from_record(record: Any, source: str = "") -> DependencySpec:
    """把一条 [[dependencies]] 表转换为 DependencySpec"""
    where = f" ({source})" if source else ""
    if not isinstance(record, dict):
        raise DiscoveryError(f"依赖记录必须是表{where}: {record!r}")
    unknown = set(record) - _RECORD_KEYS
    if unknown:
        raise DiscoveryError(f"依赖记录包含未知字段 {sorted(unknown)}{where}")
    for key, value in record.items():
        if not isinstance(value, str):
            raise DiscoveryError(f"依赖字段 '{key}' 必须是字符串{where}: {value!r}")
    try:
        return DependencySpec(
            import_path=record.get("import", ""),
            source_type=SourceType.parse(record.get("type", "")),
            url=record.get("url", ""),
            branch=record.get("branch", ""),
            tag=record.get("tag", ""),
            version_constraint=record.get("version", ""),
        )
    except ValidationError as e:
        raise DiscoveryError(f"依赖记录无效{where}: {e}") from e


def parse_depsfile(text: str, source: str = "") -> list[DependencySpec]:
    """解析清单/锁文件文本，返回声明顺序的依赖列表"""
    where = f" ({source})" if source else ""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise DiscoveryError(f"依赖文件格式错误{where}: {e}") from e
    records = data.get("dependencies", [])
    if not isinstance(records, list):
        raise DiscoveryError(f"'dependencies' 必须是表数组{where}")
    return [spec_from_record(r, source) for r in records]


def load_depsfile(*candidates: Path) -> list[DependencySpec] | None:
    """按顺序尝试读取候选文件，返回第一个存在的文件的依赖列表

    所有候选都不存在时返回 None；文件存在但内容损坏时抛 DiscoveryError。
    """
    for path in candidates:
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DiscoveryError(f"无法读取依赖文件 {path}: {e}") from e
        specs = parse_depsfile(text, source=str(path))
        logger.debug("已读取依赖文件 %s: %d 条", path, len(specs))
        return specs
    return None


def render_lockfile(records: Iterable[str]) -> str:
    return LOCKFILE_HEADER + "".join(records)


def write_lockfile(path: Path, records: Iterable[str]) -> None:
    """原子写入锁文件"""
    atomic_write(path, render_lockfile(records))
    logger.info("锁文件已写入: %s", path)
