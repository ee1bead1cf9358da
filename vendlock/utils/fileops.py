"""文件树操作

暂存目录与安装目录之间的复制、子目录枚举、暂存清理，以及锁文件的原子写入。
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


# 以 . 或 _ 开头的目录不视为包（与 go 工具一致）
IGNORED_DIR_PREFIXES = (".", "_")


def is_ignored_dir(name: str) -> bool:
    return name.startswith(IGNORED_DIR_PREFIXES)


def list_subdirectories(root: Path) -> list[str]:
    """列出 root 下的直接子目录名（跳过 . 和 _ 开头的目录），按名称排序"""
    return sorted(
        d.name for d in root.iterdir()
        if d.is_dir() and not is_ignored_dir(d.name)
    )


def copy_file_tree(dest: Path, src: Path) -> int:
    """递归复制 src 下全部文件到 dest，逐个覆盖已有文件

    返回复制的文件数。任何 OSError 直接抛出，已复制的文件不回滚。
    """
    count = 0
    for dirpath, _dirnames, filenames in os.walk(src):
        rel = Path(dirpath).relative_to(src)
        target_dir = dest / rel
        target_dir.mkdir(parents=True, exist_ok=True)
        for name in filenames:
            shutil.copy2(Path(dirpath) / name, target_dir / name)
            count += 1
    return count


def remove_tree(path: Path) -> bool:
    """删除目录树；目录已不存在时返回 False，删除失败抛 OSError"""
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True


def atomic_write(path: Path, content: str) -> None:
    """同目录临时文件 + os.replace 写入，中途失败不留下半截文件"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise
