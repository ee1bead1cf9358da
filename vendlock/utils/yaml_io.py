"""YAML 读取 - 仅用于运行配置 vendlock.yml"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 配置文件不应超过 1MB
MAX_YAML_SIZE = 1024 * 1024


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取顶层为映射的 YAML 文件

    文件不存在或为空时返回空字典。

    异常:
        yaml.YAMLError: YAML 格式错误
        OSError: IO 错误
        ValueError: 文件过大或顶层不是映射
    """
    p = Path(path)
    if not p.exists():
        logger.debug("配置文件不存在，使用默认值: %s", p)
        return {}

    size = p.stat().st_size
    if size > MAX_YAML_SIZE:
        raise ValueError(f"YAML 文件过大: {p} ({size} 字节)")

    with open(p, encoding="utf-8") as f:
        result = yaml.safe_load(f)

    if result is None:
        return {}
    if not isinstance(result, dict):
        raise ValueError(f"{p} 顶层必须是映射，实际是 {type(result).__name__}")
    return result
