"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

import yaml

from vendlock.core.dep.models import LOCKFILE_NAME, MANIFEST_NAME
from vendlock.core.exceptions import ConfigError
from vendlock.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "vendlock.yml"

# 推断依赖的默认来源规则：host 前缀 → 来源类型 / URL 模板 / 仓库根路径段数
DEFAULT_SOURCES: list[dict[str, Any]] = [
    {"match": "github.com/", "type": "git", "url": "https://{import}", "segments": 3},
    {"match": "gitlab.com/", "type": "git", "url": "https://{import}", "segments": 3},
    {"match": "bitbucket.org/", "type": "git", "url": "https://{import}", "segments": 3},
    {"match": "", "type": "git", "url": "https://{import}"},
]


@dataclass
class Config:
    """全局配置"""

    # 文件
    manifest_file: str = MANIFEST_NAME
    lockfile: str = LOCKFILE_NAME
    install_root: str = "src"
    staging_dir: str = ""  # 空则使用系统临时目录

    # 执行
    max_workers: int = 8
    fetch_timeout: int = 0  # 秒，0 表示不限制

    # 解析策略
    strict_conflicts: bool = False
    languages: list[str] = field(default_factory=lambda: ["go"])
    sources: list[dict[str, Any]] = field(
        default_factory=lambda: [dict(s) for s in DEFAULT_SOURCES],
    )

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigError(f"max_workers 必须 >= 1，实际: {self.max_workers}")
        if self.fetch_timeout < 0:
            raise ConfigError(f"fetch_timeout 不能为负数: {self.fetch_timeout}")

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"无法读取配置文件 {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件 {path} 内容无效: {e}") from e
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
