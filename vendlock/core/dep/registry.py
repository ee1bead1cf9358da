"""来源注册表

职责:
- 为来源未知（从源码 import 推断出来）的依赖补全来源类型与 URL
- 把子包 import 归并到仓库根导入路径（如 github.com/a/b/sub → github.com/a/b）

规则按配置顺序匹配 import 前缀，第一条命中的生效::

    sources:
      - match: "github.com/"
        type: git
        url: "https://{import}"
        segments: 3
      - match: ""            # 兜底规则
        type: git
        url: "https://{import}"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from vendlock.core.dep.models import DependencySpec, SourceType
from vendlock.core.exceptions import ConfigError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SourceRule:
    """单条来源规则"""

    match: str
    source_type: SourceType
    url_template: str
    segments: int = 0  # 仓库根路径段数，0 表示不截断

    def applies(self, import_path: str) -> bool:
        return import_path.startswith(self.match)

    def repo_root(self, import_path: str) -> str:
        if self.segments <= 0:
            return import_path
        parts = import_path.split("/")
        return "/".join(parts[: self.segments])


class SourceRegistry:
    """来源注册表 - 补全推断依赖的默认来源"""

    def __init__(self, rules: list[SourceRule]) -> None:
        self.rules = rules

    @classmethod
    def from_config(cls, sources: list[dict[str, Any]]) -> SourceRegistry:
        """从配置段加载规则"""
        rules = []
        for i, info in enumerate(sources):
            if not isinstance(info, dict) or "url" not in info:
                raise ConfigError(f"sources[{i}] 必须是包含 url 的映射: {info!r}")
            try:
                source_type = SourceType.parse(info.get("type", "git"))
            except ValidationError as e:
                raise ConfigError(f"sources[{i}]: {e}") from e
            if source_type is SourceType.UNKNOWN:
                raise ConfigError(f"sources[{i}] 必须指定具体来源类型")
            try:
                segments = int(info.get("segments", 0))
            except (TypeError, ValueError):
                raise ConfigError(
                    f"sources[{i}] segments 必须是整数: {info.get('segments')!r}"
                ) from None
            rules.append(SourceRule(
                match=info.get("match", ""),
                source_type=source_type,
                url_template=info["url"],
                segments=segments,
            ))
        logger.debug("已加载 %d 条来源规则", len(rules))
        return cls(rules)

    def complete(self, spec: DependencySpec) -> DependencySpec:
        """补全来源未知的依赖；已声明来源的依赖原样返回"""
        if spec.source_type is not SourceType.UNKNOWN:
            return spec
        for rule in self.rules:
            if not rule.applies(spec.import_path):
                continue
            root = rule.repo_root(spec.import_path)
            url = spec.url or rule.url_template.replace("{import}", root)
            completed = spec.with_source(
                import_path=root, source_type=rule.source_type, url=url,
            )
            if root != spec.import_path:
                logger.debug("归并子包 %s -> %s", spec.import_path, root)
            return completed
        raise ValidationError(f"没有匹配的来源规则: {spec.import_path}")

    def list_rules(self) -> list[dict[str, str]]:
        """格式化规则列表用于查询"""
        return [
            {
                "match": r.match or "*",
                "type": r.source_type.value,
                "url": r.url_template,
            }
            for r in self.rules
        ]
