"""依赖数据模型

数据类:
- SourceType: 来源类型
- Version: 可比较的版本号
- DependencySpec: 未解析的依赖声明（不可变）
- Conflict: 同一导入路径的来源冲突记录
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from urllib.parse import urlparse

from vendlock.core.exceptions import ValidationError

LOCKFILE_NAME = "vendlock-lock.toml"
MANIFEST_NAME = "vendlock.toml"

_VERSION_RE = re.compile(
    r"^[v=]?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:-([0-9A-Za-z.\-]+))?$",
)
_SCP_URL_RE = re.compile(r"^[\w.\-]+@([\w.\-]+):(.+)$")


class SourceType(str, Enum):
    """依赖来源类型"""

    GIT = "git"
    LOCAL = "local"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> SourceType:
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.lower())
        except ValueError:
            raise ValidationError(
                f"不支持的来源类型: '{value}'，"
                f"可用: {[t.value for t in cls]}"
            ) from None


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """语义化版本号 {major, minor, patch} + 可选预发布标签

    排序规则: major → minor → patch → 预发布标签。
    带预发布标签的版本排在同号正式版之前，标签之间按字典序比较。
    """

    major: int = 0
    minor: int = 0
    patch: int = 0
    pre: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        m = _VERSION_RE.match(text.strip())
        if m is None:
            raise ValidationError(f"无效的版本号: '{text}'")
        major, minor, patch, pre = m.groups()
        return cls(int(major), int(minor or 0), int(patch or 0), pre or "")

    @classmethod
    def try_parse(cls, text: str) -> Version | None:
        try:
            return cls.parse(text)
        except ValidationError:
            return None

    @property
    def pinned(self) -> bool:
        """major 为 0 视为不稳定版本，不写入锁定版本号"""
        return self.major > 0

    def _key(self) -> tuple[int, int, int, int, str]:
        # 无预发布标签排在最后
        return (self.major, self.minor, self.patch, 0 if self.pre else 1, self.pre)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def satisfies(self, constraint: str) -> bool:
        """检查是否满足简单约束

        支持: 空（任意）、"1"（同 major）、"1.2"（同 major.minor）、
        "1.2.3[-pre]"（精确匹配）。可带前缀 v 或 =。
        """
        constraint = constraint.strip()
        if not constraint:
            return True
        m = _VERSION_RE.match(constraint)
        if m is None:
            raise ValidationError(f"无效的版本约束: '{constraint}'")
        major, minor, patch, pre = m.groups()
        if int(major) != self.major:
            return False
        if minor is not None and int(minor) != self.minor:
            return False
        if patch is not None:
            return int(patch) == self.patch and (pre or "") == self.pre
        return True

    @staticmethod
    def constraints_compatible(a: str, b: str) -> bool:
        """两个约束是否可能被同一版本同时满足

        任一为精确版本时直接检查另一约束；否则比较共同给出的 major / minor。
        """
        a, b = a.strip(), b.strip()
        if not a or not b or a == b:
            return True
        ma, mb = _VERSION_RE.match(a), _VERSION_RE.match(b)
        if ma is None or mb is None:
            raise ValidationError(f"无效的版本约束: '{a if ma is None else b}'")
        if ma.group(3) is not None:
            return Version.parse(a).satisfies(b)
        if mb.group(3) is not None:
            return Version.parse(b).satisfies(a)
        if int(ma.group(1)) != int(mb.group(1)):
            return False
        minor_a, minor_b = ma.group(2), mb.group(2)
        return minor_a is None or minor_b is None or int(minor_a) == int(minor_b)

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.pre}" if self.pre else base


def import_path_from_url(url: str) -> str:
    """从仓库 URL 推导导入路径: host + path，去掉 .git 后缀"""
    m = _SCP_URL_RE.match(url)
    if m:
        host, path = m.groups()
    else:
        try:
            parsed = urlparse(url)
            host = parsed.hostname or ""
        except ValueError as e:
            raise ValidationError(f"无法解析 URL: {url} ({e})") from e
        path = parsed.path
    path = path.strip("/").removesuffix(".git")
    if not host or not path:
        raise ValidationError(f"无法从 URL 推导导入路径: {url}")
    return f"{host}/{path}"


@dataclass(frozen=True)
class DependencySpec:
    """未解析的依赖声明

    import_path 是依赖图中的唯一标识，同时也是安装子目录。
    """

    import_path: str
    source_type: SourceType = SourceType.UNKNOWN
    url: str = ""
    branch: str = ""
    tag: str = ""
    version_constraint: str = ""

    def __post_init__(self) -> None:
        if not self.import_path:
            if not self.url:
                raise ValidationError("依赖声明必须指定 import 或 url")
            object.__setattr__(self, "import_path", import_path_from_url(self.url))
        object.__setattr__(self, "import_path", self.import_path.strip("/"))
        if self.version_constraint:
            # 提前校验约束格式
            Version().satisfies(self.version_constraint)

    @classmethod
    def inferred(cls, import_name: str) -> DependencySpec:
        """由源码中的 import 引用合成的依赖：无版本约束，来源未知"""
        return cls(import_path=import_name, source_type=SourceType.UNKNOWN)

    def with_source(self, **changes: str | SourceType) -> DependencySpec:
        return replace(self, **changes)  # type: ignore[arg-type]

    def differs_from(self, other: DependencySpec) -> list[str]:
        """列出与另一声明显式冲突的字段

        任一方为空不算冲突；版本约束只有互不兼容时才算冲突，
        锁文件中的精确版本 "1.2.0" 与清单中的 "1" 兼容。
        """
        fields = []
        for name in ("url", "branch", "tag"):
            mine, theirs = getattr(self, name), getattr(other, name)
            if mine and theirs and mine != theirs:
                fields.append(name)
        if not Version.constraints_compatible(self.version_constraint, other.version_constraint):
            fields.append("version_constraint")
        return fields

    def __str__(self) -> str:
        ref = self.tag or self.branch or self.version_constraint
        return f"{self.import_path}@{ref}" if ref else self.import_path


@dataclass
class Conflict:
    """同一导入路径被以不同来源请求时的记录

    先注册的来源生效，后到的请求被丢弃。
    """

    import_path: str
    kept: DependencySpec
    dropped: DependencySpec
    requested_by: str = ""
    fields: list[str] = field(default_factory=list)

    @property
    def versions_incompatible(self) -> bool:
        return "version_constraint" in self.fields

    def __str__(self) -> str:
        who = f" (来自 {self.requested_by})" if self.requested_by else ""
        return (
            f"依赖冲突 {self.import_path}{who}: "
            f"保留 {self.kept}，丢弃 {self.dropped} [{', '.join(self.fields)}]"
        )
