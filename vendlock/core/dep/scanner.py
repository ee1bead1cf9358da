"""源码 import 扫描

按暂存目录中检测到的语言选择 ImportExtractor，提取外部 import 引用，
再用标准库排除表过滤。解析器本身与语言无关，新增语言只需注册提取器。
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterator, Protocol

from vendlock.core.dep.stdlib import is_go_standard
from vendlock.core.exceptions import ConfigError, ImportScanError
from vendlock.utils.fileops import is_ignored_dir

logger = logging.getLogger(__name__)

# 扫描时跳过的目录
_SKIP_DIRS = frozenset(("vendor", "testdata", "node_modules"))


class ImportExtractor(Protocol):
    """import 提取器协议"""

    name: str

    def detect(self, root: Path) -> bool:
        """判断目录树是否为该语言的源码"""
        ...

    def extract(self, root: Path) -> list[str]:
        """返回目录树中引用的全部 import（首次出现顺序，去重）"""
        ...

    def is_standard(self, import_name: str) -> bool:
        """判断 import 是否属于标准库"""
        ...


def iter_source_files(root: Path, suffix: str) -> Iterator[Path]:
    """按路径排序遍历源码文件，跳过 . / _ 开头的目录和 vendor/testdata"""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames
            if not is_ignored_dir(d) and d not in _SKIP_DIRS
        )
        for name in sorted(filenames):
            if name.endswith(suffix):
                yield Path(dirpath) / name


# =========================================================================
# Go
# =========================================================================

_GO_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_GO_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_GO_PACKAGE_RE = re.compile(r"^\s*package\s+\w+", re.MULTILINE)
_GO_IMPORT_BLOCK_RE = re.compile(r"^\s*import\s*\((.*?)\)", re.MULTILINE | re.DOTALL)
_GO_IMPORT_OPEN_RE = re.compile(r"^\s*import\s*\(", re.MULTILINE)
_GO_IMPORT_SINGLE_RE = re.compile(
    r"^\s*import\s+(?:[\w.]+\s+)?[\"`]([^\"`]+)[\"`]", re.MULTILINE,
)
_GO_IMPORT_SPEC_RE = re.compile(r"(?:[\w.]+\s+)?[\"`]([^\"`]+)[\"`]")


class GoImportExtractor:
    """Go 源码 import 提取器（不含 _test.go）"""

    name = "go"

    def detect(self, root: Path) -> bool:
        return any(True for _ in self._go_files(root))

    def is_standard(self, import_name: str) -> bool:
        return is_go_standard(import_name)

    def extract(self, root: Path) -> list[str]:
        seen: dict[str, None] = {}
        for path in self._go_files(root):
            for name in self.parse_imports(path):
                seen.setdefault(name, None)
        return list(seen)

    @staticmethod
    def _go_files(root: Path) -> Iterator[Path]:
        return (
            p for p in iter_source_files(root, ".go")
            if not p.name.endswith("_test.go")
        )

    @staticmethod
    def parse_imports(path: Path) -> list[str]:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ImportScanError(f"无法读取源文件 {path}: {e}") from e

        text = _GO_BLOCK_COMMENT_RE.sub("", text)
        text = _GO_LINE_COMMENT_RE.sub("", text)
        if not _GO_PACKAGE_RE.search(text):
            raise ImportScanError(f"缺少 package 声明，不是有效的 Go 源文件: {path}")

        blocks = _GO_IMPORT_BLOCK_RE.findall(text)
        if len(blocks) != len(_GO_IMPORT_OPEN_RE.findall(text)):
            raise ImportScanError(f"import 块未闭合: {path}")

        imports = [m for block in blocks for m in _GO_IMPORT_SPEC_RE.findall(block)]
        imports.extend(_GO_IMPORT_SINGLE_RE.findall(text))
        return imports


# =========================================================================
# 提取器注册表
# =========================================================================

_EXTRACTORS: dict[str, type] = {
    "go": GoImportExtractor,
}


def register_extractor(name: str, extractor_cls: type) -> None:
    """注册新语言的 import 提取器"""
    _EXTRACTORS[name] = extractor_cls


class ImportScanner:
    """按检测到的语言扫描外部 import"""

    def __init__(self, extractors: list[ImportExtractor] | None = None) -> None:
        self.extractors = extractors if extractors is not None else [GoImportExtractor()]

    @classmethod
    def for_languages(cls, languages: list[str]) -> ImportScanner:
        extractors = []
        for lang in languages:
            extractor_cls = _EXTRACTORS.get(lang)
            if extractor_cls is None:
                raise ConfigError(
                    f"不支持的语言: '{lang}'，可用: {sorted(_EXTRACTORS)}"
                )
            extractors.append(extractor_cls())
        return cls(extractors)

    def select(self, root: Path) -> ImportExtractor:
        for extractor in self.extractors:
            if extractor.detect(root):
                return extractor
        raise ImportScanError(f"未识别的源码语言: {root}")

    def scan(self, root: Path, log: logging.Logger | None = None) -> list[str]:
        """返回目录树中的外部（非标准库）import，首次出现顺序"""
        log = log or logger
        extractor = self.select(root)
        result = []
        for name in extractor.extract(root):
            if extractor.is_standard(name):
                log.debug("忽略标准库 import: %s", name)
                continue
            result.append(name)
        return result
