"""标准库排除表

扫描出的 import 若属于目标语言的标准库，则不作为外部依赖。
"""

from __future__ import annotations

# Go 标准库顶层包（含 cgo 伪包 "C"）
GO_STANDARD_PACKAGES = frozenset((
    "C", "archive", "bufio", "builtin", "bytes", "cmp", "compress",
    "container", "context", "crypto", "database", "debug", "embed",
    "encoding", "errors", "expvar", "flag", "fmt", "go", "hash", "html",
    "image", "index", "internal", "io", "iter", "log", "maps", "math",
    "mime", "net", "os", "path", "plugin", "reflect", "regexp", "runtime",
    "slices", "sort", "strconv", "strings", "structs", "sync", "syscall",
    "testing", "text", "time", "unicode", "unique", "unsafe", "weak",
))


def is_go_standard(import_path: str) -> bool:
    """判断 Go import 是否属于标准库

    除显式表外，首段不含 "." 的路径也按 Go 工具链约定视为标准库保留路径。
    """
    first = import_path.split("/", 1)[0]
    return first in GO_STANDARD_PACKAGES or "." not in first
