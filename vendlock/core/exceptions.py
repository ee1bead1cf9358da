"""统一异常体系

所有业务异常继承 VendlockError，CLI 层据此输出带错误码的友好提示。
致命与非致命的区分由调用方决定：ImportScanError / CleanupError
只记录告警，其余异常会中止整个运行。
"""

from __future__ import annotations


class VendlockError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(VendlockError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(VendlockError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class FetchError(VendlockError):
    """依赖拉取失败（网络 / VCS）"""

    code = "FETCH_ERROR"

    def __init__(self, message: str, import_path: str = "") -> None:
        super().__init__(message)
        self.import_path = import_path


class DiscoveryError(VendlockError):
    """依赖清单或锁文件内容损坏"""

    code = "DISCOVERY_ERROR"


class ImportScanError(VendlockError):
    """源码 import 扫描失败（非致命）"""

    code = "IMPORT_SCAN_ERROR"


class ConflictError(VendlockError):
    """同一导入路径出现不兼容的版本约束（仅严格模式）"""

    code = "CONFLICT_ERROR"


class InstallError(VendlockError):
    """安装目录创建或文件复制失败"""

    code = "INSTALL_ERROR"


class CleanupError(VendlockError):
    """暂存目录清理失败（非致命）"""

    code = "CLEANUP_ERROR"
