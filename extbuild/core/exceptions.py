"""统一异常体系

所有业务异常继承 ExtBuildError。
CLI 层据此输出友好提示并以非零状态退出；任何致命错误都会中止当前包的流水线，
但不会破坏已完成阶段的标记。
"""

from __future__ import annotations


class ExtBuildError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(ExtBuildError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(ExtBuildError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class DeclarationError(ValidationError):
    """依赖声明缺少必填字段或字段非法（在任何 IO 之前抛出）"""

    code = "DECLARATION_ERROR"


class TransportError(ExtBuildError):
    """下载失败，不保留任何部分文件"""

    code = "TRANSPORT_ERROR"


class IntegrityError(ExtBuildError):
    """归档 SHA256 与声明不一致，归档保留以供排查"""

    code = "INTEGRITY_ERROR"


class ArchiveError(ExtBuildError):
    """归档解压失败"""

    code = "ARCHIVE_ERROR"


class StageError(ExtBuildError):
    """configure / build / install 命令返回非零"""

    code = "STAGE_ERROR"

    def __init__(self, message: str, stage: str = "") -> None:
        super().__init__(message)
        self.stage = stage


class InstallError(ExtBuildError):
    """流水线结束后 install 标记不存在"""

    code = "INSTALL_ERROR"


class DiscoveryError(ExtBuildError):
    """必需的头文件或库在安装前缀中未找到"""

    code = "DISCOVERY_ERROR"
