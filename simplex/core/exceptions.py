"""统一异常体系

所有业务异常继承 SimplexError。CLI 层据此输出友好提示，
流水线各阶段抛出各自可区分的子类，调用方无需解析错误文本。
"""

from __future__ import annotations


class SimplexError(Exception):
    """包管理器基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


# =========================================================================
# 清单
# =========================================================================

class ManifestError(SimplexError):
    """清单文档结构无效"""

    code = "MANIFEST_ERROR"

    def __init__(
        self, message: str, *, section: str = "", field: str = "",
    ) -> None:
        super().__init__(message)
        self.section = section
        self.field = field


class MissingFieldError(ManifestError):
    """缺少必填段或必填字段"""

    code = "MANIFEST_MISSING"


class FieldTypeError(ManifestError):
    """字段存在但类型不符"""

    code = "MANIFEST_TYPE"

    def __init__(
        self, message: str, *, section: str = "", field: str = "",
        expected: str = "", actual: str = "",
    ) -> None:
        super().__init__(message, section=section, field=field)
        self.expected = expected
        self.actual = actual


# =========================================================================
# 存储 / 输入校验
# =========================================================================

class StoreError(SimplexError):
    """存储目录创建、遍历或删除失败"""

    code = "STORE_ERROR"


class ConfigError(SimplexError):
    """配置文件无法读取或字段类型不符"""

    code = "CONFIG_ERROR"


class ValidationError(SimplexError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"


class PackageNotFoundError(SimplexError):
    """指定的包未安装"""

    code = "PACKAGE_NOT_FOUND"


# =========================================================================
# 外部工具调用
# =========================================================================

class ToolInvocationError(SimplexError):
    """外部工具无法启动、超时或以非零状态退出"""

    code = "TOOL_ERROR"

    def __init__(
        self, message: str, *, command: str = "",
        returncode: int | None = None, stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class DownloadError(ToolInvocationError):
    """下载工具执行失败"""

    code = "DOWNLOAD_ERROR"


class BuildStepError(ToolInvocationError):
    """构建步骤执行失败"""

    code = "BUILD_STEP_ERROR"

    def __init__(
        self, message: str, *, command: str = "",
        returncode: int | None = None, stderr: str = "", step: int = 0,
    ) -> None:
        super().__init__(
            message, command=command, returncode=returncode, stderr=stderr,
        )
        self.step = step


class ChecksumMismatchError(SimplexError):
    """下载产物与清单声明的校验和不一致"""

    code = "CHECKSUM_MISMATCH"

    def __init__(self, message: str, *, expected: str = "", actual: str = "") -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ExtractError(SimplexError):
    """源码包解压失败"""

    code = "EXTRACT_ERROR"


class ArchiveLayoutError(ExtractError):
    """解压结果无法确定唯一源码根目录"""

    code = "ARCHIVE_LAYOUT"
