"""项目内使用的自定义异常定义。"""


class ThumbnailError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(ThumbnailError):
    """配置不合法时抛出。"""


class SetupError(ThumbnailError):
    """源目录不存在或不是目录时抛出，整个批次随即中止。"""
