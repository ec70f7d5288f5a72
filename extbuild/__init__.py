"""extbuild - 外部依赖获取与构建编排"""

__version__ = "1.1.0"
