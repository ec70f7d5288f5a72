"""外部依赖构建子包

拆分为:
  - layout.py: 工作目录布局推导
  - templater.py: configure / build / install 命令模板
  - fetcher.py: 归档下载与 SHA256 校验
  - normalizer.py: 归档解压与源码目录规整
  - markers.py: 阶段标记（mtime 账本）
  - stages.py: configure / build / install 阶段执行
  - pipeline.py: 单包完整流水线
  - locator.py: 安装前缀中的头文件 / 库定位
  - registry.py: 清单声明解析与校验
"""

from extbuild.core.external.layout import resolve_paths
from extbuild.core.external.pipeline import ExternalPipeline

__all__ = ["ExternalPipeline", "resolve_paths"]
