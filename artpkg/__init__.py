"""artpkg - 包解析与缓存引擎"""

__version__ = "0.3.0"
