from .scheduler import RenderScheduler, VirtualItem

__all__ = [
    "RenderScheduler",
    "VirtualItem",
]
