"""
生成请求入口

- RequestDispatcher: 按 mode 路由请求，产出结果或已分类错误
"""

from src.services.generation.request_dispatcher import RequestDispatcher

__all__ = ["RequestDispatcher"]
