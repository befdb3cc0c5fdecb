"""生成服务 HTTP 接口"""

from src.api.generation.routes import generation_error_handler, router

__all__ = ["router", "generation_error_handler"]
