"""
配置模块
"""

from src.config.settings import Config, config

__all__ = ["Config", "config"]
