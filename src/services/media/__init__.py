"""
媒体资源存储
"""

from src.services.media.store import MediaStore, StoredMedia, get_media_store

__all__ = ["MediaStore", "StoredMedia", "get_media_store"]
