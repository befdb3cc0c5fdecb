"""
媒体存储 - 将下载的二进制资源转换为可寻址句柄

句柄格式: media/{id}，通过 GET /v1/media/{id} 取回
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from uuid import uuid4

from src.config import config
from src.core.logger import logger

MEDIA_REF_PREFIX = "media/"


@dataclass
class StoredMedia:
    media_id: str
    data: bytes
    mime_type: str
    created_at: float = field(default_factory=time.time)

    @property
    def ref(self) -> str:
        return f"{MEDIA_REF_PREFIX}{self.media_id}"


class MediaStore:
    """进程内 LRU 存储，超过上限时淘汰最久未访问的条目"""

    def __init__(self, max_items: int | None = None) -> None:
        self._max_items = max_items or config.media_store_max_items
        self._items: OrderedDict[str, StoredMedia] = OrderedDict()

    def __len__(self) -> int:
        return len(self._items)

    def put(self, data: bytes, mime_type: str) -> str:
        media = StoredMedia(media_id=uuid4().hex, data=data, mime_type=mime_type)
        self._items[media.media_id] = media
        while len(self._items) > self._max_items:
            evicted_id, _ = self._items.popitem(last=False)
            logger.debug("淘汰媒体资源: {}", evicted_id)
        return media.ref

    def get(self, ref_or_id: str) -> StoredMedia | None:
        media_id = ref_or_id.removeprefix(MEDIA_REF_PREFIX)
        media = self._items.get(media_id)
        if media is not None:
            self._items.move_to_end(media_id)
        return media


_media_store: MediaStore | None = None


def get_media_store() -> MediaStore:
    global _media_store
    if _media_store is None:
        _media_store = MediaStore()
    return _media_store
