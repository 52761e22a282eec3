# core/image_set.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from product_configurator.config.settings import MAX_IMAGES_PER_SET
from product_configurator.core.constrained_list import ConstrainedList
from product_configurator.core.notices import NoticeBoard

logger = logging.getLogger(__name__)

# 上传协作者：按顺序接收本地文件，返回一一对应的 URL 列表
Uploader = Callable[[List[Path]], List[str]]


@dataclass
class ImageItem:
    """
    一张图片：
    - file: 本地待上传文件（已上传或来自服务器时为 None）
    - preview: 预览地址，本地文件是 file:// URI，已上传的就是服务器 URL
    - url: 服务器 URL（已持久化时才有）
    """

    preview: str
    file: Optional[Path] = None
    url: Optional[str] = None

    @classmethod
    def from_file(cls, path) -> "ImageItem":
        path = Path(path)
        return cls(preview=path.resolve().as_uri(), file=path)

    @classmethod
    def from_url(cls, url: str) -> "ImageItem":
        return cls(preview=url, url=url)

    @property
    def is_pending(self) -> bool:
        return self.file is not None

    @property
    def is_corrupt(self) -> bool:
        return self.file is None and not self.url


class ImageSet:
    """
    单个图片集合（某个变体的图片，或者无变体商品的全局图片）。

    已有图片（URL）和新选的本地图片混在一起，按顺序保存，最多 max_images 张。
    """

    def __init__(
        self,
        items: Iterable[ImageItem] = (),
        owner: str = "global",
        max_images: int = MAX_IMAGES_PER_SET,
    ):
        self.owner = owner
        self._items: ConstrainedList[ImageItem] = ConstrainedList(
            items, max_items=max_images, label=f"images[{owner}]"
        )

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index: int) -> ImageItem:
        return self._items[index]

    @property
    def max_images(self) -> int:
        return self._items.max_items

    def add_files(self, files: Sequence) -> List[ImageItem]:
        """
        加入本地文件。超出上限时整批拒绝（抛 CapacityExceeded），集合不变。
        """
        return self._items.extend(ImageItem.from_file(f) for f in files)

    def add_urls(self, urls: Sequence[str]) -> List[ImageItem]:
        return self._items.extend(ImageItem.from_url(u) for u in urls)

    def remove(self, index: int) -> ImageItem:
        # 只删本地记录，不会去服务器删图
        return self._items.remove(index)

    def pending_count(self) -> int:
        return sum(1 for item in self._items if item.is_pending)

    def persisted_urls(self) -> List[str]:
        return [item.url for item in self._items if not item.is_pending and item.url]

    def upload_pending(
        self,
        uploader: Uploader,
        notices: Optional[NoticeBoard] = None,
        scope: Optional[str] = None,
    ) -> List[str]:
        """
        差量上传：只上传新图片，保留已有 URL。

        结果顺序是"已有在前，新上传在后"，而不是原来的穿插顺序。

        Args:
            uploader: 上传函数，接收文件列表，返回等长 URL 列表
            notices: 上传失败时把错误提示发到这里
            scope: 提示归属，默认用 owner（变体名字可能在编辑中改过）

        Returns:
            用于提交的 URL 列表；上传失败时只包含已有 URL
        """
        scope = scope or self.owner
        corrupt = [i for i, item in enumerate(self._items) if item.is_corrupt]
        if corrupt:
            logger.warning("images[%s]: 丢弃 %d 张既没有文件也没有 URL 的图片 %s", self.owner, len(corrupt), corrupt)
            self._items.reset(item for item in self._items if not item.is_corrupt)

        existing = self.persisted_urls()
        pending = [item.file for item in self._items if item.is_pending]
        if not pending:
            return existing

        logger.info("images[%s]: 上传 %d 张新图片", self.owner, len(pending))
        try:
            new_urls = list(uploader(pending))
            if len(new_urls) != len(pending):
                raise ValueError(
                    f"上传返回 {len(new_urls)} 个 URL，但提交了 {len(pending)} 个文件"
                )
        except Exception as e:
            logger.error("images[%s]: 上传失败: %s", self.owner, e, exc_info=True)
            if notices is not None:
                notices.error(f"图片上传失败（{scope}）: {e}", scope=scope)
            return existing

        final_urls = existing + new_urls
        self._items.reset(ImageItem.from_url(u) for u in final_urls)
        return final_urls
