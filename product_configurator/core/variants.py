# core/variants.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, List, Optional

from product_configurator.core.constrained_list import ConstrainedList
from product_configurator.core.image_set import ImageSet
from product_configurator.core.notices import UnknownField

logger = logging.getLogger(__name__)

# update() 允许修改的字段；images 通过 ImageSet 自己管理
EDITABLE_FIELDS = ("name", "sku", "price", "stock", "is_default")


@dataclass
class Variant:
    """商品变体：独立的 SKU、价格（绝对单价，不是差价）、库存和图片"""

    name: str = ""
    sku: str = ""
    price: float = 0
    stock: int = 0
    is_default: bool = False
    images: ImageSet = field(default_factory=lambda: ImageSet(owner="variant"))
    id: Optional[str] = None  # 服务器分配，新变体为 None

    def label(self, index: int) -> str:
        """给用户提示用的名字"""
        return f"variant:{self.name.strip() or f'#{index + 1}'}"


def single_default_repair(items: List[Variant], event: str, index: int, item: Variant) -> None:
    """
    维护"恰好一个默认变体"：
    - 某个变体被设为默认 → 其余全部取消默认
    - 删掉了默认变体且列表非空 → 第一个变成默认
    取消默认（is_default=False）不在这里修正，提交前由 ensure_default() 处理。
    """
    if event in ("add", "update") and item.is_default:
        for i, other in enumerate(items):
            if i != index and other.is_default:
                items[i] = replace(other, is_default=False)
    elif event == "remove" and item.is_default and items:
        if not items[0].is_default:
            items[0] = replace(items[0], is_default=True)
        for i in range(1, len(items)):
            if items[i].is_default:
                items[i] = replace(items[i], is_default=False)


class VariantCollection:
    """
    变体列表管理。

    min_variants=1 时（创建模式）不允许删掉最后一个变体；
    编辑模式下为兼容旧的无变体商品，min_variants=0。
    """

    def __init__(self, variants: Iterable[Variant] = (), min_variants: int = 0):
        self._variants: ConstrainedList[Variant] = ConstrainedList(
            variants,
            min_items=min_variants,
            repair=single_default_repair,
            label="variants",
        )

    def __len__(self) -> int:
        return len(self._variants)

    def __iter__(self):
        return iter(self._variants)

    def __getitem__(self, index: int) -> Variant:
        return self._variants[index]

    def add(self) -> Variant:
        index = len(self._variants)
        variant = Variant(is_default=index == 0, images=ImageSet(owner=f"variant:#{index + 1}"))
        return self._variants.append(variant)

    def remove(self, index: int) -> Variant:
        """删除变体；创建模式下删最后一个会抛 RemovalRefused。"""
        return self._variants.remove(index)

    def update(self, index: int, field_name: str, value: Any) -> Variant:
        if field_name not in EDITABLE_FIELDS:
            raise UnknownField(f"变体不支持修改字段 {field_name!r}")
        if field_name == "is_default":
            value = bool(value)
        updated = replace(self._variants[index], **{field_name: value})
        return self._variants.replace(index, updated)

    def default_count(self) -> int:
        return sum(1 for v in self._variants if v.is_default)

    def default_variant(self) -> Optional[Variant]:
        for v in self._variants:
            if v.is_default:
                return v
        return self._variants[0] if self._variants else None

    def base_price(self) -> Optional[float]:
        default = self.default_variant()
        return default.price if default is not None else None

    def ensure_default(self) -> bool:
        """
        提交前修正：非空列表但没有默认变体时，把第一个设为默认。

        Returns:
            是否做了修正
        """
        if self._variants and self.default_count() == 0:
            logger.info("没有默认变体，自动把第一个变体设为默认")
            self.update(0, "is_default", True)
            return True
        return False
