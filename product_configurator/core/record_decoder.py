# core/record_decoder.py

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from product_configurator.config.settings import MAX_IMAGES_PER_SET
from product_configurator.core.image_set import ImageItem, ImageSet
from product_configurator.core.product_schema import ProductDraft
from product_configurator.core.specs import SpecList
from product_configurator.core.variants import Variant, VariantCollection

logger = logging.getLogger(__name__)

# 1: 变体只有 priceDifference（相对基础价的差价，旧数据）
# 2: 变体有绝对价格 price
LEGACY_SCHEMA = 1
CURRENT_SCHEMA = 2


def detect_schema_version(record: Mapping[str, Any]) -> int:
    """只要有一个变体缺 price 但带着 priceDifference，就按旧格式处理"""
    for v in record.get("variants") or []:
        if v.get("price") is None and v.get("priceDifference") is not None:
            return LEGACY_SCHEMA
    return CURRENT_SCHEMA


def decode_variant_price(raw_variant: Mapping[str, Any]) -> float:
    """price 优先，没有就退回旧字段 priceDifference，再没有就是 0"""
    price = raw_variant.get("price")
    if price is None:
        price = raw_variant.get("priceDifference")
    if price is None:
        price = 0
    return price


def _image_urls(raw: Any) -> List[str]:
    return [url for url in (raw or []) if isinstance(url, str) and url]


def _persisted_set(urls: List[str], owner: str) -> ImageSet:
    # 旧数据可能超过上限：加载时不截断，删到上限以下之前不能再加新图
    if len(urls) > MAX_IMAGES_PER_SET:
        logger.warning("images[%s]: 已有 %d 张图片，超过上限 %d", owner, len(urls), MAX_IMAGES_PER_SET)
    return ImageSet((ImageItem.from_url(u) for u in urls), owner=owner)


def decode_variant(raw_variant: Mapping[str, Any], index: int) -> Variant:
    name = raw_variant.get("name") or ""
    images = _persisted_set(
        _image_urls(raw_variant.get("images")),
        owner=f"variant:{name or f'#{index + 1}'}",
    )
    return Variant(
        id=raw_variant.get("_id") or raw_variant.get("id"),
        name=name,
        sku=raw_variant.get("sku") or "",
        price=decode_variant_price(raw_variant),
        stock=raw_variant.get("stock") or 0,
        is_default=bool(raw_variant.get("isDefault")),
        images=images,
    )


def decode_product_record(record: Mapping[str, Any]) -> ProductDraft:
    """
    把接口返回的商品记录转成可编辑的 ProductDraft。

    这是唯一处理旧数据格式的地方，之后引擎里只存在绝对价格 price。

    Args:
        record: fetch_product() 返回的 JSON

    Returns:
        编辑模式下使用的 ProductDraft
    """
    version = detect_schema_version(record)
    if version == LEGACY_SCHEMA:
        logger.info("商品 %s 使用旧格式 priceDifference，已转换为 price", record.get("_id") or record.get("id"))

    variants = [decode_variant(v, i) for i, v in enumerate(record.get("variants") or [])]
    # 保证至少有一个默认变体
    if variants and not any(v.is_default for v in variants):
        variants[0].is_default = True

    stock = record.get("stock")
    return ProductDraft(
        name=record.get("name") or "",
        slug=record.get("slug") or "",
        description=record.get("description") or "",
        brand=record.get("brand") or "",
        is_featured=bool(record.get("isFeatured")),
        specs=SpecList.from_mapping(record.get("specs")),
        variants=VariantCollection(variants, min_variants=0),
        global_images=_persisted_set(_image_urls(record.get("images")), owner="global"),
        global_stock=int(stock) if stock is not None and stock != "" else None,
        product_id=record.get("_id") or record.get("id"),
    )
