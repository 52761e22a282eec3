# pipeline/editor.py

from __future__ import annotations

from typing import Any, Optional, Sequence

from product_configurator.core.notices import CapacityExceeded, NoticeBoard, RemovalRefused
from product_configurator.core.product_schema import ProductDraft
from product_configurator.core.record_decoder import decode_product_record
from product_configurator.core.slug import SlugPolicy, next_slug
from product_configurator.core.variants import Variant, VariantCollection
from product_configurator.pipeline.submission import (
    EditorMode,
    PricePolicy,
    SubmissionAssembler,
    SubmissionResult,
)
from product_configurator.platforms.catalog_client import CatalogApiError


class ProductEditor:
    """
    一次商品编辑会话（创建或编辑），对应后台的"新建商品"/"编辑商品"页面。

    用户操作中可以纠正的错误（超出图片上限、删掉最后一个变体）不会抛出，
    而是变成 notices 里的一条提示，草稿保持不变。
    """

    def __init__(
        self,
        draft: ProductDraft,
        mode: EditorMode,
        client=None,
        notices: Optional[NoticeBoard] = None,
        price_policy: Optional[PricePolicy] = None,
    ):
        self.draft = draft
        self.mode = mode
        self.client = client
        self.notices = notices if notices is not None else NoticeBoard()
        self.slug_policy = SlugPolicy.ALWAYS if mode is EditorMode.CREATE else SlugPolicy.WHILE_EMPTY
        self._price_policy = price_policy
        self._assembler: Optional[SubmissionAssembler] = None

    # --- 构造 ---

    @classmethod
    def for_create(cls, client=None, **kwargs) -> "ProductEditor":
        """新商品：至少一个变体，第一个变体是默认"""
        draft = ProductDraft(variants=VariantCollection(min_variants=1))
        editor = cls(draft, EditorMode.CREATE, client=client, **kwargs)
        editor.draft.variants.add()
        return editor

    @classmethod
    def for_edit(cls, record, client=None, product_id: Optional[str] = None, **kwargs) -> "ProductEditor":
        draft = decode_product_record(record)
        draft.product_id = draft.product_id or product_id
        if not draft.product_id:
            raise ValueError("商品记录缺少 id")
        return cls(draft, EditorMode.EDIT, client=client, **kwargs)

    @classmethod
    def open(cls, client, product_id: str, **kwargs) -> "ProductEditor":
        """从接口加载商品并进入编辑模式；加载失败时发提示并继续抛出"""
        notices = kwargs.pop("notices", None) or NoticeBoard()
        try:
            record = client.fetch_product(product_id)
        except CatalogApiError:
            notices.error("无法加载商品")
            raise
        return cls.for_edit(record, client=client, product_id=product_id, notices=notices, **kwargs)

    # --- 基本信息 ---

    def set_name(self, name: str) -> None:
        self.draft.name = name
        self.draft.slug = next_slug(self.draft.slug, name, self.slug_policy)

    def set_slug(self, slug: str) -> None:
        self.draft.slug = slug

    def set_description(self, description: str) -> None:
        self.draft.description = description

    def set_brand(self, brand: str) -> None:
        self.draft.brand = brand

    def set_featured(self, featured: bool) -> None:
        self.draft.is_featured = bool(featured)

    def set_global_stock(self, stock: Optional[int]) -> None:
        self.draft.global_stock = stock

    # --- 变体 ---

    def add_variant(self) -> Variant:
        return self.draft.variants.add()

    def remove_variant(self, index: int) -> bool:
        try:
            self.draft.variants.remove(index)
        except RemovalRefused:
            self.notices.error("至少需要一个变体", scope="variants")
            return False
        return True

    def update_variant(self, index: int, field_name: str, value: Any) -> Variant:
        return self.draft.variants.update(index, field_name, value)

    def add_variant_images(self, index: int, files: Sequence) -> bool:
        variant = self.draft.variants[index]
        try:
            variant.images.add_files(files)
        except CapacityExceeded:
            self.notices.error(
                f"每个变体最多 {variant.images.max_images} 张图片",
                scope=variant.label(index),
            )
            return False
        return True

    def remove_variant_image(self, index: int, image_index: int) -> None:
        self.draft.variants[index].images.remove(image_index)

    def base_price(self) -> Optional[float]:
        return self.draft.variants.base_price()

    # --- 全局图片（无变体商品） ---

    def add_global_images(self, files: Sequence) -> bool:
        try:
            self.draft.global_images.add_files(files)
        except CapacityExceeded:
            self.notices.error(f"全局图片最多 {self.draft.global_images.max_images} 张", scope="global")
            return False
        return True

    def remove_global_image(self, image_index: int) -> None:
        self.draft.global_images.remove(image_index)

    # --- 参数 ---

    def add_spec(self):
        return self.draft.specs.add()

    def remove_spec(self, index: int):
        return self.draft.specs.remove(index)

    def update_spec(self, index: int, field_name: str, value: str):
        return self.draft.specs.update(index, field_name, value)

    # --- 提交 ---

    @property
    def assembler(self) -> SubmissionAssembler:
        if self._assembler is None:
            if self.client is None:
                raise ValueError("提交需要 CatalogClient")
            self._assembler = SubmissionAssembler(
                self.client, self.mode, notices=self.notices, price_policy=self._price_policy
            )
        return self._assembler

    @property
    def busy(self) -> bool:
        return self._assembler is not None and self._assembler.busy

    def submit(self) -> SubmissionResult:
        return self.assembler.submit(self.draft)
