# core/product_schema.py

from dataclasses import dataclass, field
from typing import Optional

from product_configurator.core.image_set import ImageSet
from product_configurator.core.specs import SpecList
from product_configurator.core.variants import VariantCollection


@dataclass
class ProductDraft:
    """编辑中的商品草稿（一次编辑会话独占）"""

    name: str = ""
    slug: str = ""
    description: str = ""
    brand: str = ""
    is_featured: bool = False

    specs: SpecList = field(default_factory=SpecList)
    variants: VariantCollection = field(default_factory=VariantCollection)

    # 只有没有变体时才使用（旧的"简单定价"商品）
    global_images: ImageSet = field(default_factory=ImageSet)
    global_stock: Optional[int] = None

    # 编辑模式下是服务器上的商品 id，创建模式为 None
    product_id: Optional[str] = None

    @property
    def has_variants(self) -> bool:
        return len(self.variants) > 0
