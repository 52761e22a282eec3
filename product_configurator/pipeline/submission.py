# pipeline/submission.py

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from product_configurator.core.notices import NoticeBoard
from product_configurator.core.product_schema import ProductDraft
from product_configurator.platforms.catalog_client import CatalogApiError

logger = logging.getLogger(__name__)


class EditorMode(Enum):
    CREATE = "create"
    EDIT = "edit"


class SubmissionState(Enum):
    EDITING = "editing"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    ASSEMBLING = "assembling"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


BUSY_STATES = (
    SubmissionState.VALIDATING,
    SubmissionState.UPLOADING,
    SubmissionState.ASSEMBLING,
    SubmissionState.SUBMITTING,
)


@dataclass(frozen=True)
class PricePolicy:
    """
    价格校验阈值。

    创建页面要求每个变体价格 > 0；编辑页面历史上允许变体价格 = 0，
    但仍要求默认变体（基础价）> 0。两套规则都保留，由产品负责人决定统一成哪一个。
    """

    name: str
    allow_zero_variant_price: bool
    allow_zero_base_price: bool

    def variant_price_ok(self, price: Any) -> bool:
        if not _is_number(price):
            return False
        return price >= 0 if self.allow_zero_variant_price else price > 0

    def base_price_ok(self, price: Any) -> bool:
        if not _is_number(price):
            return False
        return price >= 0 if self.allow_zero_base_price else price > 0


CREATE_PRICE_POLICY = PricePolicy("create", allow_zero_variant_price=False, allow_zero_base_price=False)
EDIT_PRICE_POLICY = PricePolicy("edit", allow_zero_variant_price=True, allow_zero_base_price=False)

GENERIC_FAILURE = {
    EditorMode.CREATE: "创建商品失败",
    EditorMode.EDIT: "保存商品失败",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def _is_whole_number(value: Any) -> bool:
    return _is_number(value) and float(value).is_integer()


@dataclass
class ValidationIssue:
    field: str
    code: str
    message: str


@dataclass
class SubmissionResult:
    """
    一次提交的结果（参考 ServiceResult 的写法）。

    ok=True 时 value 是接口返回的商品；否则 error 是错误码，error_detail 是给用户看的信息。
    """

    ok: bool
    value: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None
    issues: List[ValidationIssue] = field(default_factory=list)
    payload: Optional[Dict[str, Any]] = None


def validate_draft(draft: ProductDraft, policy: PricePolicy) -> List[ValidationIssue]:
    """
    本地校验，不发任何请求。

    有变体 → 按变体定价校验；没有变体 → 按旧的简单定价（全局库存 + 全局图片）校验。
    """
    issues: List[ValidationIssue] = []

    if not draft.name.strip():
        issues.append(ValidationIssue("name", "required", "名称为必填项"))
    if not draft.description.strip():
        issues.append(ValidationIssue("description", "required", "描述为必填项"))

    if draft.has_variants:
        if draft.variants.default_count() != 1:
            issues.append(ValidationIssue("variants", "no_default_variant", "请选择一个默认变体"))
        for i, v in enumerate(draft.variants):
            prefix = f"variants[{i}]"
            if not v.name.strip():
                issues.append(ValidationIssue(f"{prefix}.name", "required", f"变体 #{i + 1} 缺少名称"))
            if not v.sku.strip():
                issues.append(ValidationIssue(f"{prefix}.sku", "required", f"变体 #{i + 1} 缺少 SKU"))
            if not policy.variant_price_ok(v.price):
                limit = "≥ 0" if policy.allow_zero_variant_price else "> 0"
                issues.append(ValidationIssue(f"{prefix}.price", "invalid_price", f"变体 #{i + 1} 价格必须 {limit}"))
            if not _is_whole_number(v.stock) or v.stock < 0:
                issues.append(ValidationIssue(f"{prefix}.stock", "invalid_stock", f"变体 #{i + 1} 库存必须是 ≥ 0 的整数"))
        base_price = draft.variants.base_price()
        if base_price is None or not policy.base_price_ok(base_price):
            issues.append(ValidationIssue("basePrice", "invalid_base_price", "价格无效，请检查默认变体"))
    else:
        stock = draft.global_stock
        if stock is None or not _is_whole_number(stock) or stock < 0:
            issues.append(ValidationIssue("stock", "invalid_stock", "没有变体时必须填写 ≥ 0 的全局库存"))
        if len(draft.global_images) == 0:
            issues.append(ValidationIssue("images", "required", "没有变体时至少需要一张全局图片"))

    return issues


def build_payload(
    draft: ProductDraft,
    variant_urls: Optional[List[List[str]]] = None,
    global_urls: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    用校验和上传之后的状态组装请求体。

    Args:
        draft: 商品草稿
        variant_urls: 每个变体上传后的 URL 列表（与变体一一对应）
        global_urls: 全局图片 URL（只在没有变体时使用）
    """
    payload: Dict[str, Any] = {
        "name": draft.name.strip(),
        "slug": draft.slug.strip(),
        "description": draft.description.strip(),
    }
    brand = draft.brand.strip()
    if brand:
        payload["brand"] = brand
    payload["isFeatured"] = bool(draft.is_featured)

    specs = draft.specs.to_mapping()
    if specs:
        payload["specs"] = specs

    if draft.has_variants:
        variant_urls = variant_urls or [v.images.persisted_urls() for v in draft.variants]
        variants = []
        for v, urls in zip(draft.variants, variant_urls):
            item: Dict[str, Any] = {}
            if v.id:
                item["_id"] = v.id
            item.update(
                name=v.name.strip(),
                sku=v.sku.strip(),
                price=v.price,
                stock=int(v.stock),
                images=list(urls),
                isDefault=bool(v.is_default),
            )
            variants.append(item)
        payload["images"] = []
        payload["variants"] = variants
        payload["basePrice"] = draft.variants.base_price()
    else:
        payload["images"] = list(global_urls if global_urls is not None else draft.global_images.persisted_urls())
        payload["stock"] = int(draft.global_stock)
        # 简单定价商品的基础价由后端决定，这里固定发 0
        payload["basePrice"] = 0

    return payload


class SubmissionAssembler:
    """
    提交流程：EDITING → VALIDATING → UPLOADING → ASSEMBLING → SUBMITTING → SUCCESS / FAILED

    - 校验失败直接回到 EDITING，不发任何请求
    - 变体图片逐个上传（不并发），单个变体失败不影响其他变体
    - 提交失败回到 EDITING，草稿保持不变，可以直接重试
    """

    def __init__(
        self,
        client,
        mode: EditorMode,
        notices: Optional[NoticeBoard] = None,
        price_policy: Optional[PricePolicy] = None,
    ):
        self.client = client
        self.mode = mode
        self.notices = notices if notices is not None else NoticeBoard()
        if price_policy is None:
            price_policy = CREATE_PRICE_POLICY if mode is EditorMode.CREATE else EDIT_PRICE_POLICY
        self.price_policy = price_policy
        self.state = SubmissionState.EDITING
        self.history: List[SubmissionState] = [self.state]

    @property
    def busy(self) -> bool:
        return self.state in BUSY_STATES

    def _enter(self, state: SubmissionState) -> None:
        logger.debug("submission: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def submit(self, draft: ProductDraft) -> SubmissionResult:
        if self.busy:
            return SubmissionResult(ok=False, error="submission_in_progress", error_detail="正在提交，请稍候")
        if self.mode is EditorMode.EDIT and not draft.product_id:
            raise ValueError("编辑模式需要 product_id")
        # 每次提交只保留本次产生的提示，重试时不会重复上一次的上传错误
        self.notices.clear()

        started = time.time()
        try:
            result = self._run(draft)
        finally:
            if self.busy:
                # 意外异常：也要回到可编辑状态
                self._enter(SubmissionState.EDITING)
        elapsed = (time.time() - started) * 1000
        if result.ok:
            logger.info("submission (%s) completed in %.2fms", self.mode.value, elapsed)
        else:
            logger.warning("submission (%s) failed with '%s' in %.2fms", self.mode.value, result.error, elapsed)
        return result

    def _run(self, draft: ProductDraft) -> SubmissionResult:
        # 1. 校验
        self._enter(SubmissionState.VALIDATING)
        if draft.variants.ensure_default():
            logger.info("提交前已自动修正默认变体")
        issues = validate_draft(draft, self.price_policy)
        if issues:
            for issue in issues:
                self.notices.error(issue.message, scope=issue.field)
            self._enter(SubmissionState.EDITING)
            return SubmissionResult(
                ok=False,
                error="validation_error",
                error_detail=issues[0].message,
                issues=issues,
            )

        # 2. 上传图片（逐个，失败只影响自己）
        self._enter(SubmissionState.UPLOADING)
        variant_urls: List[List[str]] = []
        global_urls: Optional[List[str]] = None
        if draft.has_variants:
            for i, variant in enumerate(draft.variants):
                urls = variant.images.upload_pending(
                    self.client.upload_images, self.notices, scope=variant.label(i)
                )
                variant_urls.append(urls)
        else:
            global_urls = draft.global_images.upload_pending(self.client.upload_images, self.notices, scope="global")

        # 3. 组装请求体
        self._enter(SubmissionState.ASSEMBLING)
        payload = build_payload(draft, variant_urls=variant_urls, global_urls=global_urls)

        # 4. 提交
        self._enter(SubmissionState.SUBMITTING)
        try:
            if self.mode is EditorMode.CREATE:
                record = self.client.create_product(payload)
            else:
                record = self.client.update_product(draft.product_id, payload)
        except CatalogApiError as e:
            detail = e.server_message or GENERIC_FAILURE[self.mode]
            self._enter(SubmissionState.FAILED)
            self.notices.error(detail)
            self._enter(SubmissionState.EDITING)
            return SubmissionResult(ok=False, error="submission_failed", error_detail=detail, payload=payload)

        self._enter(SubmissionState.SUCCESS)
        self.notices.success("商品已创建" if self.mode is EditorMode.CREATE else "商品已更新")
        return SubmissionResult(ok=True, value=record, payload=payload)
