# pipeline/processor.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from product_configurator.config.settings import INBOX_DIR, STATE_STORE_FILE
from product_configurator.core.image_set import ImageSet
from product_configurator.core.specs import SpecList
from product_configurator.core.state_store import StateStore
from product_configurator.pipeline.editor import ProductEditor
from product_configurator.pipeline.loader import read_manifest
from product_configurator.platforms.catalog_client import CatalogApiError, CatalogClient

logger = logging.getLogger(__name__)

# manifest 里的变体字段 → Variant 字段
VARIANT_FIELDS = {
    "name": "name",
    "sku": "sku",
    "price": "price",
    "stock": "stock",
    "isDefault": "is_default",
}


def split_image_refs(refs: Sequence[str], base_dir: Path) -> Tuple[List[str], List[Path]]:
    """
    manifest 里的图片既可以是 URL（已上传），也可以是相对 manifest 的本地路径（待上传）。

    Returns:
        (urls, local_paths)
    """
    urls: List[str] = []
    files: List[Path] = []
    for ref in refs or []:
        ref = str(ref).strip()
        if not ref:
            continue
        if ref.startswith(("http://", "https://")):
            urls.append(ref)
        else:
            path = Path(ref)
            files.append(path if path.is_absolute() else base_dir / path)
    return urls, files


def _attach_images(editor: ProductEditor, images: ImageSet, refs: Sequence[str], base_dir: Path, scope: str) -> bool:
    urls, files = split_image_refs(refs, base_dir)
    if len(images) + len(urls) + len(files) > images.max_images:
        editor.notices.error(f"最多 {images.max_images} 张图片", scope=scope)
        return False
    images.add_urls(urls)
    images.add_files(files)
    return True


def _apply_variant(editor: ProductEditor, index: int, raw: Mapping[str, Any], base_dir: Path) -> None:
    for key, field_name in VARIANT_FIELDS.items():
        if key in raw:
            editor.update_variant(index, field_name, raw[key])
    variant = editor.draft.variants[index]
    if raw.get("images"):
        _attach_images(editor, variant.images, raw["images"], base_dir, scope=variant.label(index))


def _text(manifest: Mapping[str, Any], key: str) -> str:
    value = manifest.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"manifest 字段 {key!r} 必须是字符串，实际是 {type(value).__name__}")
    return value


def apply_manifest(editor: ProductEditor, manifest: Mapping[str, Any], base_dir: Path) -> ProductEditor:
    """
    把 manifest 的内容写进编辑会话。

    - 创建模式：manifest 的第 i 个变体填到第 i 个变体上（第一个变体已存在）
    - 编辑模式：按 SKU 匹配已有变体，匹配不到就新增
    """
    if "name" in manifest:
        editor.set_name(_text(manifest, "name"))
    if manifest.get("slug"):
        editor.set_slug(_text(manifest, "slug"))
    if "description" in manifest:
        editor.set_description(_text(manifest, "description"))
    if "brand" in manifest:
        editor.set_brand(_text(manifest, "brand"))
    if "isFeatured" in manifest:
        editor.set_featured(manifest["isFeatured"])
    if "stock" in manifest:
        editor.set_global_stock(manifest["stock"])
    if "specs" in manifest:
        editor.draft.specs = SpecList.from_mapping(manifest["specs"])

    existing_by_sku = {v.sku.strip(): i for i, v in enumerate(editor.draft.variants) if v.sku.strip()}
    for position, raw in enumerate(manifest.get("variants") or []):
        if editor.draft.product_id:
            index = existing_by_sku.get(str(raw.get("sku", "")).strip())
            if index is None:
                editor.add_variant()
                index = len(editor.draft.variants) - 1
        else:
            if position >= len(editor.draft.variants):
                editor.add_variant()
            index = position
        _apply_variant(editor, index, raw, base_dir)

    if manifest.get("images"):
        _attach_images(editor, editor.draft.global_images, manifest["images"], base_dir, scope="global")

    return editor


def build_editor(manifest: Mapping[str, Any], base_dir: Path, client) -> ProductEditor:
    product_id = manifest.get("product_id")
    if product_id:
        editor = ProductEditor.open(client, str(product_id))
    else:
        editor = ProductEditor.for_create(client=client)
    return apply_manifest(editor, manifest, base_dir)


def process_manifest(path: Path, client) -> Dict[str, Any]:
    """
    处理单个 manifest：构建编辑会话 → 提交。

    Returns:
        {"status": "success"/"failed", "product_id": ..., "error": ..., "warnings": [...]}
    """
    path = Path(path)
    manifest = read_manifest(path)
    try:
        editor = build_editor(manifest, path.parent, client)
    except CatalogApiError as e:
        return {"status": "failed", "product_id": manifest.get("product_id"), "error": e.message, "warnings": []}

    build_errors = editor.notices.errors()
    if build_errors:
        return {
            "status": "failed",
            "product_id": editor.draft.product_id,
            "error": "; ".join(n.message for n in build_errors),
            "warnings": [],
        }

    result = editor.submit()
    warnings = [f"[{n.scope}] {n.message}" for n in editor.notices.errors() if n.scope.startswith(("variant:", "global"))]
    if not result.ok:
        return {
            "status": "failed",
            "product_id": editor.draft.product_id,
            "error": result.error_detail,
            "warnings": warnings,
        }

    record = result.value or {}
    return {
        "status": "success",
        "product_id": record.get("_id") or record.get("id") or editor.draft.product_id,
        "error": "",
        "warnings": warnings,
    }


def process_pending_manifests(
    client: Optional[CatalogClient] = None,
    state: Optional[StateStore] = None,
    inbox_dir: Path = INBOX_DIR,
) -> Dict[str, int]:
    """
    处理 state.json 中 status == 'pending' 或 'failed' 的 manifest：
    - 对每个 manifest 构建 ProductEditor 并提交
    - 把结果写回 state.json
    """
    client = client or CatalogClient()
    state = state or StateStore(STATE_STORE_FILE)
    inbox_dir = Path(inbox_dir)

    pending = state.list_unfinished_drafts()
    summary = {"success": 0, "failed": 0}
    if not pending:
        print("✅ 当前没有需要处理的商品草稿。")
        return summary

    print(f"🔍 发现 {len(pending)} 个待处理草稿，开始处理...\n")
    for key, rec in pending.items():
        name = rec.get("name", "")
        print(f"🗂 处理草稿: {name} ({key})")
        path = inbox_dir / key
        if not path.exists():
            print(f"  ⚠️ 文件已不存在: {path}")
            state.mark_draft_status(key, name, "failed", error="manifest 文件不存在")
            summary["failed"] += 1
            continue

        try:
            outcome = process_manifest(path, client)
        except (OSError, ValueError) as e:
            logger.error("处理 %s 时出错: %s", key, e, exc_info=True)
            outcome = {"status": "failed", "product_id": None, "error": str(e), "warnings": []}

        for warning in outcome["warnings"]:
            print(f"  ⚠️ {warning}")
        if outcome["status"] == "success":
            print(f"  ✅ 已提交，商品 ID: {outcome['product_id']}")
        else:
            print(f"  ❌ 失败: {outcome['error']}")

        state.mark_draft_status(
            key,
            name,
            outcome["status"],
            product_id=outcome["product_id"],
            error=outcome["error"] or "",
        )
        summary[outcome["status"]] += 1

    print(f"\n📋 成功 {summary['success']} 个，失败 {summary['failed']} 个")
    return summary
