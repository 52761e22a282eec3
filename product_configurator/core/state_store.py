# core/state_store.py

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class StateStore:
    """
    用本地 JSON 文件简单记录每个商品草稿（manifest）的处理状态：
    {
        "drafts": {
            "pad-dualsense.json": {
                "name": "Manette DualSense",
                "status": "success" / "failed" / "pending",
                "product_id": "...",
                "error": ""
            },
            ...
        }
    }
    """

    def __init__(self, filepath: Path):
        self.filepath = Path(filepath)
        self._state: Dict[str, Any] = {"drafts": {}}
        self._load()

    def _load(self) -> None:
        if not self.filepath.exists():
            self._state = {"drafts": {}}
            return
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                self._state = json.load(f)
        except (OSError, ValueError) as e:
            # 如果损坏就重新初始化
            logger.warning("加载状态文件失败 %s: %s", self.filepath, e)
            self._state = {"drafts": {}}
        if not isinstance(self._state, dict):
            self._state = {"drafts": {}}
        self._state.setdefault("drafts", {})

    def _save(self) -> None:
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        with self.filepath.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, ensure_ascii=False, indent=2)

    # --- 对外方法 ---

    def get_known_draft_keys(self) -> Set[str]:
        """返回所有已经存在记录的 manifest（不管成功失败）"""
        return set(self._state["drafts"].keys())

    def get_draft_record(self, key: str) -> Dict[str, Any]:
        return self._state["drafts"].get(key, {})

    def mark_draft_status(
        self,
        key: str,
        name: str,
        status: str,
        product_id: Optional[str] = None,
        error: str = "",
    ) -> None:
        """status: "pending" / "success" / "failed" """
        self._state["drafts"][key] = {
            "name": name,
            "status": status,
            "product_id": product_id,
            "error": error,
        }
        self._save()

    def list_unfinished_drafts(self, status_filter: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        找出还没成功的（比如 pending / failed），
        方便做重试逻辑。
        """
        status_filter = status_filter or ["pending", "failed"]
        return {
            key: rec
            for key, rec in self._state["drafts"].items()
            if rec.get("status") in status_filter
        }
