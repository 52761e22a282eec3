# pipeline/loader.py

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from product_configurator.config.settings import INBOX_DIR, STATE_STORE_FILE
from product_configurator.core.state_store import StateStore

logger = logging.getLogger(__name__)


def find_new_manifests(inbox_dir: Path = INBOX_DIR, state: Optional[StateStore] = None) -> List[Dict[str, Any]]:
    """
    返回收件目录里还没有记录的 manifest 列表
    每个元素大致形如：
    {
        "key": "pad-dualsense.json",
        "path": Path(...),
        "name": "Manette DualSense"
    }
    """
    state = state or StateStore(STATE_STORE_FILE)
    inbox_dir = Path(inbox_dir)
    if not inbox_dir.is_dir():
        logger.warning("收件目录不存在: %s", inbox_dir)
        return []

    known = state.get_known_draft_keys()
    new_manifests = []
    for path in sorted(inbox_dir.glob("*.json")):
        if path.name in known:
            continue
        try:
            data = read_manifest(path)
        except ValueError as e:
            logger.warning("跳过无法解析的 manifest %s: %s", path.name, e)
            continue
        new_manifests.append({"key": path.name, "path": path, "name": data.get("name", "")})

    logger.debug("收件目录共 %d 个新 manifest（已记录 %d 个）", len(new_manifests), len(known))
    return new_manifests


def read_manifest(path: Path) -> Dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{Path(path).name}: manifest 必须是 JSON 对象")
    return data
