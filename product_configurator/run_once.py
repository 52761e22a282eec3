# run_once.py

import argparse
import logging
from pathlib import Path

from product_configurator.config.settings import INBOX_DIR, STATE_STORE_FILE
from product_configurator.core.state_store import StateStore
from product_configurator.pipeline.loader import find_new_manifests
from product_configurator.pipeline.processor import process_pending_manifests
from product_configurator.platforms.catalog_client import CatalogClient


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="批量创建 / 更新商品（读取收件目录里的 manifest）")
    parser.add_argument("--inbox", type=Path, default=INBOX_DIR, help="manifest 所在目录")
    parser.add_argument("--state", type=Path, default=STATE_STORE_FILE, help="状态文件路径")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    state = StateStore(args.state)

    # 第一步：发现新的 manifest，并标记为 pending
    print("=" * 60)
    print("第一步：发现新草稿")
    print("=" * 60)
    new_manifests = find_new_manifests(args.inbox, state)

    if new_manifests:
        print(f"\n✨ 发现 {len(new_manifests)} 个新草稿，开始标记为 pending：")
        for manifest in new_manifests:
            print(f"  - {manifest['name']} ({manifest['key']})")
            state.mark_draft_status(manifest["key"], manifest["name"], "pending")
        print("✅ 已将所有新草稿标记为 pending")
    else:
        print("✅ 没有发现新的草稿。")

    # 第二步：处理 pending / failed 的草稿
    print("\n" + "=" * 60)
    print("第二步：提交草稿")
    print("=" * 60)
    summary = process_pending_manifests(CatalogClient(), state, args.inbox)
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
