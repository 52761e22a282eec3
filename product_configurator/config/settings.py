# config/settings.py

import os
from pathlib import Path

from dotenv import load_dotenv

# 加载 .env（如果存在）
load_dotenv()

# 项目根目录（你可以按需要调整）
BASE_DIR = Path(__file__).resolve().parent.parent

# === 商品 API 相关配置 ===
# 后台接口的根地址，例如 https://admin.example.com/api
CATALOG_API_URL = os.getenv("CATALOG_API_URL", "http://localhost:5000/api").rstrip("/")
# 管理员 Bearer Token，没有就不带 Authorization 头
CATALOG_API_TOKEN = os.getenv("CATALOG_API_TOKEN", "")
# 单次请求超时（秒）
CATALOG_API_TIMEOUT = float(os.getenv("CATALOG_API_TIMEOUT", "30"))

# === 图片限制 ===
# 每个图片集合（每个变体 / 全局）最多几张图
MAX_IMAGES_PER_SET = int(os.getenv("MAX_IMAGES_PER_SET", "5"))

# === 批量上传 ===
# 放商品描述 JSON（manifest）的收件目录
INBOX_DIR = Path(os.getenv("PRODUCT_INBOX_DIR", str(BASE_DIR / "data" / "inbox")))

# === 状态存储 ===
STATE_STORE_FILE = Path(os.getenv("STATE_STORE_FILE", str(BASE_DIR / "data" / "state.json")))
