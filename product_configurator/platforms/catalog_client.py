# platforms/catalog_client.py

from __future__ import annotations

import logging
import mimetypes
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests

from product_configurator.config.settings import (
    CATALOG_API_TIMEOUT,
    CATALOG_API_TOKEN,
    CATALOG_API_URL,
)

logger = logging.getLogger(__name__)


class CatalogApiError(Exception):
    """
    商品接口调用失败。

    message 优先使用服务器返回的 {"message": "..."}，没有就是通用描述。
    """

    def __init__(self, message: str, status_code: Optional[int] = None, server_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.server_message = server_message


class CatalogClient:
    """
    后台商品接口：
    - GET  /products/{id}
    - POST /products/upload-images  (multipart, 字段名 images)
    - POST /products
    - PUT  /products/{id}
    """

    def __init__(
        self,
        base_url: str = CATALOG_API_URL,
        token: str = CATALOG_API_TOKEN,
        timeout: float = CATALOG_API_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        # 上传图片时不要手动设置 Content-Type，requests 会带上 boundary
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise CatalogApiError(f"{method} {path} 请求失败: {e}") from e

        if not 200 <= r.status_code < 300:
            server_message = _extract_message(r)
            logger.warning("%s %s -> %s %s", method, path, r.status_code, server_message or r.text[:200])
            raise CatalogApiError(
                server_message or f"{method} {path} 返回 {r.status_code}",
                status_code=r.status_code,
                server_message=server_message,
            )

        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise CatalogApiError(f"{method} {path} 返回的不是 JSON", status_code=r.status_code) from e

    # --- 对外方法 ---

    def fetch_product(self, product_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/products/{product_id}")

    def upload_images(self, files: Sequence[Path]) -> List[str]:
        """
        一次 multipart 请求上传多张图片。

        Args:
            files: 本地图片路径，按顺序上传

        Returns:
            与 files 一一对应的 URL 列表
        """
        with ExitStack() as stack:
            parts = []
            for path in files:
                path = Path(path)
                mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
                fh = stack.enter_context(path.open("rb"))
                parts.append(("images", (path.name, fh, mime)))
            data = self._request("POST", "/products/upload-images", files=parts)
        urls = data.get("urls") or []
        logger.info("上传 %d 张图片，返回 %d 个 URL", len(files), len(urls))
        return list(urls)

    def create_product(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/products", json=payload)

    def update_product(self, product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/products/{product_id}", json=payload)


def _extract_message(r: requests.Response) -> Optional[str]:
    try:
        body = r.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None
