# core/notices.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)


class ConfiguratorError(Exception):
    """引擎内部错误的基类"""


class CapacityExceeded(ConfiguratorError):
    """集合超出上限（例如一个变体超过 5 张图）"""


class RemovalRefused(ConfiguratorError):
    """删除会破坏集合的下限（例如创建模式下删掉最后一个变体）"""


class UnknownField(ConfiguratorError):
    """update() 传入了不支持的字段名"""


@dataclass
class Notice:
    """
    一条给用户看的提示（相当于前端的 toast）。

    scope: 提示归属，例如 "variant:Std"、"global"、"product"
    """

    level: str
    message: str
    scope: str = "product"


@dataclass
class NoticeBoard:
    """收集一次编辑会话中产生的所有用户提示，同时写日志。"""

    notices: List[Notice] = field(default_factory=list)

    def _post(self, level: str, message: str, scope: str) -> Notice:
        notice = Notice(level=level, message=message, scope=scope)
        self.notices.append(notice)
        log_level = logging.ERROR if level == "error" else logging.INFO
        logger.log(log_level, "[%s] %s", scope, message)
        return notice

    def error(self, message: str, scope: str = "product") -> Notice:
        return self._post("error", message, scope)

    def success(self, message: str, scope: str = "product") -> Notice:
        return self._post("success", message, scope)

    def errors(self, scope: Optional[str] = None) -> List[Notice]:
        return [
            n for n in self.notices
            if n.level == "error" and (scope is None or n.scope == scope)
        ]

    def clear(self) -> None:
        self.notices.clear()
