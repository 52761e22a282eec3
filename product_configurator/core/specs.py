# core/specs.py

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping

from product_configurator.core.constrained_list import ConstrainedList
from product_configurator.core.notices import UnknownField


@dataclass
class SpecEntry:
    """一条自由格式的商品参数，例如 {"key": "Couleur", "value": "Noir"}"""

    key: str = ""
    value: str = ""


class SpecList:
    """参数列表：保持顺序，空条目保留在列表里，只在导出时过滤。"""

    def __init__(self, entries: Iterable[SpecEntry] = ()):
        self._entries: ConstrainedList[SpecEntry] = ConstrainedList(entries, label="specs")

    @classmethod
    def from_mapping(cls, specs: Any) -> "SpecList":
        """从接口返回的 specs 对象还原，只接受字符串值"""
        if not isinstance(specs, Mapping):
            return cls()
        return cls(SpecEntry(key=k, value=v) for k, v in specs.items() if isinstance(v, str))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, index: int) -> SpecEntry:
        return self._entries[index]

    def add(self) -> SpecEntry:
        return self._entries.append(SpecEntry())

    def remove(self, index: int) -> SpecEntry:
        return self._entries.remove(index)

    def update(self, index: int, field_name: str, value: str) -> SpecEntry:
        if field_name not in ("key", "value"):
            raise UnknownField(f"参数不支持修改字段 {field_name!r}")
        updated = replace(self._entries[index], **{field_name: value})
        return self._entries.replace(index, updated)

    def to_mapping(self) -> Dict[str, str]:
        """
        折叠成 {key: value}：
        - key / value 都先 strip
        - 任何一边为空就跳过
        - 重复的 key 以后出现的为准
        """
        result: Dict[str, str] = {}
        for entry in self._entries:
            key, value = entry.key.strip(), entry.value.strip()
            if key and value:
                result[key] = value
        return result

    def to_list(self) -> List[SpecEntry]:
        return self._entries.to_list()
