# core/constrained_list.py

from __future__ import annotations

from typing import Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from product_configurator.core.notices import CapacityExceeded, RemovalRefused

T = TypeVar("T")

# repair(items, event, index, item)
# event: "add" / "remove" / "update"；item 是被加入 / 删除 / 替换后的元素
RepairPolicy = Callable[[List[T], str, int, T], None]


class ConstrainedList(Generic[T]):
    """
    带约束的有序列表：变体列表、全局图片、每个变体的图片都用它。

    - max_items: 上限，超出时整批拒绝，不做任何修改；
      构造时传入的初始内容不受上限限制（旧数据可能已经超出），但之后不能再加
    - min_items: 下限，删除会低于下限时拒绝
    - repair: 每次修改之后调用，用来恢复不变量（例如"恰好一个默认变体"）
    """

    def __init__(
        self,
        items: Iterable[T] = (),
        max_items: Optional[int] = None,
        min_items: int = 0,
        repair: Optional[RepairPolicy] = None,
        label: str = "items",
    ):
        self.max_items = max_items
        self.min_items = min_items
        self.label = label
        self._repair = repair
        self._items: List[T] = []
        self._load(items)

    # --- 读取 ---

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __bool__(self) -> bool:
        return bool(self._items)

    def to_list(self) -> List[T]:
        return list(self._items)

    def room_for(self, count: int) -> bool:
        return count == 0 or self.max_items is None or len(self._items) + count <= self.max_items

    # --- 修改 ---

    def append(self, item: T) -> T:
        self.extend([item])
        return item

    def extend(self, items: Iterable[T]) -> List[T]:
        new_items = list(items)
        if not self.room_for(len(new_items)):
            raise CapacityExceeded(
                f"{self.label}: 最多 {self.max_items} 个，"
                f"当前 {len(self._items)} 个，无法再加 {len(new_items)} 个"
            )
        self._load(new_items)
        return new_items

    def remove(self, index: int) -> T:
        index = self._check_index(index)
        if len(self._items) - 1 < self.min_items:
            raise RemovalRefused(f"{self.label}: 至少需要保留 {self.min_items} 个")
        removed = self._items.pop(index)
        if self._repair:
            self._repair(self._items, "remove", index, removed)
        return removed

    def replace(self, index: int, item: T) -> T:
        index = self._check_index(index)
        self._items[index] = item
        if self._repair:
            self._repair(self._items, "update", index, item)
        return item

    def reset(self, items: Iterable[T]) -> None:
        """
        整体替换内容（比如上传成功后刷新图片集合）。
        新内容不能超过上限；已经超限的旧数据只允许变少。
        """
        new_items = list(items)
        if self.max_items is not None and len(new_items) > max(self.max_items, len(self._items)):
            raise CapacityExceeded(f"{self.label}: 最多 {self.max_items} 个")
        self._items = []
        self._load(new_items)

    def _load(self, items: Iterable[T]) -> None:
        # 不检查上限，调用方负责
        for item in items:
            self._items.append(item)
            if self._repair:
                self._repair(self._items, "add", len(self._items) - 1, item)

    def _check_index(self, index: int) -> int:
        if not -len(self._items) <= index < len(self._items):
            raise IndexError(f"{self.label}: 下标 {index} 越界（共 {len(self._items)} 个）")
        return index % len(self._items)
