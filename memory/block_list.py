from __future__ import annotations
from typing import Callable, Iterable, Iterator, List, NamedTuple, Optional, Any

from memory.block import Block
from memory.errors import InvalidArgumentError, OutOfRangeError

NIL = -1


class SlotHandle(NamedTuple):
    """Stable reference to one slot; the generation goes stale once the slot is released."""
    index: int
    generation: int


class BlockList:
    """Ordered sequence of blocks stored in a slot arena.

    Slots live in parallel arrays and are chained by index. Released slots
    are reused, and every release bumps the slot's generation so handles
    taken before the release are rejected.

    Inserting or removing at either end is O(1); positional access in the
    middle walks the chain from the head.
    """

    def __init__(self, blocks: Iterable[Block] = ()):
        self._blocks: List[Optional[Block]] = []
        self._next: List[int] = []
        self._prev: List[int] = []
        self._gen: List[int] = []
        self._vacant: List[int] = []
        self._head = NIL
        self._tail = NIL
        self._size = 0
        for b in blocks:
            self.append_back(b)

    # -- slot arena -------------------------------------------------------

    def _acquire(self, block: Block) -> int:
        if self._vacant:
            idx = self._vacant.pop()
            self._blocks[idx] = block
        else:
            idx = len(self._blocks)
            self._blocks.append(block)
            self._next.append(NIL)
            self._prev.append(NIL)
            self._gen.append(0)
        self._next[idx] = NIL
        self._prev[idx] = NIL
        return idx

    def _release(self, idx: int) -> Block:
        block = self._blocks[idx]
        self._blocks[idx] = None
        self._gen[idx] += 1
        self._vacant.append(idx)
        return block

    def _slot_at(self, index: int) -> int:
        idx = self._head
        for _ in range(index):
            idx = self._next[idx]
        return idx

    def _slots(self) -> Iterator[int]:
        idx = self._head
        while idx != NIL:
            yield idx
            idx = self._next[idx]

    def _handle(self, idx: int) -> Optional[SlotHandle]:
        if idx == NIL:
            return None
        return SlotHandle(idx, self._gen[idx])

    def _resolve(self, handle: SlotHandle) -> int:
        idx, gen = handle
        if not (0 <= idx < len(self._blocks)) or self._gen[idx] != gen or self._blocks[idx] is None:
            raise InvalidArgumentError(f"stale or foreign slot handle {tuple(handle)}")
        return idx

    def _check_index(self, index: int, upper: int):
        if index < 0 or index >= upper:
            raise OutOfRangeError(f"index {index} outside [0, {upper})")

    # -- public API -------------------------------------------------------

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def first(self) -> Optional[SlotHandle]:
        return self._handle(self._head)

    def last(self) -> Optional[SlotHandle]:
        return self._handle(self._tail)

    def block_at(self, handle: SlotHandle) -> Block:
        return self._blocks[self._resolve(handle)]

    def successor(self, handle: SlotHandle) -> Optional[SlotHandle]:
        return self._handle(self._next[self._resolve(handle)])

    def get(self, index: int) -> Block:
        self._check_index(index, self._size)
        return self._blocks[self._slot_at(index)]

    def insert(self, index: int, block: Block):
        """Insert block so that it ends up at position index."""
        if block is None:
            raise InvalidArgumentError("block must not be None")
        self._check_index(index, self._size + 1)
        idx = self._acquire(block)
        if index == 0:
            self._next[idx] = self._head
            if self._head != NIL:
                self._prev[self._head] = idx
            self._head = idx
            if self._size == 0:
                self._tail = idx
        elif index == self._size:
            self._prev[idx] = self._tail
            self._next[self._tail] = idx
            self._tail = idx
        else:
            before = self._slot_at(index - 1)
            after = self._next[before]
            self._prev[idx] = before
            self._next[idx] = after
            self._next[before] = idx
            self._prev[after] = idx
        self._size += 1

    def append_front(self, block: Block):
        self.insert(0, block)

    def append_back(self, block: Block):
        self.insert(self._size, block)

    def index_of(self, block: Block) -> int:
        """Position of the first slot holding this exact object, or -1."""
        if block is None:
            raise InvalidArgumentError("block must not be None")
        for i, idx in enumerate(self._slots()):
            if self._blocks[idx] is block:
                return i
        return -1

    def handle_at(self, index: int) -> SlotHandle:
        self._check_index(index, self._size)
        if index == self._size - 1:
            return self._handle(self._tail)
        return self._handle(self._slot_at(index))

    def remove_at(self, index: int) -> Block:
        self._check_index(index, self._size)
        if index == 0:
            idx = self._head
        elif index == self._size - 1:
            idx = self._tail
        else:
            idx = self._slot_at(index)
        return self._unlink(idx)

    def remove_handle(self, handle: SlotHandle) -> Block:
        """O(1) removal of the slot the handle refers to."""
        return self._unlink(self._resolve(handle))

    def _unlink(self, idx: int) -> Block:
        before, after = self._prev[idx], self._next[idx]
        if before == NIL:
            self._head = after
        else:
            self._next[before] = after
        if after == NIL:
            self._tail = before
        else:
            self._prev[after] = before
        self._size -= 1
        return self._release(idx)

    def remove(self, block: Block) -> Block:
        index = self.index_of(block)
        if index == -1:
            raise InvalidArgumentError(f"block {block} is not in this list")
        return self.remove_at(index)

    def sort(self, key: Callable[[Block], Any]):
        """Stable in-place reorder; slots and their handles survive."""
        order = sorted(self._slots(), key=lambda idx: key(self._blocks[idx]))
        before = NIL
        for idx in order:
            self._prev[idx] = before
            if before == NIL:
                self._head = idx
            else:
                self._next[before] = idx
            before = idx
        if before != NIL:
            self._next[before] = NIL
        self._tail = before

    def __iter__(self) -> Iterator[Block]:
        for idx in self._slots():
            yield self._blocks[idx]

    def __str__(self) -> str:
        return " ".join(str(b) for b in self)

    def __repr__(self) -> str:
        return f"BlockList([{', '.join(repr(b) for b in self)}])"
