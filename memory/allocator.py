from __future__ import annotations
import logging
from typing import List, Optional, Tuple

from memory.block import Block
from memory.block_list import BlockList
from memory.errors import InvalidArgumentError, InvariantViolation

logger = logging.getLogger(__name__)


class FirstFitAllocator:
    """First-fit bookkeeping over an abstract arena of `arena_size` words.

    The arena is tiled by the blocks of two lists: `free_list` and
    `allocated_list`. New and released blocks always go to the tail.
    Free blocks are only sorted and coalesced when `defrag()` is called.
    """

    def __init__(self, arena_size: int):
        if arena_size <= 0:
            raise InvalidArgumentError(f"arena size must be positive, got {arena_size}")
        self.arena_size = arena_size
        self.allocated_list = BlockList()
        self.free_list = BlockList([Block(0, arena_size)])

    def malloc(self, length: int) -> int:
        """Allocate `length` words and return the base address, or -1.

        Takes the first free block (in list order) that is large enough.
        An exact fit moves that block object to the allocated list; a
        larger block is split and keeps its place in the free list.
        """
        if length <= 0:
            return -1
        for i, free_block in enumerate(self.free_list):
            if free_block.length < length:
                continue
            if free_block.length == length:
                allocated = self.free_list.remove_at(i)
            else:
                allocated = Block(free_block.base, length)
                free_block.base += length
                free_block.length -= length
            self.allocated_list.append_back(allocated)
            logger.debug("malloc(%d) -> %d", length, allocated.base)
            return allocated.base
        logger.debug("malloc(%d) failed, largest free extent %d", length, self.largest_free_extent())
        return -1

    def free(self, address: int):
        """Move the allocated block based at `address` to the tail of the free list."""
        if self.allocated_list.size == 0:
            raise InvalidArgumentError(f"cannot free {address}: nothing is allocated")
        handle = self.allocated_list.first()
        while handle is not None:
            block = self.allocated_list.block_at(handle)
            if block.base == address:
                break
            handle = self.allocated_list.successor(handle)
        else:
            raise InvalidArgumentError(f"no allocated block at address {address}")
        self.allocated_list.remove_handle(handle)
        self.free_list.append_back(block)
        logger.debug("free(%d) released %d words", address, block.length)

    def defrag(self):
        """Sort free blocks by base address and merge contiguous neighbours."""
        self.free_list.sort(key=lambda b: b.base)
        i = 0
        merged = 0
        while i < self.free_list.size - 1:
            current = self.free_list.get(i)
            following = self.free_list.get(i + 1)
            if current.end == following.base:
                current.length += following.length
                self.free_list.remove_at(i + 1)
                merged += 1
            else:
                i += 1
        logger.debug("defrag merged %d blocks, %d holes remain", merged, self.free_list.size)

    # -- bookkeeping ------------------------------------------------------

    def used(self) -> int:
        return sum(b.length for b in self.allocated_list)

    def free_words(self) -> int:
        return sum(b.length for b in self.free_list)

    def extents_free(self) -> List[Tuple[int, int]]:
        return sorted(b.as_tuple() for b in self.free_list)

    def largest_free_extent(self) -> int:
        return max((b.length for b in self.free_list), default=0)

    def _find_allocated(self, address: int) -> Optional[Block]:
        for b in self.allocated_list:
            if b.base == address:
                return b
        return None

    def is_allocated(self, address: int) -> bool:
        return self._find_allocated(address) is not None

    def block_size(self, address: int) -> int:
        b = self._find_allocated(address)
        if b is None:
            raise InvalidArgumentError(f"no allocated block at address {address}")
        return b.length

    def check_invariants(self):
        """Raise InvariantViolation unless the blocks tile [0, arena_size) exactly."""
        blocks = sorted(list(self.free_list) + list(self.allocated_list), key=lambda b: b.base)
        cursor = 0
        for b in blocks:
            if b.length <= 0:
                raise InvariantViolation(f"block {b} has non-positive length")
            if b.base < cursor:
                raise InvariantViolation(f"block {b} overlaps the previous block ending at {cursor}")
            if b.base > cursor:
                raise InvariantViolation(f"gap [{cursor}, {b.base}) belongs to no block")
            cursor = b.end
        if cursor != self.arena_size:
            raise InvariantViolation(f"blocks cover [0, {cursor}) but the arena size is {self.arena_size}")

    def __str__(self) -> str:
        return f"{self.free_list}\n{self.allocated_list}"
