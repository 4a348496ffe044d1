from memory.allocator import FirstFitAllocator
from memory.block import Block
from memory.block_list import BlockList
from typing import Iterable, List, Tuple


def make_allocator(arena_size: int, free: Iterable[Tuple[int, int]],
                   allocated: Iterable[Tuple[int, int]] = ()) -> FirstFitAllocator:
    """Allocator whose lists hold exactly the given (base, length) pairs, in order."""
    alloc = FirstFitAllocator(arena_size)
    alloc.free_list = BlockList(Block(b, n) for b, n in free)
    alloc.allocated_list = BlockList(Block(b, n) for b, n in allocated)
    return alloc


def pairs(blocks: BlockList) -> List[Tuple[int, int]]:
    return [b.as_tuple() for b in blocks]
