from __future__ import annotations
from memory.allocator import FirstFitAllocator

def render_map(alloc: FirstFitAllocator, width: int=80) -> str:
    """One character per arena bin: '#' where any allocated block lands, '.' elsewhere."""
    cap=alloc.arena_size
    buf=['.']*width
    for b in alloc.allocated_list:
        s=int((b.base/cap)*width)
        e=int((b.end/cap)*width)
        for i in range(max(0,s), min(width, max(s+1,e))):
            buf[i]='#'
    return ''.join(buf)
