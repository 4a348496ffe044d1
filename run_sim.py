from __future__ import annotations
import argparse, json, logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional
from memory.allocator import FirstFitAllocator
from memory.fragmentation import compute_metrics
from viz.ascii_map import render_map

logger = logging.getLogger('run_sim')

def load_trace(path: str):
    with open(path,'r',encoding='utf-8') as f:
        for line in f:
            line=line.strip()
            if line:
                yield json.loads(line)

@dataclass
class SimStats:
    malloc_events: int = 0
    malloc_fail: int = 0
    free_events: int = 0
    defrags: int = 0
    retried: int = 0
    checks: int = 0
    skipped: int = 0
    live: Dict[str,int] = field(default_factory=dict)   # id -> base address

def simulate(arena: FirstFitAllocator, events: Iterable[dict], defrag_on_fail: bool=False) -> SimStats:
    """Replay trace events against the arena.

    With defrag_on_fail, a malloc that fails for lack of space (size > 0)
    is followed by one defrag() and a single retry; the allocator itself
    never defragments on its own.
    """
    stats=SimStats()

    def try_alloc(size: int) -> int:
        addr = arena.malloc(size)
        if addr >= 0 or size <= 0 or not defrag_on_fail:
            return addr
        arena.defrag()
        stats.defrags += 1
        stats.retried += 1
        return arena.malloc(size)

    for ev in events:
        et=ev.get('event')

        if et=='malloc':
            obj=str(ev['id']); size=int(ev['size'])
            stats.malloc_events += 1
            if obj in stats.live:
                logger.warning("malloc for live id %s ignored", obj)
                stats.skipped += 1
                continue
            addr=try_alloc(size)
            if addr < 0:
                stats.malloc_fail += 1
            else:
                stats.live[obj]=addr
            continue

        if et=='free':
            obj=str(ev['id'])
            addr=stats.live.pop(obj, None)
            if addr is None:
                logger.warning("free for unknown id %s skipped", obj)
                stats.skipped += 1
                continue
            arena.free(addr)
            stats.free_events += 1
            continue

        if et=='defrag':
            arena.defrag()
            stats.defrags += 1
            continue

        if et=='check':
            arena.check_invariants()
            stats.checks += 1
            continue

        logger.warning("unknown event %r skipped", et)
        stats.skipped += 1

    return stats

def main(argv: Optional[list]=None):
    ap=argparse.ArgumentParser(description="Replay a malloc/free/defrag trace against a first-fit arena.")
    ap.add_argument('--trace', required=True)
    ap.add_argument('--arena', type=int, default=1000)
    ap.add_argument('--defrag-on-fail', action='store_true',
                    help="On a failed malloc, call defrag() and retry once.")
    ap.add_argument('--show-map', action='store_true')
    ap.add_argument('--dump', action='store_true', help="Print the free and allocated lists.")
    ap.add_argument('--log-level', default='WARNING',
                    choices=['DEBUG','INFO','WARNING','ERROR'])
    args=ap.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(levelname)s %(name)s: %(message)s')

    arena=FirstFitAllocator(args.arena)
    stats=simulate(arena, load_trace(args.trace), defrag_on_fail=args.defrag_on_fail)

    m=compute_metrics(arena.extents_free())
    print("="*72)
    print("First-Fit Arena: Simulator Summary")
    print("="*72)
    print(f"Arena: {args.arena}  Used: {arena.used()}  Free: {arena.free_words()}  Defrag-on-fail: {args.defrag_on_fail}")
    print(f"Mallocs: {stats.malloc_events}  Failures: {stats.malloc_fail}  Frees: {stats.free_events}  Live: {len(stats.live)}")
    print(f"Defrags: {stats.defrags}  Retries: {stats.retried}  Checks: {stats.checks}  Skipped: {stats.skipped}")
    print("-"*72)
    print(f"Fragmentation: LFE={m.lfe} holes={m.hole_count} external_frag={m.external_frag:.3f} entropy={m.entropy:.3f}")
    if args.show_map:
        print("-"*72)
        print("Memory map (ASCII):")
        print(render_map(arena))
    if args.dump:
        print("-"*72)
        print(arena)
    print("="*72)
    return stats

if __name__=='__main__':
    main()
