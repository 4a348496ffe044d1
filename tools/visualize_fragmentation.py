"""
First-Fit Arena: Visualizer

Generates a simple Matplotlib heatmap showing arena occupancy over time.
Defrag events are marked as horizontal lines.

How to run (recommended, from repo root):
    python -m tools.visualize_fragmentation --trace traces/fragmentation_stressor.jsonl --out out_fragmentation.png

Notes:
- Failed mallocs are left as failures here; use --defrag-on-fail to replay
  with the same retry rule run_sim.py offers.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script:
# (python -m tools.visualize_fragmentation already works without this,
#  but this makes `python tools/visualize_fragmentation.py ...` work too.)
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import numpy as np
import matplotlib.pyplot as plt

from memory.allocator import FirstFitAllocator
from memory.fragmentation import compute_metrics
from run_sim import load_trace


def render_state(arena: FirstFitAllocator, width: int) -> np.ndarray:
    """
    Return a 1D occupancy array over the arena, binned to 'width'.
    A bin is 1.0 when any allocated block touches it.
    """
    scale = arena.arena_size / width
    bins = np.zeros(width, dtype=np.float32)

    for blk in arena.allocated_list:
        a = int(blk.base / scale)
        b = int((blk.end - 1) / scale)
        a = max(0, min(width - 1, a))
        b = max(0, min(width - 1, b))
        bins[a : b + 1] = 1.0

    return bins


def replay(arena: FirstFitAllocator, events, width: int, every: int = 1, defrag_on_fail: bool = False):
    """Apply events one by one; return (frames, defrag_marks)."""
    live: dict[str, int] = {}
    frames: list[np.ndarray] = []
    defrag_marks: list[int] = []

    for i, ev in enumerate(events, start=1):
        et = ev.get("event")

        if et == "malloc":
            oid = str(ev["id"])
            if oid not in live:
                size = int(ev["size"])
                addr = arena.malloc(size)
                if addr < 0 and size > 0 and defrag_on_fail:
                    arena.defrag()
                    defrag_marks.append(len(frames))
                    addr = arena.malloc(size)
                if addr >= 0:
                    live[oid] = addr

        elif et == "free":
            addr = live.pop(str(ev["id"]), None)
            if addr is not None:
                arena.free(addr)

        elif et == "defrag":
            arena.defrag()
            defrag_marks.append(len(frames))

        if every <= 1 or (i % every == 0):
            frames.append(render_state(arena, width))

    return frames, defrag_marks


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--trace", required=True, help="Path to JSONL trace")
    ap.add_argument("--out", default="out_fragmentation.png", help="Output image file")
    ap.add_argument("--arena", type=int, default=1000, help="Arena size (words)")
    ap.add_argument("--width", type=int, default=140, help="Heatmap width (bins)")
    ap.add_argument("--every", type=int, default=1, help="Record every N events")
    ap.add_argument("--defrag-on-fail", action="store_true")
    args = ap.parse_args()

    trace_path = Path(args.trace)
    if not trace_path.exists():
        raise SystemExit(f"Trace not found: {trace_path}")

    arena = FirstFitAllocator(args.arena)
    frames, defrag_marks = replay(
        arena, load_trace(str(trace_path)), args.width, args.every, args.defrag_on_fail
    )

    if not frames:
        raise SystemExit("No frames captured. Check trace path and --every.")

    H = np.stack(frames, axis=0)  # (time, width)

    fig = plt.figure(figsize=(10.5, 4.6))
    ax = fig.add_subplot(111)
    ax.imshow(H, aspect="auto", interpolation="nearest")
    ax.set_title("Arena Occupancy Heatmap (Trace-driven)")
    ax.set_xlabel("arena address (binned)")
    ax.set_ylabel("time (frames)")

    for t in defrag_marks:
        ax.axhline(t, linewidth=1)

    m = compute_metrics(arena.extents_free())
    caption = (
        f"Final fragmentation: LFE={m.lfe}, holes={m.hole_count}, "
        f"external_frag={m.external_frag:.3f}, entropy={m.entropy:.3f}"
    )
    fig.text(0.01, 0.01, caption, fontsize=9)

    fig.tight_layout()
    out_path = Path(args.out)
    fig.savefig(str(out_path), dpi=220)
    print(f"Wrote: {out_path.resolve()}")


if __name__ == "__main__":
    main()
