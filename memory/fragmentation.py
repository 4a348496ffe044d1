from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Tuple
import math

@dataclass
class FragMetrics:
    total_free: int
    lfe: int
    external_frag: float
    entropy: float
    hole_count: int

def _entropy(hole_sizes: List[int]) -> float:
    total = sum(hole_sizes)
    if total <= 0:
        return 0.0
    ps = [s/total for s in hole_sizes]
    return max(0.0, -sum(p*math.log2(p) for p in ps))

def compute_metrics(free_extents: Iterable[Tuple[int,int]]) -> FragMetrics:
    """Metrics over (base, length) free extents.

    Adjacent extents count as separate holes, so the numbers reflect the
    free list as it stands, before or after defrag().
    """
    sizes=[length for _,length in free_extents if length>0]
    total_free=sum(sizes)
    lfe=max(sizes, default=0)
    external = 0.0 if total_free==0 else 1.0 - lfe/total_free
    return FragMetrics(total_free, lfe, external, _entropy(sizes), len(sizes))
