from __future__ import annotations
import subprocess
import sys
import re
from pathlib import Path

PY = sys.executable  # respects venv if activated, otherwise uses current python

SCENARIOS = [
    (600, False, "explicit defrag only"),
    (600, True, "defrag on failed malloc"),
    (1000, False, "explicit defrag only"),
    (1000, True, "defrag on failed malloc"),
]

TRACE = str(Path("traces") / "fragmentation_stressor.jsonl")

PATTERNS = {
    "used": re.compile(r"Used:\s+(\d+)"),
    "mallocs": re.compile(r"Mallocs:\s+(\d+)"),
    "failures": re.compile(r"Failures:\s+(\d+)"),
    "defrags": re.compile(r"Defrags:\s+(\d+)"),
    "retries": re.compile(r"Retries:\s+(\d+)"),
    "lfe": re.compile(r"Fragmentation: LFE=(\d+)"),
    "holes": re.compile(r"holes=(\d+)"),
    "external_frag": re.compile(r"external_frag=([0-9\.]+)"),
}

def run(arena: int, defrag_on_fail: bool) -> str:
    cmd = [PY, "run_sim.py", "--trace", TRACE, "--arena", str(arena)]
    if defrag_on_fail:
        cmd.append("--defrag-on-fail")
    return subprocess.check_output(cmd, stderr=subprocess.STDOUT, text=True)

def parse(out: str):
    def get(key, default=0):
        m = PATTERNS[key].search(out)
        return m.group(1) if m else default
    row = {key: int(get(key)) for key in PATTERNS if key != "external_frag"}
    row["external_frag"] = float(get("external_frag", 0.0))
    return row

def main():
    rows=[]
    for arena, defrag_on_fail, note in SCENARIOS:
        rows.append((arena, defrag_on_fail, note, parse(run(arena, defrag_on_fail))))

    header = ["arena","on_fail","used","mallocs","failures","defrags","retries","LFE","holes","ext_frag"]
    print("="*96)
    print(f"First-Fit Arena: Benchmark Table ({TRACE})")
    print("="*96)
    print("{:<6} {:<8} {:>6} {:>8} {:>9} {:>8} {:>8} {:>6} {:>6} {:>9}".format(*header))
    for arena, defrag_on_fail, note, m in rows:
        print("{:<6} {:<8} {:>6} {:>8} {:>9} {:>8} {:>8} {:>6} {:>6} {:>9.3f}".format(
            arena, "yes" if defrag_on_fail else "no", m["used"], m["mallocs"], m["failures"],
            m["defrags"], m["retries"], m["lfe"], m["holes"], m["external_frag"]
        ))
    print("="*96)
    print("Tip: add --show-map or --dump to a single run for a visual of the arena.")
    print(f"  python run_sim.py --trace {TRACE} --arena 600 --defrag-on-fail --show-map --dump")

if __name__ == "__main__":
    main()
