
from __future__ import annotations

import argparse
import tracemalloc
import numpy as np
from vortex3d import ChunkConfig, NumbaConfig, induced_UJ, kernel_gaussianerf


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--N", type=int, default=5000)
    ap.add_argument("--numba", action="store_true")
    ap.add_argument("--query-batch", type=int, default=2000)
    args = ap.parse_args()

    rng = np.random.default_rng(0)
    x = rng.uniform(-0.5, 0.5, size=(args.N, 3))
    g = rng.normal(0.0, 1.0, size=(args.N, 3))
    s = np.full(args.N, 0.03)

    tracemalloc.start()
    _ = induced_UJ(x, x, g, s, kernel_gaussianerf,
                   numba_cfg=NumbaConfig(enabled=bool(args.numba)),
                   chunking=ChunkConfig(query_batch=(args.query_batch or None)))
    current, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    print(f"induced_UJ(N={args.N}, numba={args.numba}) peak={peak/1e6:.1f} MB")

if __name__ == "__main__":
    main()
