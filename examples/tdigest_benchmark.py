"""
Timing of t-digest construction from sorted input.

Sorted streams are the worst case for a t-digest: every value lands next to
the newest centroid, so the digest grows until it recompresses. Values are
normalized to [0.0, 1.0) and fed in ascending or descending order.
"""

import time

from tiny_digest import TDigest

SIZES = (1_000, 10_000, 100_000)


def build(n, ascending):
    """Build a digest from n sorted values and return it."""
    digest = TDigest(seed=0)
    denominator = float(n)
    for i in range(n):
        numerator = i if ascending else n - i - 1
        digest.add(numerator / denominator)

    if digest.count != n:
        raise RuntimeError(f"Bad benchmark; digest.count ({digest.count}) != N ({n})")
    return digest


def run_benchmark():
    print("\n=== Sorted Build Benchmark ===")
    print(f"{'N':>8} {'order':>5} {'seconds':>9} {'centroids':>10} {'bytes':>8}")

    for n in SIZES:
        for ascending in (True, False):
            start_time = time.perf_counter()
            digest = build(n, ascending)
            elapsed = time.perf_counter() - start_time

            order = "asc" if ascending else "desc"
            print(
                f"{n:>8} {order:>5} {elapsed:>9.3f} "
                f"{digest.centroid_count:>10} {digest.estimate_size():>8}"
            )


if __name__ == "__main__":
    run_benchmark()
