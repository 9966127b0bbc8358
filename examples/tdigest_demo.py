"""
Basic example of using TinyDigest for quantile estimation.

This example builds two t-digests from separate streams, merges them and
compares the merged digest against one that saw every value directly.
"""

import random

from tiny_digest import TDigest


def _true_quantile(sorted_values, q):
    """Nearest-rank quantile of an already sorted list."""
    index = min(len(sorted_values) - 1, int(q * len(sorted_values)))
    return sorted_values[index]


def demonstrate_basic_digest():
    """Estimate quantiles of a single stream."""
    print("\n=== Basic T-Digest Demo ===")

    rnd = random.Random(42)
    digest = TDigest(seed=42)
    actual = []

    print("Processing 10000 values...")
    for i in range(10000):
        value = rnd.randrange(50) + rnd.randrange(50)
        digest.add(value)
        actual.append(value)

        if i % 2000 == 0:
            print(f"  Processed {i} values")

    actual.sort()
    print(f"\nCentroids kept: {digest.centroid_count}")
    print(f"Approximate memory usage: {digest.estimate_size()} bytes")
    print(f"min={digest.min}  max={digest.max}  average={digest.average:.3f}")

    print("\nQuantile estimates:")
    for q in (0.01, 0.1, 0.5, 0.9, 0.99):
        print(
            f"  q={q:<5} estimate={digest.quantile(q):8.3f} "
            f"actual={_true_quantile(actual, q)}"
        )


def demonstrate_merge():
    """Merge two digests and compare against a single-stream digest."""
    print("\n=== T-Digest Merge Demo ===")

    rnd = random.Random(7)
    digest_a = TDigest(seed=1)
    digest_b = TDigest(seed=2)
    digest_all = TDigest(seed=3)
    actual = []

    for _ in range(10000):
        value = rnd.randrange(50) + rnd.randrange(50)
        digest_a.add(value)
        digest_all.add(value)
        actual.append(value)

    for _ in range(10000):
        value = rnd.randrange(100) + rnd.randrange(100)
        digest_b.add(value)
        digest_all.add(value)
        actual.append(value)

    merged = TDigest.merge_digests(digest_a, digest_b, seed=4)

    true_average = sum(actual) / len(actual)
    print(f"Merged count: {merged.count:g} (expected {len(actual)})")
    print(f"True average:         {true_average:.4f}")
    print(f"Single-stream average: {digest_all.average:.4f}")
    print(f"Merged average:        {merged.average:.4f}")
    print(f"Average delta: {abs(digest_all.average - merged.average):.6f}")

    actual.sort()
    print("\nMerged vs single-stream estimates:")
    for q in (0.05, 0.25, 0.5, 0.75, 0.95):
        print(
            f"  q={q:<5} merged={merged.quantile(q):8.3f} "
            f"single={digest_all.quantile(q):8.3f} "
            f"actual={_true_quantile(actual, q)}"
        )


def demonstrate_serialization():
    """Round-trip a digest through its binary and JSON forms."""
    print("\n=== T-Digest Serialization Demo ===")

    digest = TDigest(seed=42)
    rnd = random.Random(42)
    for _ in range(5000):
        digest.add(rnd.gauss(100.0, 15.0))

    binary = digest.serialize()
    text = digest.serialize(format="json")
    print(f"Binary size: {len(binary)} bytes")
    print(f"JSON size:   {len(text)} bytes")

    restored = TDigest.deserialize(binary)
    print(f"Median before: {digest.quantile(0.5):.4f}")
    print(f"Median after:  {restored.quantile(0.5):.4f}")


if __name__ == "__main__":
    demonstrate_basic_digest()
    demonstrate_merge()
    demonstrate_serialization()
