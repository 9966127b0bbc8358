"""
Unit tests for TDigest benchmarking hooks.
"""

import logging
import unittest

from tiny_digest.algorithms.quantile_sketch import TDigest


class TestTDigestBenchmarking(unittest.TestCase):
    """Test cases for TDigest statistics and introspection."""

    def test_get_stats_empty(self):
        """Test getting stats for an empty TDigest."""
        tdigest = TDigest()

        stats = tdigest.get_stats()

        self.assertEqual(stats["type"], "TDigest")
        self.assertEqual(stats["count"], 0)
        self.assertEqual(stats["accuracy"], 0.05)
        self.assertEqual(stats["num_centroids"], 0)
        self.assertEqual(stats["state"], "empty")

        # Empty digest should not have centroid stats
        self.assertNotIn("min_weight", stats)
        self.assertNotIn("min_value", stats)

    def test_get_stats_with_data(self):
        """Test getting stats for a TDigest with data."""
        tdigest = TDigest(seed=1)
        for i in range(1000):
            tdigest.add(i)

        stats = tdigest.get_stats()

        self.assertEqual(stats["count"], 1000)
        self.assertEqual(stats["compression_constant"], 25)
        self.assertAlmostEqual(stats["max_centroids"], 500)
        self.assertEqual(stats["num_centroids"], tdigest.centroid_count)
        self.assertLessEqual(stats["centroid_utilization"], 1.0)
        self.assertGreater(stats["memory_bytes"], 0)

        self.assertEqual(stats["min_value"], 0)
        self.assertEqual(stats["max_value"], 999)
        self.assertAlmostEqual(stats["average"], 499.5)

        self.assertEqual(stats["total_centroid_weight"], 1000)
        self.assertLessEqual(stats["min_weight"], stats["avg_weight"])
        self.assertLessEqual(stats["avg_weight"], stats["max_weight"])
        self.assertGreaterEqual(stats["compression_ratio"], 1.0)

        self.assertIn("centroid_span", stats)
        self.assertIn("centroids_lower_10pct", stats)
        self.assertIn("centroids_middle_80pct", stats)
        self.assertIn("centroids_upper_10pct", stats)
        self.assertIn("tail_concentration_ratio", stats)

    def test_error_bounds(self):
        """Test error bound calculations."""
        tdigest = TDigest()
        self.assertEqual(tdigest.error_bounds()["state"], "empty")

        for i in range(1000):
            tdigest.add(i * 10)

        bounds = tdigest.error_bounds()

        self.assertEqual(bounds["accuracy_model"], "non-uniform (higher at tails)")
        self.assertAlmostEqual(bounds["theoretical_max_centroids"], 500)
        self.assertEqual(bounds["actual_centroids"], tdigest.centroid_count)

        error_bounds = bounds["error_bounds"]
        self.assertIn("q0.001", error_bounds)
        self.assertIn("q0.500", error_bounds)
        self.assertIn("q0.999", error_bounds)

        # Tails are the most precise
        self.assertLess(error_bounds["q0.001"], error_bounds["q0.500"])
        self.assertLess(error_bounds["q0.999"], error_bounds["q0.500"])
        self.assertAlmostEqual(error_bounds["q0.500"], 4 * 0.05 * 0.25)

    def test_tighter_accuracy_keeps_more_centroids(self):
        coarse = TDigest(accuracy=0.2, seed=5)
        fine = TDigest(accuracy=0.01, seed=5)
        for i in range(5000):
            value = (i * 7919) % 5000
            coarse.add(value)
            fine.add(value)
        self.assertGreater(fine.centroid_count, coarse.centroid_count)

    def test_estimate_size(self):
        tdigest = TDigest()
        size_empty = tdigest.estimate_size()
        self.assertIsInstance(size_empty, int)
        self.assertGreater(size_empty, 50)

        for i in range(100):
            tdigest.add(float(i))
        self.assertGreater(tdigest.estimate_size(), size_empty)

    def test_compression_is_logged(self):
        # Sequential input outgrows the 30-centroid limit
        tdigest = TDigest(accuracy=0.5, compression_constant=15, seed=3)
        logger_name = "tiny_digest.algorithms.quantile_sketch"
        with self.assertLogs(logger_name, level=logging.DEBUG) as captured:
            for i in range(10000):
                tdigest.add(float(i))
        self.assertTrue(
            any("Compressed t-digest" in message for message in captured.output)
        )

    def test_merge_is_logged(self):
        a = TDigest()
        b = TDigest()
        a.add(1.0)
        b.add(2.0)
        logger_name = "tiny_digest.algorithms.quantile_sketch"
        with self.assertLogs(logger_name, level=logging.DEBUG) as captured:
            TDigest.merge_digests(a, b)
        self.assertTrue(any("Merged t-digests" in m for m in captured.output))


if __name__ == "__main__":
    unittest.main()
