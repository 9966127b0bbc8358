# tests/unit/test_centroid_index.py

import unittest

from tiny_digest.algorithms.centroid_index import Centroid, CentroidIndex
from tiny_digest.core.exceptions import InvalidArgumentError


class TestCentroid(unittest.TestCase):
    """Tests for the Centroid value type."""

    def test_init(self):
        c = Centroid(mean=10.0, count=5.0)
        self.assertEqual(c.mean, 10.0)
        self.assertEqual(c.count, 5.0)

    def test_init_converts_to_float(self):
        c = Centroid(mean=3, count=2)
        self.assertIsInstance(c.mean, float)
        self.assertIsInstance(c.count, float)

    def test_init_invalid_count(self):
        with self.assertRaises(InvalidArgumentError):
            Centroid(mean=10.0, count=0.0)
        with self.assertRaises(ValueError):
            Centroid(mean=10.0, count=-1.0)

    def test_lt(self):
        c1 = Centroid(mean=5.0, count=1.0)
        c2 = Centroid(mean=10.0, count=1.0)
        c3 = Centroid(mean=5.0, count=2.0)
        self.assertTrue(c1 < c2)
        self.assertFalse(c2 < c1)
        self.assertFalse(c1 < c3)  # Comparison only uses the mean
        self.assertFalse(c3 < c1)

    def test_repr(self):
        c = Centroid(mean=12.3456, count=7.89)
        self.assertEqual(repr(c), "Centroid(mean=12.35, count=7.89)")

    def test_dict_roundtrip(self):
        c1 = Centroid(mean=25.5, count=2.0)
        data = c1.to_dict()
        self.assertEqual(data, {"mean": 25.5, "count": 2.0})

        c2 = Centroid.from_dict(data)
        self.assertEqual(c2.mean, 25.5)
        self.assertEqual(c2.count, 2.0)

    def test_from_dict_invalid(self):
        with self.assertRaises(ValueError):
            Centroid.from_dict({"mean": 10})
        with self.assertRaises(ValueError):
            Centroid.from_dict({"count": 5})
        with self.assertRaises(ValueError):
            Centroid.from_dict({"mean": 10, "count": -2.0})


class TestCentroidIndex(unittest.TestCase):
    """Tests for the ordered centroid index."""

    def setUp(self):
        self.index = CentroidIndex()
        for mean, count in [(30.0, 3.0), (10.0, 1.0), (20.0, 2.0)]:
            self.index.insert(Centroid(mean, count))

    def test_empty(self):
        index = CentroidIndex()
        self.assertEqual(len(index), 0)
        self.assertEqual(list(index), [])
        self.assertIsNone(index.successor(1.0))
        self.assertIsNone(index.predecessor(1.0))
        self.assertEqual(index.weight_below(1.0), 0)
        self.assertEqual(index.pairs(), [])

    def test_iteration_is_ascending(self):
        self.assertEqual([c.mean for c in self.index], [10.0, 20.0, 30.0])
        self.assertEqual(self.index.pairs(), [(10.0, 1.0), (20.0, 2.0), (30.0, 3.0)])
        self.assertEqual(len(self.index), 3)

    def test_insert_duplicate_key(self):
        with self.assertRaises(KeyError):
            self.index.insert(Centroid(20.0, 5.0))
        # The original entry is untouched
        self.assertEqual(self.index.get(20.0).count, 2.0)
        self.assertEqual(len(self.index), 3)

    def test_get_and_contains(self):
        self.assertEqual(self.index.get(30.0).count, 3.0)
        self.assertIsNone(self.index.get(25.0))
        self.assertIn(10.0, self.index)
        self.assertNotIn(11.0, self.index)

    def test_remove(self):
        removed = self.index.remove(20.0)
        self.assertEqual(removed.mean, 20.0)
        self.assertEqual([c.mean for c in self.index], [10.0, 30.0])

        with self.assertRaises(KeyError):
            self.index.remove(20.0)

    def test_successor(self):
        # Weak successor accepts an exact match
        self.assertEqual(self.index.successor(20.0).mean, 20.0)
        self.assertEqual(self.index.successor(15.0).mean, 20.0)
        self.assertEqual(self.index.successor(5.0).mean, 10.0)
        self.assertIsNone(self.index.successor(31.0))

        # Strict successor skips it
        self.assertEqual(self.index.successor(20.0, inclusive=False).mean, 30.0)
        self.assertIsNone(self.index.successor(30.0, inclusive=False))

    def test_predecessor(self):
        self.assertEqual(self.index.predecessor(20.0).mean, 20.0)
        self.assertEqual(self.index.predecessor(25.0).mean, 20.0)
        self.assertEqual(self.index.predecessor(35.0).mean, 30.0)
        self.assertIsNone(self.index.predecessor(9.0))

        self.assertEqual(self.index.predecessor(20.0, inclusive=False).mean, 10.0)
        self.assertIsNone(self.index.predecessor(10.0, inclusive=False))

    def test_weight_below(self):
        self.assertEqual(self.index.weight_below(10.0), 0.0)
        self.assertEqual(self.index.weight_below(20.0), 1.0)  # strictly smaller
        self.assertEqual(self.index.weight_below(30.0), 3.0)
        self.assertEqual(self.index.weight_below(100.0), 6.0)
        self.assertEqual(self.index.total_weight(), 6.0)

    def test_total_weight_is_order_independent(self):
        counts = [0.1, 3.7, 0.5, 1e-3, 2.2, 0.7]
        forward = CentroidIndex()
        backward = CentroidIndex()
        for i, count in enumerate(counts):
            forward.insert(Centroid(float(i), count))
            backward.insert(Centroid(float(-i), count))
        self.assertEqual(forward.total_weight(), backward.total_weight())

    def test_reposition_moves_key(self):
        centroid = self.index.get(10.0)
        result = self.index.reposition(centroid, 25.0, 4.0)

        self.assertIs(result, centroid)
        self.assertIsNone(self.index.get(10.0))
        self.assertIs(self.index.get(25.0), centroid)
        self.assertEqual(centroid.count, 4.0)
        self.assertEqual([c.mean for c in self.index], [20.0, 25.0, 30.0])

    def test_reposition_onto_existing_key_folds(self):
        centroid = self.index.get(10.0)
        result = self.index.reposition(centroid, 20.0, 1.5)

        self.assertIsNot(result, centroid)
        self.assertEqual(result.mean, 20.0)
        self.assertEqual(result.count, 3.5)
        self.assertEqual(self.index.pairs(), [(20.0, 3.5), (30.0, 3.0)])
        self.assertEqual(self.index.total_weight(), 6.5)

    def test_reposition_foreign_centroid(self):
        stranger = Centroid(20.0, 2.0)  # same key, different object
        with self.assertRaises(KeyError):
            self.index.reposition(stranger, 22.0, 3.0)
        # Index left as it was
        self.assertEqual(self.index.pairs(), [(10.0, 1.0), (20.0, 2.0), (30.0, 3.0)])

    def test_iteration_snapshot(self):
        # Mutating while iterating must not skip or repeat centroids
        seen = []
        for centroid in self.index:
            seen.append(centroid.mean)
            self.index.reposition(centroid, centroid.mean + 100.0, centroid.count)
        self.assertEqual(seen, [10.0, 20.0, 30.0])
        self.assertEqual([c.mean for c in self.index], [110.0, 120.0, 130.0])

    def test_estimate_size_grows(self):
        empty = CentroidIndex().estimate_size()
        self.assertGreater(self.index.estimate_size(), empty)


if __name__ == "__main__":
    unittest.main()
