import numpy as np
import pytest
from lpalign.align.errors import AllocationError, ErrorKind, QueueExhaustedError
from lpalign.align.queue import IndexedPriorityQueue


def assert_heap(q: IndexedPriorityQueue):
    keys, cells, slots = q.heap
    size = len(q)
    for k in range(2, size + 1):
        assert keys[k // 2] <= keys[k]
    for k in range(1, size + 1):
        assert slots[cells[k]] == k
    assert np.count_nonzero(slots) == size


class TestQueueBasics:
    def test_empty(self):
        q = IndexedPriorityQueue(3)
        assert len(q) == 0
        assert not q
        assert q.capacity == 3

    def test_extract_empty(self):
        q = IndexedPriorityQueue(3)
        with pytest.raises(QueueExhaustedError) as e:
            q.extract_min()
        assert e.value.kind is ErrorKind.QUEUE_EXHAUSTION

    def test_peek_empty(self):
        with pytest.raises(QueueExhaustedError):
            IndexedPriorityQueue(1).peek()

    def test_insert_and_extract(self):
        q = IndexedPriorityQueue(4)
        assert q.update(2, 7)
        assert len(q) == 1
        assert 2 in q
        assert q.distance(2) == 7
        assert q.peek() == (2, 7)
        assert q.extract_min() == (2, 7)
        assert 2 not in q
        assert q.distance(2) is None
        assert not q

    def test_out_of_range(self):
        q = IndexedPriorityQueue(2)
        with pytest.raises(IndexError):
            q.update(2, 0)
        assert 5 not in q
        assert -1 not in q

    def test_negative_capacity(self):
        with pytest.raises(ValueError):
            IndexedPriorityQueue(-1)

    def test_allocation_failure(self, monkeypatch):
        def fail(*args, **kwargs): raise MemoryError
        monkeypatch.setattr(np, 'zeros', fail)
        with pytest.raises(AllocationError) as e:
            IndexedPriorityQueue(10)
        assert e.value.kind is ErrorKind.ALLOCATION_FAILURE


class TestDecreaseKey:
    def test_lower_improves(self):
        q = IndexedPriorityQueue(4)
        q.update(1, 10)
        assert q.update(1, 3)
        assert q.distance(1) == 3
        assert len(q) == 1

    def test_higher_or_equal_ignored(self):
        q = IndexedPriorityQueue(4)
        q.update(1, 10)
        assert not q.update(1, 12)
        assert not q.update(1, 10)
        assert q.distance(1) == 10

    def test_reorders(self):
        q = IndexedPriorityQueue(4)
        for cell, d in ((0, 5), (1, 6), (2, 7), (3, 8)):
            q.update(cell, d)
        q.update(3, 1)
        assert_heap(q)
        assert q.extract_min() == (3, 1)
        assert q.extract_min() == (0, 5)


class TestOrdering:
    @pytest.mark.parametrize('seed', range(5))
    def test_extracts_in_order(self, seed):
        rng = np.random.default_rng(seed)
        n = 200
        q = IndexedPriorityQueue(n)
        best = {}
        for _ in range(600):
            cell, d = int(rng.integers(n)), int(rng.integers(1000))
            improved = q.update(cell, d)
            assert improved == (cell not in best or d < best[cell])
            if improved: best[cell] = d
        assert_heap(q)
        assert len(q) == len(best)

        out = []
        while q:
            out.append(q.extract_min())
            assert_heap(q)
        distances = [d for _, d in out]
        assert distances == sorted(distances)
        assert dict(out) == best

    def test_reinsert_after_extract(self):
        q = IndexedPriorityQueue(2)
        q.update(0, 4)
        q.extract_min()
        assert q.update(0, 9)
        assert q.extract_min() == (0, 9)

    def test_ties_are_deterministic(self):
        def drain():
            q = IndexedPriorityQueue(6)
            for cell in (4, 1, 5, 0, 3, 2): q.update(cell, 1)
            return [q.extract_min()[0] for _ in range(6)]
        assert drain() == drain()
