import random

import pytest
from memory.allocator import FirstFitAllocator
from memory.errors import InvalidArgumentError, InvariantViolation
from tests.helpers import make_allocator, pairs


def total_length(alloc: FirstFitAllocator) -> int:
    return sum(b.length for b in alloc.free_list) + sum(b.length for b in alloc.allocated_list)


class TestConstruction:
    def test_single_free_block(self):
        alloc = FirstFitAllocator(100)
        assert pairs(alloc.free_list) == [(0, 100)]
        assert alloc.allocated_list.size == 0
        alloc.check_invariants()

    @pytest.mark.parametrize('size', [0, -5])
    def test_bad_arena_size(self, size):
        with pytest.raises(InvalidArgumentError):
            FirstFitAllocator(size)


class TestMalloc:
    @pytest.mark.parametrize('length', [0, -1])
    def test_non_positive_length(self, length):
        alloc = FirstFitAllocator(100)
        assert alloc.malloc(length) == -1
        assert pairs(alloc.free_list) == [(0, 100)]

    def test_first_fit_in_list_order(self):
        alloc = make_allocator(30, free=[(0, 5), (10, 3), (20, 10)],
                               allocated=[(5, 5), (13, 7)])
        assert alloc.malloc(3) == 0
        assert pairs(alloc.free_list) == [(3, 2), (10, 3), (20, 10)]
        assert pairs(alloc.allocated_list) == [(5, 5), (13, 7), (0, 3)]

    def test_first_fit_is_not_smallest_fit(self):
        alloc = make_allocator(30, free=[(0, 2), (10, 3), (20, 10)],
                               allocated=[(2, 8), (13, 7)])
        assert alloc.malloc(3) == 10
        assert pairs(alloc.free_list) == [(0, 2), (20, 10)]
        assert alloc.malloc(1) == 0
        assert pairs(alloc.free_list) == [(1, 1), (20, 10)]

    def test_first_fit_ignores_address_order(self):
        alloc = make_allocator(30, free=[(20, 10), (0, 10)], allocated=[(10, 10)])
        assert alloc.malloc(4) == 20
        assert pairs(alloc.free_list) == [(24, 6), (0, 10)]

    def test_exact_fit_moves_same_block(self):
        alloc = make_allocator(15, free=[(0, 5), (5, 10)])
        block = alloc.free_list.get(0)
        assert alloc.malloc(5) == 0
        assert alloc.free_list.size == 1
        assert alloc.allocated_list.get(0) is block

    def test_split(self):
        alloc = make_allocator(300, free=[(0, 10), (250, 20), (270, 30)],
                               allocated=[(10, 240)])
        found = alloc.free_list.get(1)
        assert alloc.malloc(17) == 250
        assert alloc.free_list.get(1) is found
        assert pairs(alloc.free_list) == [(0, 10), (267, 3), (270, 30)]
        assert alloc.allocated_list.get(alloc.allocated_list.size - 1).as_tuple() == (250, 17)
        alloc.check_invariants()

    def test_exhaustion_leaves_lists_unchanged(self):
        alloc = make_allocator(30, free=[(0, 5), (20, 10)], allocated=[(5, 15)])
        assert alloc.malloc(11) == -1
        assert pairs(alloc.free_list) == [(0, 5), (20, 10)]
        assert pairs(alloc.allocated_list) == [(5, 15)]

    def test_no_implicit_defrag(self):
        alloc = make_allocator(20, free=[(10, 10), (0, 10)])
        assert alloc.malloc(20) == -1
        assert pairs(alloc.free_list) == [(10, 10), (0, 10)]
        alloc.defrag()
        assert alloc.malloc(20) == 0

    def test_fill_whole_arena(self):
        alloc = FirstFitAllocator(10)
        assert alloc.malloc(10) == 0
        assert alloc.free_list.size == 0
        assert alloc.malloc(1) == -1


class TestFree:
    def test_round_trip(self):
        alloc = FirstFitAllocator(100)
        addr = alloc.malloc(7)
        block = alloc.allocated_list.get(0)
        alloc.free(addr)
        assert alloc.allocated_list.size == 0
        freed = alloc.free_list.block_at(alloc.free_list.last())
        assert freed is block
        assert freed.as_tuple() == (0, 7)
        assert pairs(alloc.free_list) == [(7, 93), (0, 7)]

    def test_free_last_allocated(self):
        alloc = FirstFitAllocator(100)
        for n in (10, 20, 30):
            alloc.malloc(n)
        alloc.free(30)
        assert pairs(alloc.allocated_list) == [(0, 10), (10, 20)]
        assert pairs(alloc.free_list) == [(60, 40), (30, 30)]

    def test_free_middle_keeps_order(self):
        alloc = FirstFitAllocator(100)
        for n in (10, 20, 30):
            alloc.malloc(n)
        alloc.free(10)
        assert pairs(alloc.allocated_list) == [(0, 10), (30, 30)]
        assert alloc.allocated_list.block_at(alloc.allocated_list.last()).base == 30
        assert pairs(alloc.free_list) == [(60, 40), (10, 20)]
        alloc.free(30)
        alloc.free(0)
        assert alloc.allocated_list.first() is None
        alloc.check_invariants()

    def test_free_when_nothing_allocated(self):
        alloc = FirstFitAllocator(100)
        with pytest.raises(InvalidArgumentError):
            alloc.free(0)

    def test_free_untracked_address(self):
        alloc = FirstFitAllocator(100)
        alloc.malloc(10)
        alloc.malloc(10)
        with pytest.raises(InvalidArgumentError):
            alloc.free(5)
        assert pairs(alloc.allocated_list) == [(0, 10), (10, 10)]
        assert pairs(alloc.free_list) == [(20, 80)]

    def test_double_free(self):
        alloc = FirstFitAllocator(100)
        a = alloc.malloc(10)
        alloc.malloc(10)
        alloc.free(a)
        with pytest.raises(ValueError):
            alloc.free(a)


class TestDefrag:
    def test_merge_two(self):
        alloc = make_allocator(15, free=[(10, 5), (0, 10)])
        alloc.defrag()
        assert pairs(alloc.free_list) == [(0, 15)]

    def test_merge_chain(self):
        alloc = make_allocator(40, free=[(20, 5), (0, 10), (10, 10)], allocated=[(25, 15)])
        alloc.defrag()
        assert pairs(alloc.free_list) == [(0, 25)]

    def test_sort_without_merge(self):
        alloc = make_allocator(30, free=[(20, 5), (0, 5)], allocated=[(5, 15), (25, 5)])
        alloc.defrag()
        assert pairs(alloc.free_list) == [(0, 5), (20, 5)]

    def test_idempotent(self):
        alloc = make_allocator(100, free=[(50, 10), (0, 10), (10, 5), (80, 20), (60, 5)],
                               allocated=[(15, 35), (65, 15)])
        alloc.defrag()
        once = pairs(alloc.free_list)
        alloc.defrag()
        assert pairs(alloc.free_list) == once
        assert once == [(0, 15), (50, 15), (80, 20)]

    def test_empty_free_list(self):
        alloc = FirstFitAllocator(10)
        alloc.malloc(10)
        alloc.defrag()
        assert alloc.free_list.size == 0

    def test_recovers_space_after_frees(self):
        alloc = FirstFitAllocator(100)
        addrs = [alloc.malloc(25) for _ in range(4)]
        for a in addrs:
            alloc.free(a)
        assert alloc.malloc(100) == -1
        alloc.defrag()
        assert pairs(alloc.free_list) == [(0, 100)]
        assert alloc.malloc(100) == 0


class TestInvariants:
    def test_random_workload_tiles_arena(self):
        rng = random.Random(1234)
        alloc = FirstFitAllocator(512)
        live = []
        for step in range(400):
            if live and rng.random() < 0.45:
                alloc.free(live.pop(rng.randrange(len(live))))
            elif rng.random() < 0.05:
                alloc.defrag()
            else:
                addr = alloc.malloc(rng.randint(1, 64))
                if addr >= 0:
                    live.append(addr)
            assert total_length(alloc) == 512
            alloc.check_invariants()
        assert alloc.used() == sum(alloc.block_size(a) for a in live)
        assert alloc.used() + alloc.free_words() == 512

    def test_overlap_detected(self):
        alloc = make_allocator(10, free=[(0, 5)], allocated=[(4, 6)])
        with pytest.raises(InvariantViolation):
            alloc.check_invariants()

    def test_gap_detected(self):
        alloc = make_allocator(10, free=[(0, 3)], allocated=[(5, 5)])
        with pytest.raises(InvariantViolation):
            alloc.check_invariants()

    def test_short_cover_detected(self):
        alloc = make_allocator(10, free=[(0, 5)])
        with pytest.raises(InvariantViolation):
            alloc.check_invariants()


class TestBookkeeping:
    def test_queries(self):
        alloc = FirstFitAllocator(100)
        a = alloc.malloc(30)
        b = alloc.malloc(20)
        alloc.free(a)
        assert alloc.is_allocated(b)
        assert not alloc.is_allocated(a)
        assert alloc.block_size(b) == 20
        with pytest.raises(InvalidArgumentError):
            alloc.block_size(a)
        assert alloc.used() == 20
        assert alloc.free_words() == 80
        assert alloc.extents_free() == [(0, 30), (50, 50)]
        assert alloc.largest_free_extent() == 50

    def test_str(self):
        alloc = FirstFitAllocator(100)
        alloc.malloc(10)
        assert str(alloc) == '(10 , 90)\n(0 , 10)'
