"""
Unit tests for the batch partitioner

Tests verify:
- Contiguous id spaces split into exact windows
- Sparse id spaces follow the ids that exist
- Fallback window when rows disappear mid-run
- Unaddressable modules and empty tables
"""

from unittest.mock import Mock

import pytest

from fullsync.exceptions import InvalidLimits, StoreUnavailable
from fullsync.modules import SyncModule, TableModule
from fullsync.partition import BatchRange, get_min_max_object_ids_for_batches
from fullsync.store import MemoryIdStore, MinMax


class ListenerOnlyModule(SyncModule):
    """Module without a table."""

    @property
    def name(self):
        return "options"


def store_with_ids(ids):
    store = MemoryIdStore({"posts": {}})
    store.insert("posts", [{"id": i, "status": "publish"} for i in ids])
    return store


class TestGetMinMaxObjectIdsForBatches:
    """Test get_min_max_object_ids_for_batches"""

    def test_contiguous_ids(self, posts_module):
        ranges = get_min_max_object_ids_for_batches(
            posts_module, store_with_ids(range(1, 251)), 100
        )

        assert ranges == [
            BatchRange(1, 100),
            BatchRange(101, 200),
            BatchRange(201, 250),
        ]

    def test_exact_multiple_of_batch_size(self, posts_module):
        ranges = get_min_max_object_ids_for_batches(
            posts_module, store_with_ids(range(1, 201)), 100
        )

        assert ranges == [BatchRange(1, 100), BatchRange(101, 200)]

    def test_sparse_ids_follow_existing_rows(self, posts_module):
        ranges = get_min_max_object_ids_for_batches(
            posts_module, store_with_ids([5, 10, 300, 301, 1000]), 2
        )

        assert ranges == [BatchRange(5, 10), BatchRange(300, 301), BatchRange(1000, 1000)]

    def test_single_window_when_batch_is_large(self, posts_module):
        ranges = get_min_max_object_ids_for_batches(
            posts_module, store_with_ids(range(1, 51)), 1000
        )

        assert ranges == [BatchRange(1, 50)]

    def test_config_narrows_windows(self, posts_module, posts_store):
        ranges = get_min_max_object_ids_for_batches(
            posts_module, posts_store, 10, config={"status": "draft"}
        )

        assert ranges[0] == BatchRange(2, 20)
        assert ranges[-1] == BatchRange(82, 100)
        assert len(ranges) == 5

    def test_empty_table_yields_no_ranges(self, posts_module):
        assert get_min_max_object_ids_for_batches(posts_module, store_with_ids([]), 10) == []

    def test_unaddressable_module_returns_none(self):
        store = Mock()

        assert get_min_max_object_ids_for_batches(ListenerOnlyModule(), store, 10) is None
        store.query_min_max.assert_not_called()

    @pytest.mark.parametrize("batch_size", [0, -1, 1.5])
    def test_invalid_batch_size(self, posts_module, posts_store, batch_size):
        with pytest.raises(InvalidLimits):
            get_min_max_object_ids_for_batches(posts_module, posts_store, batch_size)

    def test_fallback_window_when_rows_vanish(self, posts_module):
        store = Mock()
        store.query_min_max.side_effect = [
            MinMax(1, 250),   # global
            MinMax(1, 100),   # first window
            None,             # rows above 100 deleted meanwhile
        ]

        ranges = get_min_max_object_ids_for_batches(posts_module, store, 100)

        assert ranges == [BatchRange(1, 100), BatchRange(101, 250)]

    def test_fallback_before_any_window(self, posts_module):
        store = Mock()
        store.query_min_max.side_effect = [MinMax(7, 90), None]

        ranges = get_min_max_object_ids_for_batches(posts_module, store, 10)

        assert ranges == [BatchRange(1, 90)]

    def test_window_queries_use_running_maximum(self, posts_module):
        store = Mock()
        store.query_min_max.side_effect = [MinMax(1, 30), MinMax(1, 10), MinMax(11, 30)]

        get_min_max_object_ids_for_batches(posts_module, store, 10)

        window_calls = store.query_min_max.call_args_list[1:]
        assert [c.kwargs["lower_bound_exclusive"] for c in window_calls] == [0, 10]
        assert all(c.kwargs["limit"] == 10 for c in window_calls)

    def test_store_failure_propagates(self, posts_module, posts_store):
        posts_store.fail_queries = True

        with pytest.raises(StoreUnavailable):
            get_min_max_object_ids_for_batches(posts_module, posts_store, 10)

    def test_table_module_with_custom_id_field(self):
        module = TableModule("comments", "comments", id_field="comment_id")
        store = MemoryIdStore({"comments": {}})
        store.insert("comments", [{"comment_id": i} for i in range(1, 21)], id_field="comment_id")

        ranges = get_min_max_object_ids_for_batches(module, store, 15)

        assert ranges == [BatchRange(1, 15), BatchRange(16, 20)]


class TestBatchRange:
    """Test BatchRange"""

    def test_to_dict(self):
        assert BatchRange(1, 100).to_dict() == {"min": 1, "max": 100}

    def test_is_hashable(self):
        assert len({BatchRange(1, 2), BatchRange(1, 2)}) == 1
