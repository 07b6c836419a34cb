"""Tests for batch partitioning."""

import pytest

from imgsync.batch import batch_count, partition


class TestPartition:
    """Test partition boundaries."""

    def test_three_images_batch_two_of_size_two(self):
        # n = 3 // 2 = 1, so batch 2 folds into the single batch [0:]
        images = ["a:1", "b:1", "c:1"]
        assert partition(images, 2, 2) == ["a:1", "b:1", "c:1"]

    def test_disabled_when_size_zero(self):
        assert partition(["a", "b", "c"], 0, 1) == ["a", "b", "c"]

    def test_disabled_when_number_zero(self):
        assert partition(["a", "b", "c"], 1, 0) == ["a", "b", "c"]

    def test_disabled_when_batch_covers_everything(self):
        assert partition(["a", "b"], 2, 1) == ["a", "b"]
        assert partition(["a", "b"], 5, 3) == ["a", "b"]

    def test_middle_batch(self):
        images = list("abcdefghij")
        assert partition(images, 3, 2) == ["d", "e", "f"]

    def test_last_batch_absorbs_remainder(self):
        images = list("abcdefghij")
        # n = 3, last batch starts at 6 and keeps the remainder
        assert partition(images, 3, 3) == ["g", "h", "i", "j"]

    def test_excess_batch_number_returns_last_batch(self):
        images = list("abcdefghij")
        assert partition(images, 3, 7) == ["g", "h", "i", "j"]

    def test_returns_new_list(self):
        images = ["a", "b"]
        result = partition(images, 0, 0)
        assert result == images
        assert result is not images

    @pytest.mark.parametrize("total", [5, 6, 7, 10, 11, 23])
    @pytest.mark.parametrize("size", [1, 2, 3, 4])
    def test_batches_cover_input_exactly(self, total, size):
        images = [f"img-{i:02d}" for i in range(total)]
        count = batch_count(total, size)
        combined = []
        for number in range(1, count + 1):
            batch = partition(images, size, number)
            # each batch keeps relative order
            assert batch == [img for img in images if img in batch]
            combined.extend(batch)
        assert combined == images


class TestBatchCount:
    """Test batch_count."""

    def test_counts(self):
        assert batch_count(10, 3) == 3
        assert batch_count(3, 2) == 1
        assert batch_count(2, 2) == 1
        assert batch_count(10, 0) == 1
