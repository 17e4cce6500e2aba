import time

import pytest

from mpnode.utils import local_timestamp, median


def test_local_timestamp_tracks_clock():
    before = int(time.time())
    ts = local_timestamp()
    after = int(time.time())
    assert before <= ts <= after


def test_median_odd():
    assert median([5, 1, 3]) == 3


def test_median_even_takes_upper_middle():
    assert median([4, 1, 3, 2]) == 3


def test_median_does_not_modify_input():
    values = [3, 1, 2]
    median(values)
    assert values == [3, 1, 2]


def test_median_empty_raises():
    with pytest.raises(ValueError):
        median([])