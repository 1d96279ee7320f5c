from __future__ import annotations

import pytest

from capture.timestamp_index import TimestampIndex
from exceptions import StateError


@pytest.fixture
def index() -> TimestampIndex:
    idx = TimestampIndex()
    for i, ts in enumerate((10, 20, 30)):
        idx.append(ts, i)
    return idx


def test_lookup_takes_greatest_key_below(index) -> None:
    assert index.lookup(25) == 1
    assert index.lookup(30) == 2
    assert index.lookup(10_000) == 2


def test_lookup_before_first_frame(index) -> None:
    with pytest.raises(StateError, match="past"):
        index.lookup(5)


def test_lookup_empty_index() -> None:
    with pytest.raises(StateError):
        TimestampIndex().lookup(0)


def test_equal_keys_resolve_to_latest() -> None:
    idx = TimestampIndex()
    idx.append(10, 0)
    idx.append(10, 1)

    assert idx.lookup(10) == 1


def test_decreasing_key_is_rejected(index) -> None:
    with pytest.raises(StateError):
        index.append(29, 3)
    assert len(index) == 3


def test_bounds(index) -> None:
    assert index.first() == 10
    assert index.last() == 30
    assert list(index) == [(10, 0), (20, 1), (30, 2)]
    assert index.time_stamp_at(1) == 20
    assert index.frame_index_at(2) == 2
