import pytest
from hypothesis import given, strategies as st

from xvkit.constants import FileType, RtcDate, Stat

shorts = st.integers(min_value=-(2**15), max_value=2**15 - 1)
ints = st.integers(min_value=-(2**31), max_value=2**31 - 1)
uints = st.integers(min_value=0, max_value=2**32 - 1)


@given(shorts, ints, uints, shorts, uints)
def test_stat_round_trip(type_, dev, ino, nlink, size):
    record = Stat(type_, dev, ino, nlink, size)
    assert Stat.unpack(record.pack()) == record


def test_stat_packed_size():
    assert len(Stat(FileType.FILE, 1, 2, 1, 0).pack()) == 20


def test_stat_type_is_first_field():
    data = Stat(FileType.DIR, 1, 7, 2, 64).pack()
    assert data[:2] == int(FileType.DIR).to_bytes(2, "little")


def test_stat_unpack_keeps_type_value():
    record = Stat.unpack(Stat(FileType.DEV, 1, 3, 1, 0).pack())
    assert record.type == FileType.DEV


def test_stat_out_of_range_raises():
    with pytest.raises(ValueError):
        Stat(2**20, 0, 0, 0, 0).pack()


def test_stat_negative_size_raises():
    with pytest.raises(ValueError):
        Stat(FileType.FILE, 0, 0, 0, -1).pack()


def test_stat_unpack_wrong_length():
    data = Stat(FileType.FILE, 1, 2, 1, 0).pack()
    with pytest.raises(ValueError):
        Stat.unpack(data[:-1])


def test_rtcdate_as_tuple_order():
    date = RtcDate(second=1, minute=2, hour=3, day=4, month=5, year=2020)
    assert date.as_tuple() == (1, 2, 3, 4, 5, 2020)