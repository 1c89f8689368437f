import io
import sys

from hypothesis import given
from hypothesis import strategies as st

from xvkit.wc import BUFSIZE, Counts, count, main


def test_format():
    assert Counts(4, 5, 6).format("file") == "4 5 6 file"


def test_empty_stream():
    assert count(io.BytesIO(b"")) == Counts(0, 0, 0)


def test_nul_separates_words():
    assert count(io.BytesIO(b"a\0b")).words == 2


def test_vertical_tab_separates_words_but_formfeed_does_not():
    assert count(io.BytesIO(b"a\vb")).words == 2
    assert count(io.BytesIO(b"a\fb")).words == 1


def test_word_spanning_buffer_boundary():
    data = b"x" * (BUFSIZE + 100)
    result = count(io.BytesIO(data))
    assert result.words == 1
    assert result.chars == len(data)


_pieces = st.lists(st.sampled_from([b"a", b"b", b" ", b"\n", b"\t", b"\r"])).map(b"".join)


@given(_pieces)
def test_counts_match_data(data):
    result = count(io.BytesIO(data))
    assert result.chars == len(data)
    assert result.lines == data.count(b"\n")
    assert result.words == len(data.split())


def test_main_with_file(tmp_path, capsys):
    path = tmp_path / "input.txt"
    data = b"one two\nthree\n"
    path.write_bytes(data)
    assert main([str(path)]) == 0
    expected = count(io.BytesIO(data)).format(str(path))
    assert capsys.readouterr().out == expected + "\n"


def test_main_missing_file(tmp_path, capsys):
    missing = tmp_path / "nope"
    assert main([str(missing)]) == 1
    assert capsys.readouterr().out == f"wc: cannot open {missing}\n"


def test_main_stops_at_first_missing_file(tmp_path, capsys):
    good = tmp_path / "good"
    good.write_bytes(b"x\n")
    missing = tmp_path / "missing"
    assert main([str(missing), str(good)]) == 1
    assert str(good) not in capsys.readouterr().out


def test_main_reads_stdin(monkeypatch, capsys):
    data = b"hello world\n"
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data)))
    assert main([]) == 0
    assert capsys.readouterr().out == count(io.BytesIO(data)).format("") + "\n"