"""Unit tests for line reconstruction across chunks."""

from __future__ import annotations

from transforms.line_splitting import normalize_line, split_lines


def test_split_lines_handles_all_delimiters() -> None:
    """Newline variants and soft separators should all end a line."""
    result = split_lines("", "a\nb\r\nc\rd\x00e\x01f\x02g")

    assert result.lines == ("a", "b", "c", "d", "e", "f") and result.tail == "g"


def test_split_lines_carries_tail_into_next_chunk() -> None:
    """A fragment should be completed by the following chunk."""
    first = split_lines("", "header\nACC ES91210004")
    second = split_lines(first.tail, "18450200051332\nnext")

    assert first.lines == ("header",) and second.lines == ("ACC ES9121000418450200051332",)


def test_split_lines_drops_blank_lines_and_collapses_whitespace() -> None:
    """Whitespace-only lines should disappear after normalization."""
    result = split_lines("", "  foo \t  bar  \n\n   \n")

    assert result.lines == ("foo bar",) and result.tail == ""


def test_split_lines_without_delimiter_keeps_everything_in_tail() -> None:
    """Chunks without any delimiter should only grow the tail."""
    result = split_lines("abc", "def")

    assert result.lines == () and result.tail == "abcdef"


def test_normalize_line_trims_ends() -> None:
    """Normalization should trim and collapse runs."""
    assert normalize_line("\t a   b \x0b") == "a b"
