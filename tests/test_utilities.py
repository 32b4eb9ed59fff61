import pytest

from alignseg.algorithms.sw_pairwise import align
from alignseg.core.alignment import AlignmentResult, OverhangStrategy, ScoringParameters
from alignseg.core.exceptions import InvalidInputError, InvalidParameterError
from alignseg.core.utilities import (
    as_sequence_bytes,
    compute_alignment_stats,
    format_alignment,
    parse_cigar,
)


def test_as_sequence_bytes():
    assert as_sequence_bytes("ACGT") == b"ACGT"
    assert as_sequence_bytes(bytearray(b"AC")) == b"AC"
    with pytest.raises(InvalidInputError):
        as_sequence_bytes(b"", "query")


@pytest.mark.parametrize("value", [5, True, "ACGT\u00e9", 3.5, object()])
def test_as_sequence_bytes_rejects_non_sequences(value):
    with pytest.raises(InvalidInputError):
        as_sequence_bytes(value)


def test_align_rejects_integer_sequence():
    with pytest.raises(InvalidInputError):
        align(5, b"\x00\x00")


def test_parse_cigar():
    cigar = parse_cigar("1M358D6M29D")
    assert str(cigar) == "1M358D6M29D"
    assert cigar.reference_length == 394
    assert cigar.query_length == 7
    assert str(parse_cigar("2M3M1S")) == "5M1S"
    assert len(parse_cigar("*")) == 0
    assert len(parse_cigar("")) == 0


@pytest.mark.parametrize("text", ["5X", "M5", "5M3", "5M 3S", "-1M"])
def test_parse_cigar_rejects_malformed(text):
    with pytest.raises(InvalidParameterError):
        parse_cigar(text)


def test_alignment_stats_with_gaps():
    reference, query = "AAAGACTACTG", "AACGGACACTG"
    result = align(reference, query, ScoringParameters(50, -100, -220, -12))
    stats = compute_alignment_stats(reference, query, result)
    assert stats == {
        "matches": 9,
        "mismatches": 0,
        "insertions": 2,
        "deletions": 1,
        "clipped": 0,
        "gap_openings": 2,
        "total_aligned": 12,
        "identity": 0.75,
    }


def test_alignment_stats_with_clipping():
    stats = compute_alignment_stats("AAACCCCC", "CCCCCGGG", align("AAACCCCC", "CCCCCGGG"))
    assert stats["matches"] == 5
    assert stats["clipped"] == 3
    assert stats["identity"] == 1.0


def test_format_substring_alignment():
    result = align("AAACCCCC", "CCCCC")
    assert format_alignment("AAACCCCC", "CCCCC", result) == (
        "   .....\n"
        "   CCCCC\n"
        "AAACCCCC\n"
    )


def test_format_alignment_with_deletion():
    result = align("AAACCCCC", "CCCCC", strategy=OverhangStrategy.INDEL)
    assert format_alignment("AAACCCCC", "CCCCC", result, OverhangStrategy.INDEL) == (
        "DDD.....\n"
        "---CCCCC\n"
        "AAACCCCC\n"
    )


def test_format_alignment_wraps_lines():
    result = align("AAACCCCC", "CCCCC")
    text = format_alignment("AAACCCCC", "CCCCC", result, width=5)
    assert text.split("\n") == ["   ..", "   CC", "AAACC", "", "...", "CCC", "CCC", ""]


def test_format_alignment_negative_offset():
    result = AlignmentResult(parse_cigar("5M"), -2)
    text = format_alignment("CCCAA", "GGCCC", result, OverhangStrategy.IGNORE)
    assert text.split("\n")[:3] == ["  ...", "GGCCC", "  CCCAA"]


def test_format_alignment_rejects_bad_width():
    with pytest.raises(InvalidParameterError):
        format_alignment("ACGT", "ACGT", align("ACGT", "ACGT"), width=0)
