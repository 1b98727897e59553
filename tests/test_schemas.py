"""Tests for parsing Dropzone chunk fields into ChunkInfo."""

import pytest

from transfer_service.exceptions import ValidationError
from transfer_service.schemas.upload import ChunkInfo


def test_absent_index_means_single_shot():
    assert ChunkInfo.from_form(None, "100", "10", "10") is None
    assert ChunkInfo.from_form("", None, None, None) is None


def test_index_zero_selects_chunked_mode():
    chunk = ChunkInfo.from_form("0")
    assert chunk is not None
    assert chunk.is_first
    assert chunk.total_chunks is None
    assert not chunk.is_last


def test_all_fields_parsed():
    chunk = ChunkInfo.from_form(" 4 ", total_file_size="4500000", chunk_size="1000000", total_chunk_count="5")
    assert chunk.index == 4
    assert chunk.total_file_size == 4_500_000
    assert chunk.chunk_size == 1_000_000
    assert chunk.is_last


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"chunk_index": "x"}, "dzchunkindex"),
        ({"chunk_index": "-1"}, "dzchunkindex"),
        ({"chunk_index": "0", "total_chunk_count": "three"}, "dztotalchunkcount"),
        ({"chunk_index": "0", "total_file_size": "1.5"}, "dztotalfilesize"),
    ],
)
def test_bad_values_rejected(kwargs, field):
    with pytest.raises(ValidationError) as exc_info:
        ChunkInfo.from_form(**kwargs)
    assert exc_info.value.field == field


@pytest.mark.parametrize("index, total", [("3", "3"), ("5", "3"), ("0", "0")])
def test_index_beyond_chunk_count_rejected(index, total):
    with pytest.raises(ValidationError) as exc_info:
        ChunkInfo.from_form(index, total_chunk_count=total)
    assert exc_info.value.field == "dzchunkindex"
    assert exc_info.value.context["total_chunks"] == int(total)
