"""Tests for splitting large pastes into header-preserving chunks."""
from leadparser.ingestion.batching import BatchSplitter, looks_like_header

HEADER = "Customer Name,Email"
ROWS = [f"Person {i},p{i}@example.com" for i in range(5)]


def test_split_repeats_header_in_every_chunk():
    data = "\n".join([HEADER, *ROWS])

    result = BatchSplitter.split(data, max_rows_per_chunk=2)

    assert [chunk.row_count for chunk in result.chunks] == [2, 2, 1]
    assert all(chunk.data.split("\n")[0] == HEADER for chunk in result.chunks)
    assert all(chunk.total_chunks == 3 for chunk in result.chunks)
    assert [chunk.id for chunk in result.chunks] == ["chunk_0", "chunk_1", "chunk_2"]
    assert result.headers == HEADER
    assert result.total_rows == 5
    assert result.split_reason == "rows"


def test_combine_restores_original_rows():
    data = "\n".join([HEADER, *ROWS])

    chunks = BatchSplitter.split(data, max_rows_per_chunk=2).chunks

    assert BatchSplitter.combine(list(reversed(chunks))) == data


def test_split_without_header_respects_size_limit():
    data = "\n".join(["a" * 10] * 4)

    result = BatchSplitter.split(data, max_chunk_size=25)

    assert [chunk.row_count for chunk in result.chunks] == [2, 2]
    assert result.headers is None
    assert not any(chunk.has_headers for chunk in result.chunks)


def test_header_is_not_repeated_when_disabled():
    data = "\n".join([HEADER, *ROWS])

    result = BatchSplitter.split(data, max_rows_per_chunk=3, preserve_headers=False)

    assert [chunk.row_count for chunk in result.chunks] == [3, 2]
    assert HEADER not in result.chunks[0].data


def test_data_rows_mentioning_email_are_not_headers():
    assert looks_like_header("Rep ID\tStreet Address\tInstallation Date")
    assert not looks_like_header("Jane Doe, email jane@example.com")


def test_should_split_and_chunk_info():
    small = "\n".join(ROWS)
    many_rows = "\n".join(ROWS * 30)

    assert not BatchSplitter.should_split(small)
    assert BatchSplitter.should_split(many_rows)

    info = BatchSplitter.chunk_info(many_rows)
    assert info.should_split
    assert info.estimated_chunks == 2
    assert "Row count (150) exceeds limit (100)." in info.reason
    assert BatchSplitter.chunk_info(small).reason == "Data is within limits"
