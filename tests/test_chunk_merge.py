import pytest

from dictation.chunk_merge import (
    TimedToken,
    TimestampedChunkResult,
    chunk_boundaries_vad,
    find_silence_boundary,
    merge_chunks_timestamped,
    transcribe_chunked_with_timestamps,
)
from dictation.chunking import ChunkConfig


def test_merge_timestamped_single_chunk():
    chunks = [
        TimestampedChunkResult(
            text="Hello world.",
            words=[
                TimedToken("Hello", 0.0, 0.5),
                TimedToken("world", 0.5, 1.0),
                TimedToken(".", 1.0, 1.1),
            ],
        )
    ]
    assert merge_chunks_timestamped(chunks, 2.0) == "Hello world."


def test_merge_timestamped_overlap_dedup():
    chunks = [
        TimestampedChunkResult(
            text="Hello world foo",
            words=[
                TimedToken("Hello", 0.0, 0.5),
                TimedToken("world", 0.5, 1.0),
                TimedToken("foo", 1.0, 1.5),
            ],
        ),
        TimestampedChunkResult(
            text="foo bar baz",
            words=[
                TimedToken("foo", 1.0, 1.5),
                TimedToken("bar", 1.5, 2.0),
                TimedToken("baz", 2.0, 2.5),
            ],
        ),
    ]
    assert merge_chunks_timestamped(chunks, 2.0) == "Hello world foo bar baz"


def test_merge_timestamped_no_overlap():
    chunks = [
        TimestampedChunkResult("Hello", [TimedToken("Hello", 0.0, 0.5)]),
        TimestampedChunkResult("world", [TimedToken("world", 2.0, 2.5)]),
    ]
    assert merge_chunks_timestamped(chunks, 0.0) == "Hello world"


def test_merge_timestamped_empty():
    assert merge_chunks_timestamped([], 2.0) == ""


def test_merge_timestamped_punctuation_attaches():
    chunks = [
        TimestampedChunkResult("Hi", [TimedToken("Hi", 0.0, 0.5)]),
        TimestampedChunkResult(
            "there.", [TimedToken("there", 3.0, 3.5), TimedToken(".", 3.5, 3.6)]
        ),
    ]
    assert merge_chunks_timestamped(chunks, 0.0) == "Hi there."


def test_find_silence_boundary_prefers_quiet():
    samples = [10000] * 16000
    samples[8000:8400] = [0] * 400
    boundary = find_silence_boundary(samples, 8000, 1600, 400)
    assert abs(boundary - 8000) < 800


def test_find_silence_boundary_edge_cases():
    samples = [0] * 100
    assert find_silence_boundary(samples, 200, 100, 10) == 100
    assert find_silence_boundary([], 0, 100, 10) == 0


def test_find_silence_boundary_rejects_zero_frame():
    with pytest.raises(ValueError):
        find_silence_boundary([0] * 100, 50, 20, 0)


def test_chunk_boundaries_vad_short_audio():
    config = ChunkConfig(30, 2, 16000)
    boundaries = chunk_boundaries_vad([0] * 16000, config)
    assert boundaries == [(0, 16000)]


def test_chunk_boundaries_vad_long_audio():
    config = ChunkConfig(1, 0, 16000)
    boundaries = chunk_boundaries_vad([0] * 48000, config)
    assert len(boundaries) >= 2
    assert boundaries[-1][1] == 48000
    assert boundaries[0][0] == 0


def test_chunk_boundaries_vad_are_contiguous_without_overlap():
    config = ChunkConfig(1, 0, 16000)
    boundaries = chunk_boundaries_vad([0] * 48000, config)
    for (_, end), (next_start, _) in zip(boundaries, boundaries[1:]):
        assert next_start == end


def test_chunk_boundaries_vad_empty():
    assert chunk_boundaries_vad([], ChunkConfig()) == []


def test_transcribe_with_timestamps_short_passthrough():
    config = ChunkConfig(30, 2, 16000)
    seen = []

    def transcribe(chunk):
        seen.append(len(chunk))
        return TimestampedChunkResult(
            "short audio",
            [TimedToken("short", 0.0, 0.3), TimedToken("audio", 0.3, 0.6)],
        )

    result = transcribe_chunked_with_timestamps([0] * 16000, config, transcribe)
    assert result == "short audio"
    assert seen == [16000]


def test_transcribe_with_timestamps_merges_chunks():
    config = ChunkConfig(1, 0, 16000)
    names = iter(["a", "b", "c", "d", "e", "f"])

    def transcribe(chunk):
        name = next(names)
        return TimestampedChunkResult(name, [TimedToken(name, 0.0, 0.1)])

    samples = [0] * 48000
    expected_count = len(chunk_boundaries_vad(samples, config))
    result = transcribe_chunked_with_timestamps(samples, config, transcribe)
    assert result.split() == ["a", "b", "c", "d", "e", "f"][:expected_count]


def test_transcribe_with_timestamps_skips_failed_chunk():
    config = ChunkConfig(1, 0, 16000)
    calls = []

    def transcribe(chunk):
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        word = f"w{len(calls)}"
        return TimestampedChunkResult(word, [TimedToken(word, 0.0, 0.1)])

    result = transcribe_chunked_with_timestamps([0] * 48000, config, transcribe)
    assert "w1" not in result
    assert result.startswith("w2")