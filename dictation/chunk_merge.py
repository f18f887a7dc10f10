"""Silence-aware chunk boundaries and timestamp-based merging of chunk transcripts."""

from __future__ import annotations

import logging
import string
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from dictation.chunking import ChunkConfig

logger = logging.getLogger(__name__)

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)
_STANDALONE_PUNCTUATION = frozenset(".,!?;:")


def _ascii_fold(word: str) -> str:
    return word.translate(_ASCII_LOWER)


@dataclass(frozen=True)
class TimedToken:
    """A transcribed word with its start and end time in seconds."""

    text: str
    start: float
    end: float


@dataclass
class TimestampedChunkResult:
    """Transcription of one chunk with word-level timestamps."""

    text: str
    words: list[TimedToken] = field(default_factory=list)


def find_silence_boundary(
    samples: Sequence[int], target_pos: int, search_window: int, frame_size: int
) -> int:
    """Return the start of the quietest frame within the window around ``target_pos``."""
    if frame_size <= 0:
        raise ValueError("frame_size must be positive")

    search_start = max(0, target_pos - search_window // 2)
    search_end = min(target_pos + search_window // 2, len(samples))

    if search_start >= search_end or search_end - search_start < frame_size:
        return min(target_pos, len(samples))

    best_pos = target_pos
    best_energy = float("inf")
    for pos in range(search_start, search_end - frame_size + 1, frame_size):
        frame = samples[pos : pos + frame_size]
        energy = sum(float(s) * float(s) for s in frame) / frame_size
        if energy < best_energy:
            best_energy = energy
            best_pos = pos

    logger.debug(
        "find_silence_boundary: target=%d, best=%d, energy=%.1f",
        target_pos,
        best_pos,
        best_energy,
    )
    return best_pos


def chunk_boundaries_vad(
    samples: Sequence[int], config: ChunkConfig
) -> list[tuple[int, int]]:
    """Split audio into ``(start, end)`` ranges, preferring quiet points as ends."""
    total = len(samples)
    max_samples = config.max_chunk_samples()
    overlap = config.overlap_samples()
    search_window = config.sample_rate
    frame_size = config.sample_rate // 40

    boundaries: list[tuple[int, int]] = []
    offset = 0
    while offset < total:
        ideal_end = min(offset + max_samples, total)
        if ideal_end >= total or total - ideal_end < config.sample_rate:
            chunk_end = total
        else:
            chunk_end = find_silence_boundary(samples, ideal_end, search_window, frame_size)

        boundaries.append((offset, chunk_end))
        if chunk_end >= total:
            break

        next_offset = max(0, chunk_end - overlap)
        # Never step backwards, which would otherwise repeat the same range forever.
        offset = next_offset if next_offset > offset else chunk_end

    return boundaries


def _join_words(words: Sequence[TimedToken]) -> str:
    parts: list[str] = []
    for index, word in enumerate(words):
        is_punct = len(word.text) == 1 and word.text in _STANDALONE_PUNCTUATION
        if index > 0 and not is_punct:
            parts.append(" ")
        parts.append(word.text)
    return "".join(parts)


def merge_chunks_timestamped(
    chunks: Sequence[TimestampedChunkResult], overlap_seconds: float
) -> str:
    """Merge chunk transcripts by word time, dropping words repeated in overlaps."""
    if not chunks:
        return ""
    if len(chunks) == 1:
        return chunks[0].text

    all_words: list[TimedToken] = list(chunks[0].words)

    for chunk in chunks[1:]:
        if not chunk.words:
            continue
        prev_end_time = all_words[-1].end if all_words else 0.0
        overlap_cutoff = prev_end_time - overlap_seconds

        for word in chunk.words:
            if word.start < overlap_cutoff:
                continue
            if all_words:
                last = all_words[-1]
                if (
                    _ascii_fold(last.text) == _ascii_fold(word.text)
                    and abs(word.start - last.start) < overlap_seconds
                ):
                    continue
            all_words.append(word)

    return _join_words(all_words)


def transcribe_chunked_with_timestamps(
    samples: Sequence[int],
    config: ChunkConfig,
    transcribe_fn: Callable[[Sequence[int]], TimestampedChunkResult],
) -> str:
    """Transcribe audio in silence-aligned chunks and merge them by word timestamps.

    A chunk whose transcription raises is skipped.
    """
    logger.info(
        "transcribe_chunked_with_timestamps: chunking %.1fs audio into ~%ds segments",
        len(samples) / config.sample_rate,
        config.max_chunk_seconds,
    )

    results: list[TimestampedChunkResult] = []
    for chunk_num, (start, end) in enumerate(chunk_boundaries_vad(samples, config)):
        chunk = samples[start:end]
        chunk_start_sec = start / config.sample_rate
        logger.debug(
            "transcribe_chunked_ts: chunk %d (%.1fs - %.1fs, %d samples)",
            chunk_num,
            chunk_start_sec,
            end / config.sample_rate,
            len(chunk),
        )
        try:
            result = transcribe_fn(chunk)
        except Exception as exc:  # a failed chunk must not lose the others
            logger.debug("transcribe_chunked_ts: chunk %d error: %s", chunk_num, exc)
            continue

        shifted = TimestampedChunkResult(
            text=result.text,
            words=[
                replace(w, start=w.start + chunk_start_sec, end=w.end + chunk_start_sec)
                for w in result.words
            ],
        )
        if shifted.text:
            logger.debug(
                "transcribe_chunked_ts: chunk %d -> %r (%d words)",
                chunk_num,
                shifted.text,
                len(shifted.words),
            )
            results.append(shifted)

    merged = merge_chunks_timestamped(results, float(config.overlap_seconds))
    logger.info(
        "transcribe_chunked_with_timestamps: merged %d chunks into %d chars",
        len(results),
        len(merged),
    )
    return merged