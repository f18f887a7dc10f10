"""Splitting long audio into overlapping chunks and merging their transcriptions."""

from __future__ import annotations

import logging
import string
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)

MAX_OVERLAP_WORDS = 10


def _ascii_fold(word: str) -> str:
    """Lower-case ASCII letters only, leaving other characters untouched."""
    return word.translate(_ASCII_LOWER)


@dataclass
class ChunkConfig:
    """Chunking parameters: chunk length, overlap and sample rate."""

    max_chunk_seconds: int = 30
    overlap_seconds: int = 2
    sample_rate: int = 16000

    def max_chunk_samples(self) -> int:
        """Maximum number of samples in one chunk."""
        return self.max_chunk_seconds * self.sample_rate

    def overlap_samples(self) -> int:
        """Number of samples shared by consecutive chunks."""
        return self.overlap_seconds * self.sample_rate

    def needs_chunking(self, samples: Sequence[int]) -> bool:
        """Whether the audio is longer than a single chunk."""
        return len(samples) > self.max_chunk_samples()


def audio_chunks(
    samples: Sequence[int], config: ChunkConfig
) -> Iterator[tuple[int, Sequence[int]]]:
    """Yield ``(chunk_number, chunk)`` pairs of overlapping chunks."""
    max_samples = config.max_chunk_samples()
    step = max_samples - config.overlap_samples()
    if step <= 0:
        raise ValueError("overlap must be shorter than the chunk length")

    def _generate() -> Iterator[tuple[int, Sequence[int]]]:
        for chunk_num, offset in enumerate(range(0, len(samples), step)):
            yield chunk_num, samples[offset : offset + max_samples]

    return _generate()


def merge_two_chunks(first: str, second: str) -> str:
    """Join two adjacent transcriptions, dropping words repeated at the seam."""
    first_words = first.split()
    second_words = second.split()

    if not first_words:
        return second
    if not second_words:
        return first

    max_overlap = min(MAX_OVERLAP_WORDS, len(first_words), len(second_words))
    best_overlap = 0
    for overlap_len in range(1, max_overlap + 1):
        tail = first_words[-overlap_len:]
        head = second_words[:overlap_len]
        if all(_ascii_fold(a) == _ascii_fold(b) for a, b in zip(tail, head)):
            best_overlap = overlap_len

    if best_overlap == 0:
        return f"{first} {second}"

    logger.debug("merge_two_chunks: found %d word overlap", best_overlap)
    new_words = second_words[best_overlap:]
    if new_words:
        return f"{first} {' '.join(new_words)}"
    return first


def merge_chunks(chunks: Sequence[str]) -> str:
    """Merge a sequence of chunk transcriptions into one text."""
    if not chunks:
        return ""
    result = chunks[0]
    for index, chunk in enumerate(chunks[1:], start=1):
        result = merge_two_chunks(result, chunk)
        logger.debug("merge_chunks: merged chunk %d -> %d chars", index, len(result))
    return result


def transcribe_chunked(
    samples: Sequence[int],
    config: ChunkConfig,
    transcribe_fn: Callable[[Sequence[int]], str],
) -> str:
    """Transcribe audio, splitting it into chunks when it is too long.

    Short audio goes to ``transcribe_fn`` in one pass and its errors
    propagate. For long audio, a chunk whose transcription fails is
    skipped and the remaining results are merged.
    """
    if not config.needs_chunking(samples):
        logger.debug("transcribe_chunked: short audio, single pass")
        return transcribe_fn(samples)

    logger.info(
        "transcribe_chunked: chunking %.1fs audio into ~%ds segments",
        len(samples) / config.sample_rate,
        config.max_chunk_seconds,
    )

    results: list[str] = []
    step_seconds = config.max_chunk_seconds - config.overlap_seconds
    for chunk_num, chunk in audio_chunks(samples, config):
        chunk_start = chunk_num * step_seconds
        chunk_end = chunk_start + len(chunk) / config.sample_rate
        logger.debug(
            "transcribe_chunked: chunk %d (%.1fs - %.1fs, %d samples)",
            chunk_num,
            chunk_start,
            chunk_end,
            len(chunk),
        )
        try:
            text = transcribe_fn(chunk)
        except Exception as exc:  # a failed chunk must not lose the others
            logger.debug("transcribe_chunked: chunk %d error: %s", chunk_num, exc)
            continue
        if text:
            logger.debug("transcribe_chunked: chunk %d -> %r", chunk_num, text)
            results.append(text)

    merged = merge_chunks(results)
    logger.info(
        "transcribe_chunked: merged %d chunks into %d chars", len(results), len(merged)
    )
    return merged