"""
Splitting and reassembly of payloads that exceed the upload size limit.

Segments carry no index of their own: the order of the list returned by
split() is the only thing that allows merge() to rebuild the payload.
"""
import os

DEFAULT_CHUNK_SIZE = 19 * 1024 * 1024  # Below the 20MB bot API download limit


def _check_chunk_size(chunk_size):
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
        raise ValueError(f"chunk_size must be a positive integer, got {chunk_size!r}")


def needs_chunking(data: bytes, chunk_size: int) -> bool:
    """A payload of exactly chunk_size bytes still goes up as one segment."""
    _check_chunk_size(chunk_size)
    return len(data) > chunk_size


def split(data: bytes, chunk_size: int) -> list:
    """
    Partitions data into consecutive slices of chunk_size bytes.
    The last slice holds the remainder and is never empty.
    """
    _check_chunk_size(chunk_size)
    return [data[offset:offset + chunk_size] for offset in range(0, len(data), chunk_size)]


def merge(segments) -> bytes:
    """Concatenates segments in the given order. They must already be decrypted."""
    return b"".join(segments)


def segment_name(file_name: str, index: int, total: int) -> str:
    """
    Display name for the upload of one segment, e.g. "report.pdf.part002of005".
    index is zero-based.
    """
    width = max(3, len(str(total)))
    base = os.path.basename(file_name) or "file"
    return f"{base}.part{index + 1:0{width}d}of{total:0{width}d}"
