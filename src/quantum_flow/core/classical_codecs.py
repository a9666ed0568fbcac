"""
Classical byte codecs behind the graceful-degradation strategies.

Each strategy name maps to an encoder and a decoder; every decoder inverts
its encoder exactly.
"""

import json
import struct
import zlib
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from ..exceptions import DeserializationError

MAX_RUN = 255
CHUNK_SIZE = 64 * 1024
HYBRID_HEAD_LIMIT = 1024

_LENGTH = struct.Struct(">I")


def rle_encode(data: bytes) -> bytes:
    """Run-length encode as ``(count, byte)`` pairs with ``count <= 255``."""
    if not data:
        return b""
    values = np.frombuffer(bytes(data), dtype=np.uint8)
    starts = np.concatenate(([0], np.flatnonzero(values[1:] != values[:-1]) + 1))
    lengths = np.diff(np.concatenate((starts, [values.size])))

    # Split runs longer than MAX_RUN into full runs plus a remainder.
    full, rest = np.divmod(lengths, MAX_RUN)
    repeats = full + (rest > 0)
    run_values = np.repeat(values[starts], repeats)
    counts = np.full(run_values.size, MAX_RUN, dtype=np.uint8)
    last = np.cumsum(repeats) - 1
    counts[last[rest > 0]] = rest[rest > 0]

    pairs = np.empty(run_values.size * 2, dtype=np.uint8)
    pairs[0::2] = counts
    pairs[1::2] = run_values
    return pairs.tobytes()


def rle_decode(data: bytes) -> bytes:
    if len(data) % 2:
        raise DeserializationError("Run-length payload has odd length")
    pairs = np.frombuffer(bytes(data), dtype=np.uint8)
    return np.repeat(pairs[1::2], pairs[0::2]).tobytes()


def chunked_encode(data: bytes, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Run-length encode fixed-size chunks, each prefixed with its encoded length."""
    parts = []
    for i in range(0, len(data), chunk_size):
        encoded = rle_encode(data[i:i + chunk_size])
        parts.append(_LENGTH.pack(len(encoded)))
        parts.append(encoded)
    return b"".join(parts)


def chunked_decode(data: bytes) -> bytes:
    out = []
    offset = 0
    while offset < len(data):
        if offset + _LENGTH.size > len(data):
            raise DeserializationError("Truncated chunk header")
        (size,) = _LENGTH.unpack_from(data, offset)
        offset += _LENGTH.size
        if offset + size > len(data):
            raise DeserializationError("Truncated chunk payload")
        out.append(rle_decode(data[offset:offset + size]))
        offset += size
    return b"".join(out)


def hybrid_encode(data: bytes) -> bytes:
    """Run-length encode the head (at most 1 KiB or 10 %) and deflate the rest."""
    head_size = min(HYBRID_HEAD_LIMIT, len(data) // 10)
    head = rle_encode(data[:head_size])
    return _LENGTH.pack(len(head)) + head + zlib.compress(bytes(data[head_size:]), 9)


def hybrid_decode(data: bytes) -> bytes:
    (size,) = _read_length(data)
    head = rle_decode(data[_LENGTH.size:_LENGTH.size + size])
    return head + _inflate(data[_LENGTH.size + size:])


def metadata_encode(data: bytes, metadata: Optional[Dict[str, Any]] = None) -> bytes:
    """Deflate the payload behind a length-prefixed JSON metadata block."""
    block = json.dumps(metadata or {}, sort_keys=True).encode("utf-8")
    return _LENGTH.pack(len(block)) + block + zlib.compress(bytes(data), 6)


def metadata_decode(data: bytes) -> bytes:
    return split_metadata(data)[1]


def split_metadata(data: bytes) -> Tuple[Dict[str, Any], bytes]:
    (size,) = _read_length(data)
    block = data[_LENGTH.size:_LENGTH.size + size]
    try:
        metadata = json.loads(block.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DeserializationError(f"Invalid metadata block: {e}") from e
    return metadata, _inflate(data[_LENGTH.size + size:])


def fast_encode(data: bytes) -> bytes:
    return zlib.compress(bytes(data), 1)


def _read_length(data: bytes) -> Tuple[int]:
    if len(data) < _LENGTH.size:
        raise DeserializationError("Payload too short for length header")
    return _LENGTH.unpack_from(data, 0)


def _inflate(data: bytes) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error as e:
        raise DeserializationError(f"Corrupted deflate stream: {e}") from e


CODECS: Dict[str, Tuple[Callable[..., bytes], Callable[[bytes], bytes]]] = {
    "simple-classical": (rle_encode, rle_decode),
    "chunked-classical": (chunked_encode, chunked_decode),
    "hybrid-compression": (hybrid_encode, hybrid_decode),
    "classical-with-quantum-metadata": (metadata_encode, metadata_decode),
    "fast-classical": (fast_encode, _inflate),
}


def encode(strategy: str, data: bytes, **kwargs) -> bytes:
    try:
        encoder = CODECS[strategy][0]
    except KeyError:
        raise DeserializationError(f"Unknown fallback strategy '{strategy}'") from None
    return encoder(data, **kwargs)


def decode(strategy: str, data: bytes) -> bytes:
    try:
        decoder = CODECS[strategy][1]
    except KeyError:
        raise DeserializationError(f"Unknown fallback strategy '{strategy}'") from None
    return decoder(data)
