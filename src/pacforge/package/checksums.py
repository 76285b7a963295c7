"""Checksum helpers: MD5 and SHA-256 computed in a single read pass."""

from __future__ import annotations

import hashlib

from .streams import COPY_CHUNK_SIZE, ContentSource, bytes_source, iter_chunks
from .types import ContentDigest


def compute_digests(open_stream: ContentSource, *, chunk_size: int = COPY_CHUNK_SIZE) -> ContentDigest:
    """Stream content once through both hashes and return hex digests.

    Read errors propagate; no partial result is returned.
    """
    md5 = hashlib.md5(usedforsecurity=False)
    sha256 = hashlib.sha256()

    with open_stream() as f:
        for chunk in iter_chunks(f, chunk_size=chunk_size):
            md5.update(chunk)
            sha256.update(chunk)

    return ContentDigest(md5=md5.hexdigest(), sha256=sha256.hexdigest())


def digest_bytes(data: bytes) -> ContentDigest:
    return compute_digests(bytes_source(data))
