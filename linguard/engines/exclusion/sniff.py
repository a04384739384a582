"""Content sniffing by magic-byte signatures.

Only the first :data:`SNIFF_LEN` bytes are inspected. The signature set and the
binary-byte rule follow the WHATWG MIME sniffing algorithm closely enough to
tell media, archives and documents apart from text.
"""

from __future__ import annotations

SNIFF_LEN = 512

TEXT_PLAIN = "text/plain; charset=utf-8"
OCTET_STREAM = "application/octet-stream"

# Exact prefixes, checked in order.
MAGIC_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", TEXT_PLAIN),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"BM", "image/bmp"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"ID3", "audio/mpeg"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"OTTO", "font/otf"),
    (b"\x00\x01\x00\x00", "font/ttf"),
)

# RIFF/FORM containers carry their subtype at offset 8.
_CONTAINER_SIGNATURES: tuple[tuple[bytes, bytes, str], ...] = (
    (b"RIFF", b"WEBPVP", "image/webp"),
    (b"RIFF", b"AVI ", "video/avi"),
    (b"RIFF", b"WAVE", "audio/wave"),
    (b"FORM", b"AIFF", "audio/aiff"),
)

_BINARY_BYTES = frozenset([*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)])

_BINARY_CONTAINER_TYPES = frozenset(
    {
        OCTET_STREAM,
        "application/pdf",
        "application/ogg",
        "application/x-rar-compressed",
        "application/zip",
        "application/x-gzip",
    }
)


def _is_mp4(data: bytes) -> bool:
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if box_size % 4 != 0 or len(data) < box_size:
        return False
    if data[4:8] != b"ftyp":
        return False
    for offset in range(8, box_size, 4):
        if offset == 12:
            # Minor version, not a brand.
            continue
        if data[offset : offset + 3] == b"mp4":
            return True
    return False


def sniff_content_type(body: bytes) -> str:
    """Return a best-effort MIME type for *body*."""
    data = body[:SNIFF_LEN]
    if not data:
        return TEXT_PLAIN
    for signature, mime in MAGIC_SIGNATURES:
        if data.startswith(signature):
            return mime
    for head, subtype, mime in _CONTAINER_SIGNATURES:
        if data.startswith(head) and data[8 : 8 + len(subtype)] == subtype:
            return mime
    if _is_mp4(data):
        return "video/mp4"
    if any(byte in _BINARY_BYTES for byte in data):
        return OCTET_STREAM
    return TEXT_PLAIN


def is_likely_binary(body: bytes) -> bool:
    """True for image/video content and the known binary container types."""
    content_type = sniff_content_type(body)
    if content_type.startswith(("image/", "video/")):
        return True
    return content_type in _BINARY_CONTAINER_TYPES
