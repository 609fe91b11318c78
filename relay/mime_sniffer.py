"""Content-type detection from a file's leading bytes."""

import codecs
import mimetypes
from typing import BinaryIO, Optional

import magic

from common.constants import DEFAULT_MIME_TYPE, SNIFF_LENGTH_BYTES

TEXT_MIME_TYPE = "text/plain; charset=utf-8"

# bytes that never occur in plain text (NUL and C0 controls other than whitespace and ESC)
BINARY_BYTES = frozenset(range(0x00, 0x09)) | {0x0B, 0x0E, 0x0F} | frozenset(range(0x10, 0x1B)) | frozenset(range(0x1C, 0x20))

# answers libmagic gives when it recognises nothing specific
GENERIC_MIME_TYPES = {DEFAULT_MIME_TYPE, "application/x-empty", "inode/x-empty", "application/data"}


def looks_like_text(header: bytes) -> bool:
    if any(byte in BINARY_BYTES for byte in header):
        return False
    try:
        # final=False tolerates a multi-byte sequence cut off at the header boundary
        codecs.getincrementaldecoder("utf-8")().decode(header, final=False)
    except UnicodeDecodeError:
        return False
    return True


def detect_content_type(header: bytes, name: Optional[str] = None) -> str:
    """
    Detect a MIME type from at most the first 512 bytes of a file.

    libmagic signatures win; plain text that decodes as UTF-8 is reported
    with its charset, and the file name's extension is consulted last.

    Args:
        header: Leading bytes of the file (may be empty)
        name: Optional file name used as a fallback hint

    Returns:
        MIME type string, application/octet-stream when nothing matches
    """
    header = header[:SNIFF_LENGTH_BYTES]
    if not header:
        return DEFAULT_MIME_TYPE

    detected = magic.from_buffer(header, mime=True)

    if detected == "text/plain":
        return TEXT_MIME_TYPE if looks_like_text(header) else detected

    if detected and detected not in GENERIC_MIME_TYPES:
        return detected

    if looks_like_text(header):
        return TEXT_MIME_TYPE

    if name:
        guessed, _ = mimetypes.guess_type(name)
        if guessed:
            return guessed

    return DEFAULT_MIME_TYPE


def sniff_stream(stream: BinaryIO, name: Optional[str] = None) -> str:
    """
    Detect the content type of a seekable stream and rewind it.

    Raises:
        OSError: If the stream cannot be read or rewound
    """
    start = stream.tell()
    header = stream.read(SNIFF_LENGTH_BYTES)
    stream.seek(start)
    return detect_content_type(header, name)
