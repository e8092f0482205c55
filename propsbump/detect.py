"""Formatting and file-kind detection for MSBuild files."""

import os

CENTRAL_MANIFEST = "Directory.Packages.props"


def detect_newline(content: bytes) -> str:
    """Detect the newline sequence used by a file.

    The first line terminator found decides: ``\\r\\n``, a bare ``\\r`` or ``\\n``.

    Args:
        content: Raw file content

    Returns:
        The newline sequence, or the platform default when the file has no line breaks
    """
    for index, byte in enumerate(content):
        if byte == 0x0D:
            if content[index + 1 : index + 2] == b"\n":
                return "\r\n"
            return "\r"
        if byte == 0x0A:
            return "\n"

    return os.linesep


def has_trailing_newline(content: bytes) -> bool:
    """Check whether a file ends with a line terminator."""
    return content.endswith((b"\n", b"\r"))


def is_central_manifest(filename: str) -> bool:
    """Check whether a file name is a central package manifest."""
    return os.path.basename(filename).lower() == CENTRAL_MANIFEST.lower()
