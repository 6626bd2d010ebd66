"""Content fingerprinting for build output directories.

The fingerprint depends only on the relative paths and bytes of the regular
files under a directory. Traversal order, timestamps and permissions do not
affect it, so two byte-identical builds on different branches map to the
same preview version.
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Union

from preview_publisher.config import DEFAULT_HASH_LENGTH
from preview_publisher.errors import ValidationError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024
_MAX_HASH_LENGTH = hashlib.sha256().digest_size * 2


def _raise_walk_error(error: OSError) -> None:
    raise error


def list_files(root_dir: Union[str, Path]) -> list[str]:
    """List regular files under a directory as sorted POSIX relative paths.

    Symlinks to regular files are included; symlinked directories are not
    descended and dangling symlinks are ignored.

    Args:
        root_dir: Directory to enumerate.

    Returns:
        Relative paths using "/" separators, sorted by their filesystem bytes.

    Raises:
        FileNotFoundError: If root_dir does not exist.
        NotADirectoryError: If root_dir is not a directory.
        OSError: If a directory cannot be listed during the walk.
    """
    root = Path(root_dir)
    if not root.exists():
        raise FileNotFoundError(f"Directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    files: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(
        root, onerror=_raise_walk_error, followlinks=False
    ):
        for filename in filenames:
            full_path = Path(dirpath, filename)
            if not full_path.is_file():
                logger.debug("Skipping non-regular file %s", full_path)
                continue
            files.append(full_path.relative_to(root).as_posix())

    files.sort(key=os.fsencode)
    return files


def fingerprint(
    root_dir: Union[str, Path],
    length: int = DEFAULT_HASH_LENGTH,
) -> str:
    """Compute the content fingerprint of a directory tree.

    Each file contributes its relative path, as filesystem bytes, followed by
    its raw bytes to a single SHA-256 stream, in sorted path order. Names that
    are not valid UTF-8 hash as the bytes stored on disk.

    Args:
        root_dir: Directory to fingerprint.
        length: Number of hex characters to keep (1-64).

    Returns:
        Lowercase hex digest prefix of the given length.

    Raises:
        ValidationError: If length is out of range.
        OSError: If root_dir is missing, is not a directory, or a file
            cannot be read.
    """
    if not 1 <= length <= _MAX_HASH_LENGTH:
        raise ValidationError(
            f"Hash length must be between 1 and {_MAX_HASH_LENGTH}, got {length}"
        )

    root = Path(root_dir)
    digest = hashlib.sha256()
    files = list_files(root)

    for relative_path in files:
        digest.update(os.fsencode(relative_path))
        with open(root / relative_path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)

    result = digest.hexdigest()[:length]
    logger.debug("Fingerprinted %d files under %s: %s", len(files), root, result)
    return result
