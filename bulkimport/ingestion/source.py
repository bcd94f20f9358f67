"""
Filesystem document discovery for the bulk import pipeline.

Walks a root folder and yields opaque documents, either one per matching
file or one per non-blank line of each matching file.
"""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from bulkimport.models import Document

logger = logging.getLogger("bulk_import.source")

MATCH_ALL = "*"
DEFAULT_FILE_EXT = "json"


def _raise_walk_error(error: OSError) -> None:
    raise error


def matches_extension(path: Path, file_ext: str | None) -> bool:
    """
    Check a file name against the extension filter.

    ``None`` or ``"*"`` match every file. A filter without a leading dot is
    compared as ``"." + file_ext``; one with a leading dot is compared as is.
    """
    if file_ext is None or file_ext == MATCH_ALL:
        return True
    suffix = file_ext if file_ext.startswith(".") else f".{file_ext}"
    return path.name.endswith(suffix)


class DocumentSource:
    """
    Lazy, finite sequence of documents discovered under a root folder.

    Listing and read errors are not caught: they abort the run.
    """

    def __init__(
        self,
        root: Path,
        file_ext: str | None = DEFAULT_FILE_EXT,
        line_by_line: bool = False,
    ):
        """
        Initialize the source.

        Args:
            root: Folder to walk recursively
            file_ext: Literal suffix to match, or "*" / None for all files
            line_by_line: Emit one document per non-blank line instead of per file
        """
        self.root = Path(root)
        self.file_ext = file_ext
        self.line_by_line = line_by_line

    @property
    def mode(self) -> str:
        return "line-by-line" if self.line_by_line else "whole-file"

    @property
    def pattern(self) -> str:
        """Glob-style description of the extension filter, e.g. "*.json"."""
        if self.file_ext is None or self.file_ext == MATCH_ALL:
            return MATCH_ALL
        suffix = self.file_ext if self.file_ext.startswith(".") else f".{self.file_ext}"
        return f"*{suffix}"

    def iter_files(self) -> Iterator[Path]:
        """
        Yield matching files under the root.

        Raises:
            OSError: If the root or any subfolder cannot be listed
        """
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_raise_walk_error):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if matches_extension(path, self.file_ext):
                    yield path

    def stream(self) -> Iterator[Document]:
        """
        Yield documents for every matching file.

        Raises:
            OSError: If listing or reading fails
            UnicodeDecodeError: If a file is not UTF-8 in line-by-line mode
        """
        logger.info(f"Importing {self.pattern} files from {self.root.resolve()} ({self.mode})")

        for path in self.iter_files():
            logger.debug(f"Import {path} as {self.mode}")
            if self.line_by_line:
                yield from self._read_lines(path)
            else:
                yield Document(payload=path.read_bytes(), source_path=path)

    def __iter__(self) -> Iterator[Document]:
        return self.stream()

    def _read_lines(self, path: Path) -> Iterator[Document]:
        line_index = 0
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                text = line.strip()
                if not text:
                    continue
                yield Document(
                    payload=text.encode("utf-8"),
                    source_path=path,
                    line_index=line_index,
                )
                line_index += 1
