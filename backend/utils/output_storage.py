"""
Output storage for cropped images.

Cropped files are written flat under one output directory and served
back by name, so every lookup is checked against path traversal.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Union

from backend.errors import InvalidParameterError, OutputNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class StoredOutput:
    """A stored output file as listed in history."""

    filename: str
    size: int
    created: str
    download_url: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class OutputStorage:
    """Save, resolve and list cropped output files."""

    def __init__(self, base_dir: Union[str, Path], download_prefix: str = "/api/download"):
        """
        Initialize output storage.

        Args:
            base_dir: Directory for output files (created if missing)
            download_prefix: URL prefix used to build download links
        """
        self.base_dir = Path(base_dir)
        self.download_prefix = download_prefix.rstrip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"OutputStorage initialized with path: {self.base_dir}")

    def download_url(self, filename: str) -> str:
        return f"{self.download_prefix}/{filename}"

    def save(self, filename: str, data: bytes) -> Path:
        """
        Write an output file.

        Raises:
            InvalidParameterError: If filename is not a plain file name
        """
        path = self._safe_path(filename)
        path.write_bytes(data)
        logger.info(f"Stored output {filename} ({len(data)} bytes)")
        return path

    def resolve(self, filename: str) -> Path:
        """
        Path of an existing output file.

        Raises:
            InvalidParameterError: If filename tries to leave the output directory
            OutputNotFoundError: If no such file exists
        """
        path = self._safe_path(filename)
        if not path.is_file():
            raise OutputNotFoundError(f"File not found: {filename}")
        return path

    def history(self) -> List[StoredOutput]:
        """All stored outputs, newest first."""
        entries = []
        for path in self.base_dir.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            stat = path.stat()
            entries.append(
                (
                    stat.st_mtime,
                    StoredOutput(
                        filename=path.name,
                        size=stat.st_size,
                        created=datetime.fromtimestamp(stat.st_mtime, timezone.utc).isoformat(),
                        download_url=self.download_url(path.name),
                    ),
                )
            )
        entries.sort(key=lambda entry: entry[0], reverse=True)
        return [output for _, output in entries]

    def _safe_path(self, filename: str) -> Path:
        if (
            not filename
            or filename in (".", "..")
            or "/" in filename
            or "\\" in filename
            or "\x00" in filename
        ):
            raise InvalidParameterError(f"Invalid file name: {filename!r}")

        path = (self.base_dir / filename).resolve()
        if path.parent != self.base_dir.resolve():
            raise InvalidParameterError(f"Invalid file name: {filename!r}")
        return path
