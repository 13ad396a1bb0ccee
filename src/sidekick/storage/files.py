"""Local file storage for captured photos, FNOL documents and LiDAR scans.

Files are written before the matching upload is queued, so a capture is
never lost while the device is offline.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _safe_name(value: str) -> str:
    """Turn a claim number into a single file name component.

    Path separators and other unsafe characters become underscores, and a
    leading dot is escaped so the result can never be '.' or '..'.
    """
    name = _UNSAFE_NAME_CHARS.sub("_", value)
    if name.startswith("."):
        name = "_" + name
    return name or "_"


@dataclass
class StorageUsage:
    """Bytes used per capture category."""

    photos: int = 0
    fnols: int = 0
    lidar_scans: int = 0

    @property
    def total(self) -> int:
        return self.photos + self.fnols + self.lidar_scans

    @staticmethod
    def format_size(num_bytes: int) -> str:
        """Format a byte count for display (e.g. '1.5 MB')."""
        size = float(num_bytes)
        for unit in ("bytes", "KB", "MB", "GB"):
            if size < 1000 or unit == "GB":
                if unit == "bytes":
                    return f"{int(size)} bytes"
                return f"{size:.1f} {unit}"
            size /= 1000
        return f"{size:.1f} GB"


class CaptureFileStore:
    """File storage with one directory per capture category.

    Layout:
        {base_path}/photos/{claim_number}_{uuid}.jpg
        {base_path}/fnol/{filename}
        {base_path}/lidar/{claim_number}_{uuid}.lidar

    Claim numbers are reduced to a single safe file name component.
    """

    def __init__(self, base_path: Path) -> None:
        """Initialize the store and create its directories.

        Args:
            base_path: Root directory for capture files
        """
        self.base_path = Path(base_path)
        self.photos_dir = self.base_path / "photos"
        self.fnol_dir = self.base_path / "fnol"
        self.lidar_dir = self.base_path / "lidar"

        for directory in (self.photos_dir, self.fnol_dir, self.lidar_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def save_photo(self, claim_number: str, data: bytes) -> Path:
        """Save JPEG bytes for a claim and return the file path."""
        filepath = self.photos_dir / f"{_safe_name(claim_number)}_{uuid.uuid4()}.jpg"
        filepath.write_bytes(data)
        return filepath

    def save_fnol(self, data: bytes, filename: str) -> Path:
        """Save an FNOL document under its original filename.

        Only the final path component of ``filename`` is used.
        """
        filepath = self.fnol_dir / Path(filename).name
        filepath.write_bytes(data)
        return filepath

    def save_lidar_scan(self, claim_number: str, data: bytes) -> Path:
        """Save raw LiDAR scan data for a claim and return the file path."""
        filepath = self.lidar_dir / f"{_safe_name(claim_number)}_{uuid.uuid4()}.lidar"
        filepath.write_bytes(data)
        return filepath

    def load(self, filepath: Path) -> bytes | None:
        """Read a stored file, or None if it no longer exists."""
        try:
            return Path(filepath).read_bytes()
        except FileNotFoundError:
            return None

    def delete(self, filepath: Path) -> None:
        """Delete a stored file; a missing file is not an error."""
        Path(filepath).unlink(missing_ok=True)

    def usage(self) -> StorageUsage:
        """Compute bytes used per category."""
        return StorageUsage(
            photos=self._directory_size(self.photos_dir),
            fnols=self._directory_size(self.fnol_dir),
            lidar_scans=self._directory_size(self.lidar_dir),
        )

    def _directory_size(self, directory: Path) -> int:
        size = 0
        for path in directory.rglob("*"):
            try:
                if path.is_file():
                    size += path.stat().st_size
            except OSError as e:
                logger.debug("Skipping %s in usage scan: %s", path, e)
        return size
