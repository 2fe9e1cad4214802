"""Disk storage for invitation QR images.

Images live in a single directory as ``{public_id}.png`` and are served
read-only by the app under the public path (``/qr-codes`` by default).

Public API:
- QRCodeStorage.save       - write an image, return its public URL
- QRCodeStorage.load       - read an image back (None if missing)
- QRCodeStorage.delete     - best-effort removal
- QRCodeStorage.public_url - URL path of an image
"""

import logging
import re
from pathlib import Path

from guestlist.core.config import settings
from guestlist.core.errors import InfrastructureError

logger = logging.getLogger(__name__)

# Public ids are hex digests; anything else must never reach the filesystem
_PUBLIC_ID_PATTERN = re.compile(r"^[0-9a-f]{8,64}$")


class QRCodeStorage:
    """Directory-backed QR image store.

    Args:
        directory: Where images are written. Created on first save.
        public_path: URL prefix the directory is served under.
    """

    def __init__(self, directory: str | Path, public_path: str = "/qr-codes") -> None:
        self._directory = Path(directory)
        self._public_path = public_path.rstrip("/")

    @property
    def directory(self) -> Path:
        """Directory holding the images."""
        return self._directory

    def _path_for(self, public_id: str) -> Path:
        if not _PUBLIC_ID_PATTERN.fullmatch(public_id):
            msg = f"Invalid QR public id: {public_id!r}"
            raise ValueError(msg)
        return self._directory / f"{public_id}.png"

    def public_url(self, public_id: str) -> str:
        """URL path under which an image is served.

        Args:
            public_id: Hashed id of the guest code.

        Returns:
            Path of the form "/qr-codes/{public_id}.png".
        """
        return f"{self._public_path}/{public_id}.png"

    def save(self, public_id: str, png: bytes) -> str:
        """Write an image, replacing any previous one.

        Args:
            public_id: Hashed id of the guest code.
            png: PNG bytes.

        Returns:
            Public URL of the stored image.

        Raises:
            InfrastructureError: If the file cannot be written.
        """
        path = self._path_for(public_id)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(png)
        except OSError as exc:
            logger.error("Failed to write QR image %s: %s", path, exc)
            raise InfrastructureError("Could not store the QR code") from exc
        return self.public_url(public_id)

    def load(self, public_id: str) -> bytes | None:
        """Read an image.

        Args:
            public_id: Hashed id of the guest code.

        Returns:
            PNG bytes, or None if the file does not exist.

        Raises:
            InfrastructureError: If the file exists but cannot be read.
        """
        path = self._path_for(public_id)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to read QR image %s: %s", path, exc)
            raise InfrastructureError("Could not read the QR code") from exc

    def delete(self, public_id: str) -> None:
        """Remove an image. Failures are logged, never raised."""
        path = self._path_for(public_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to delete QR image %s: %s", path, exc)


# Global storage instance (singleton for the app)
_storage: QRCodeStorage | None = None


def get_qr_storage() -> QRCodeStorage:
    """Get the global QR storage, built from settings on first use.

    Returns:
        The singleton QRCodeStorage instance.
    """
    global _storage
    if _storage is None:
        _storage = QRCodeStorage(settings.qr_storage_dir, settings.qr_public_path)
    return _storage
