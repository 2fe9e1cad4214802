"""Tests for QR image storage on disk."""

from pathlib import Path

import pytest

from guestlist.core.errors import InfrastructureError
from guestlist.services.qr_storage import QRCodeStorage

_PUBLIC_ID = "0123456789abcdef0123456789abcdef"


class TestQRCodeStorage:
    """Tests for save/load/delete."""

    def test_save_writes_file_and_returns_url(self, tmp_path: Path) -> None:
        storage = QRCodeStorage(tmp_path / "qr", public_path="/qr-codes/")

        url = storage.save(_PUBLIC_ID, b"png-bytes")

        assert url == f"/qr-codes/{_PUBLIC_ID}.png"
        assert (tmp_path / "qr" / f"{_PUBLIC_ID}.png").read_bytes() == b"png-bytes"

    def test_save_replaces_previous_image(self, qr_storage: QRCodeStorage) -> None:
        qr_storage.save(_PUBLIC_ID, b"first")
        qr_storage.save(_PUBLIC_ID, b"second")
        assert qr_storage.load(_PUBLIC_ID) == b"second"

    def test_load_missing_returns_none(self, qr_storage: QRCodeStorage) -> None:
        assert qr_storage.load(_PUBLIC_ID) is None

    def test_delete_removes_file(self, qr_storage: QRCodeStorage) -> None:
        qr_storage.save(_PUBLIC_ID, b"png")
        qr_storage.delete(_PUBLIC_ID)
        assert qr_storage.load(_PUBLIC_ID) is None

    def test_delete_missing_is_silent(self, qr_storage: QRCodeStorage) -> None:
        qr_storage.delete(_PUBLIC_ID)

    def test_unwritable_directory_raises_infrastructure_error(
        self, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")
        storage = QRCodeStorage(blocker / "qr")

        with pytest.raises(InfrastructureError) as exc_info:
            storage.save(_PUBLIC_ID, b"png")

        assert exc_info.value.status_code == 500

    @pytest.mark.parametrize(
        "public_id",
        ["../../etc/passwd", "ABCDEF0123456789", "abc", "0123456789abcdef/x", ""],
    )
    def test_rejects_unsafe_public_ids(
        self, qr_storage: QRCodeStorage, public_id: str
    ) -> None:
        with pytest.raises(ValueError, match="Invalid QR public id"):
            qr_storage.save(public_id, b"png")
