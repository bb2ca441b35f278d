"""
Unit tests per FileService.

I file vengono scritti in tmp_path; la sessione del worker in background
è lo stesso mock usato dai test.
"""

import io
import os
import uuid
from unittest.mock import MagicMock

import pytest
from fastapi import UploadFile
from PIL import Image
from starlette.datastructures import Headers

from conftest import make_result
from printpro.core.exceptions import AuthorizationError, BusinessValidationError, NotFoundError
from printpro.domain.files import FileStatus
from printpro.models import FileDocument
from printpro.services.file_service import FileService


class FakeSessionFactory:
    """Restituisce sempre la stessa sessione mock come context manager."""

    def __init__(self, db):
        self.db = db

    def __call__(self):
        return self

    async def __aenter__(self):
        return self.db

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def service(mock_db, tmp_path):
    return FileService(session_factory=FakeSessionFactory(mock_db), upload_path=str(tmp_path / "uploads"))


def make_upload(content: bytes, filename: str = "flyer.png", content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def png_bytes(size=(600, 400)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, "white").save(buffer, "PNG")
    return buffer.getvalue()


def build_document(owner, path: str, original_name: str = "logo.png") -> FileDocument:
    return FileDocument(
        id=uuid.uuid4(),
        filename=f"{uuid.uuid4().hex}.png",
        original_name=original_name,
        mimetype="image/png",
        size=os.path.getsize(path) if os.path.exists(path) else 0,
        path=path,
        owner_id=owner.id,
        file_type="design",
        status=FileStatus.UPLOADED.value,
        file_metadata={},
        preview_images=[],
        tags=[],
        is_active=True,
        versions=[],
    )


# ============================================================
# Tests per upload
# ============================================================


class TestUpload:

    async def test_upload_saves_file(self, service, mock_db, client_user):
        """Test il file finisce su disco con nome univoco e stato 'uploaded'."""
        content = png_bytes()

        document = await service.upload(mock_db, make_upload(content), client_user, tags=["recto"])

        assert document.status == "uploaded"
        assert document.original_name == "flyer.png"
        assert document.mimetype == "image/png"
        assert document.size == len(content)
        assert document.filename.endswith(".png")
        assert document.owner_id == client_user.id
        assert document.tags == ["recto"]
        with open(document.path, "rb") as f:
            assert f.read() == content
        mock_db.add.assert_called_once_with(document)

    async def test_empty_upload(self, service, mock_db, client_user):
        with pytest.raises(BusinessValidationError):
            await service.upload(mock_db, make_upload(b""), client_user)

    async def test_upload_too_large(self, service, mock_db, client_user, monkeypatch):
        monkeypatch.setattr("printpro.services.file_service.settings", MagicMock(max_file_size=10))

        with pytest.raises(BusinessValidationError) as exc_info:
            await service.upload(mock_db, make_upload(b"x" * 11), client_user)
        assert exc_info.value.extra == {"max_file_size": 10}
        mock_db.add.assert_not_called()

    async def test_upload_on_other_client_order(self, service, mock_db, other_client, draft_order):
        mock_db.execute.return_value = make_result(value=draft_order)

        with pytest.raises(AuthorizationError):
            await service.upload(mock_db, make_upload(png_bytes()), other_client, order_id=draft_order.id)


# ============================================================
# Tests per l'elaborazione in background
# ============================================================


class TestProcessing:

    async def test_image_validated(self, service, mock_db, client_user, tmp_path):
        path = tmp_path / "flyer.png"
        Image.new("RGB", (1200, 800), "white").save(path, dpi=(300, 300))
        document = build_document(client_user, str(path), "flyer.png")
        mock_db.execute.return_value = make_result(value=document)

        await service.process_in_background(document.id)

        assert document.status == "validated"
        assert document.validation_results["is_valid"] is True
        assert document.file_metadata["dimensions"] == {"width": 1200, "height": 800}
        assert len(document.preview_images) == 3
        assert mock_db.commit.await_count == 2

    async def test_missing_file_rejected(self, service, mock_db, client_user, tmp_path):
        """Test un errore di elaborazione porta il file in 'rejected' senza propagarsi."""
        document = build_document(client_user, str(tmp_path / "sparito.png"))
        mock_db.execute.return_value = make_result(value=document)

        await service.process_in_background(document.id)

        assert document.status == "rejected"
        issues = document.validation_results["issues"]
        assert len(issues) == 1
        assert issues[0]["severity"] == "high"

    async def test_unknown_file(self, service, mock_db):
        mock_db.execute.return_value = make_result(value=None)

        await service.process_in_background(uuid.uuid4())

        mock_db.commit.assert_not_called()


# ============================================================
# Tests per versioni e download
# ============================================================


class TestVersions:

    async def test_convert_adds_version(self, service, mock_db, client_user, tmp_path):
        path = tmp_path / "logo.png"
        Image.new("RGBA", (300, 300)).save(path)
        document = build_document(client_user, str(path))
        mock_db.execute.return_value = make_result(value=document)

        await service.convert(mock_db, document.id, "jpg", client_user)

        assert document.status == "converted"
        assert [v.version for v in document.versions] == [1]
        assert document.versions[0].filename == "logo_v1.jpg"
        assert document.versions[0].created_by_id == client_user.id
        assert os.path.exists(document.versions[0].path)
        assert document.latest_version == 1

    async def test_optimize_adds_second_version(self, service, mock_db, client_user, tmp_path):
        path = tmp_path / "logo.png"
        Image.new("RGB", (300, 300), "white").save(path)
        document = build_document(client_user, str(path))
        mock_db.execute.return_value = make_result(value=document)

        await service.convert(mock_db, document.id, "tiff", client_user)
        await service.optimize_for_print(mock_db, document.id, client_user)

        assert [v.version for v in document.versions] == [1, 2]
        assert document.versions[1].filename == "logo_print_optimized.jpg"

    async def test_other_client_cannot_access(self, service, mock_db, client_user, other_client, tmp_path):
        document = build_document(client_user, str(tmp_path / "logo.png"))
        mock_db.execute.return_value = make_result(value=document)

        with pytest.raises(AuthorizationError):
            await service.resolve_download(mock_db, document.id, other_client)

    async def test_staff_can_download(self, service, mock_db, client_user, employee_user, tmp_path):
        path = tmp_path / "logo.png"
        path.write_bytes(png_bytes())
        document = build_document(client_user, str(path))
        mock_db.execute.return_value = make_result(value=document)

        assert await service.resolve_download(mock_db, document.id, employee_user) == (str(path), "logo.png")

    async def test_unknown_version(self, service, mock_db, client_user, tmp_path):
        path = tmp_path / "logo.png"
        path.write_bytes(png_bytes())
        document = build_document(client_user, str(path))
        mock_db.execute.return_value = make_result(value=document)

        with pytest.raises(NotFoundError):
            await service.resolve_download(mock_db, document.id, client_user, version=3)

    async def test_delete_is_logical(self, service, mock_db, client_user, tmp_path):
        path = tmp_path / "logo.png"
        path.write_bytes(png_bytes())
        document = build_document(client_user, str(path))
        mock_db.execute.return_value = make_result(value=document)

        await service.delete(mock_db, document.id, client_user)

        assert document.is_active is False
        assert os.path.exists(path)
