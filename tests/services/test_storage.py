from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from django.core.files.storage import FileSystemStorage

from src.candidates.errors import StorageError
from src.candidates.services.storage import ResumeStorage, sanitize_file_name


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("My CV (final).pdf", "My_CV__final_.pdf"),
        ("jane-doe.docx", "jane-doe.docx"),
        ("", "resume"),
    ],
)
def test_sanitize_file_name(raw, expected):
    assert sanitize_file_name(raw) == expected


def test_upload_and_remove_round_trip(tmp_path):
    storage = ResumeStorage(
        FileSystemStorage(location=tmp_path, base_url="/media/"), prefix="resumes/"
    )

    stored = storage.upload("My CV.pdf", b"%PDF-1.4 body", "application/pdf")

    assert stored.path.startswith("resumes/")
    assert stored.path.endswith("_My_CV.pdf")
    assert stored.url == f"/media/{stored.path}"
    assert (tmp_path / stored.path).read_bytes() == b"%PDF-1.4 body"

    storage.remove([stored.path])

    assert not (tmp_path / stored.path).exists()


def test_upload_failure_raises_storage_error():
    backend = MagicMock()
    backend.save.side_effect = OSError("disk full")

    with pytest.raises(StorageError) as exc_info:
        ResumeStorage(backend, prefix="resumes/").upload("cv.pdf", b"data")

    assert "disk full" in str(exc_info.value)


def test_remove_keeps_going_after_a_failure():
    backend = MagicMock()
    backend.delete.side_effect = [OSError("gone"), None]

    ResumeStorage(backend, prefix="resumes/").remove(["a.pdf", "b.pdf"])

    assert [call.args[0] for call in backend.delete.call_args_list] == ["a.pdf", "b.pdf"]
