"""
Filesystem blob store tests.

Run with: pytest tests/test_blob_store.py -v
"""

import pytest


class TestFilesystemBlobStore:
    """Test put/get against a temporary directory."""

    def test_put_then_get(self, blob_store):
        blob_store.put("job-applications/app-1-cv.pdf", b"%PDF-1.4 resume")

        content, content_type = blob_store.get("job-applications/app-1-cv.pdf")

        assert content == b"%PDF-1.4 resume"
        assert content_type == "application/pdf"

    def test_put_overwrites(self, blob_store):
        blob_store.put("job-applications/app-1-cv.txt", b"first")
        blob_store.put("job-applications/app-1-cv.txt", b"second")

        content, _ = blob_store.get("job-applications/app-1-cv.txt")
        assert content == b"second"

    def test_no_temp_files_left_behind(self, blob_store):
        blob_store.put("job-applications/app-1-cv.txt", b"data")

        leftovers = [p.name for p in (blob_store.root / "job-applications").iterdir()]
        assert leftovers == ["app-1-cv.txt"]

    def test_missing_key_raises_not_found(self, blob_store):
        from exceptions import NotFound

        with pytest.raises(NotFound):
            blob_store.get("job-applications/missing.pdf")

    @pytest.mark.parametrize("key", [
        "",
        "/etc/passwd",
        "../outside.txt",
        "job-applications/../../outside.txt",
    ])
    def test_unsafe_keys_rejected(self, blob_store, key):
        from exceptions import ValidationError

        with pytest.raises(ValidationError):
            blob_store.put(key, b"data")


class TestResumeKeys:
    """Test key and content type helpers."""

    def test_resume_key_format(self):
        from storage.blob import resume_key_for

        assert resume_key_for("abc", "cv.pdf") == "job-applications/abc-cv.pdf"

    @pytest.mark.parametrize("key, expected", [
        ("a.pdf", "application/pdf"),
        ("a.TXT", "text/plain"),
        ("a.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
        ("a.unknownext", "application/octet-stream"),
    ])
    def test_guess_content_type(self, key, expected):
        from storage.blob import guess_content_type

        assert guess_content_type(key) == expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
