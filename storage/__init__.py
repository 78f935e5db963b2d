"""
Blob storage for resume uploads.
"""

from storage.blob import BlobStore, FilesystemBlobStore, resume_key_for, guess_content_type

__all__ = ["BlobStore", "FilesystemBlobStore", "resume_key_for", "guess_content_type"]
