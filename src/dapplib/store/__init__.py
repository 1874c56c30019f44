"""Content Store Gateway - content-addressed uploads (IPFS HTTP API)."""

from .ipfs import AddedEntry, ContentStore, IpfsStore, ProgressCallback, UploadFile

__all__ = ["AddedEntry", "ContentStore", "IpfsStore", "ProgressCallback", "UploadFile"]
