"""Project-wide constants (quota limit, sniff length, chunk size)."""

QUOTA_LIMIT_BYTES: int = 5_000_000_000  # 5 GB Drive folder quota

SNIFF_LENGTH_BYTES: int = 512  # content-type detection reads at most this many bytes

# Drive resumable uploads require chunk sizes in multiples of 256 KiB
UPLOAD_CHUNK_SIZE_BYTES: int = 8 * 1024 * 1024
UPLOAD_CHUNK_ALIGNMENT_BYTES: int = 256 * 1024

DEFAULT_MIME_TYPE: str = "application/octet-stream"
DRIVE_FOLDER_MIME_TYPE: str = "application/vnd.google-apps.folder"

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
DRIVE_LIST_PAGE_SIZE: int = 1000
