"""Configuration settings for the relay server."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from common.constants import QUOTA_LIMIT_BYTES, UPLOAD_CHUNK_SIZE_BYTES

load_dotenv()


def parse_roots(roots_str: str) -> List[str]:
    """
    Parse comma-separated root directories into a list.

    Args:
        roots_str: Comma-separated directories (e.g., "/data/a,/data/b")

    Returns:
        List of trimmed, non-empty directory strings in their given order
    """
    return [root.strip() for root in roots_str.split(',') if root.strip()]


ROOTS = parse_roots(os.environ.get("ROOT", ""))

FOLDER_ID = os.environ.get("FOLDER_ID", "")

QUOTA_LIMIT = int(os.environ.get("QUOTA_LIMIT", str(QUOTA_LIMIT_BYTES)))

UPLOAD_CHUNK_SIZE = int(os.environ.get("UPLOAD_CHUNK_SIZE", str(UPLOAD_CHUNK_SIZE_BYTES)))

CREDENTIALS_FILE = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS") or None

WEB_DIR = os.environ.get("WEB_DIR", "./web")

RELAY_HOST = os.environ.get("RELAY_HOST", "0.0.0.0")

RELAY_PORT = int(os.environ.get("RELAY_PORT", "8080"))


@dataclass(frozen=True)
class RelaySettings:
    """
    Immutable settings handed to the application factory.
    """
    roots: List[str] = field(default_factory=list)
    folder_id: str = ""
    quota_limit: int = QUOTA_LIMIT_BYTES
    upload_chunk_size: int = UPLOAD_CHUNK_SIZE_BYTES
    credentials_file: Optional[str] = None
    web_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RelaySettings":
        """Build settings from the environment (and .env) values read at import."""
        return cls(
            roots=list(ROOTS),
            folder_id=FOLDER_ID,
            quota_limit=QUOTA_LIMIT,
            upload_chunk_size=UPLOAD_CHUNK_SIZE,
            credentials_file=CREDENTIALS_FILE,
            web_dir=WEB_DIR,
        )
