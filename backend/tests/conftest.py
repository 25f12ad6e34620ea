"""Root conftest — shared test configuration."""

import os
import tempfile

# Keep tests off real databases and out of the working directory
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOCAL_STATE_DIR", tempfile.mkdtemp(prefix="roomshare-ledgers-"))
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="roomshare-storage-"))
os.environ.setdefault("LOG_FORMAT", "text")
