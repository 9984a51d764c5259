"""Small helpers for editing .env files in place."""
from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from eth_utils import to_checksum_address


def _atomic_write(path: Path, content: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(prefix="env_", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(tmp_fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def update_env_value(env_path: Path, key: str, value: str) -> bool:
    """
    Set ``key=value`` in ``env_path``, replacing an existing entry or appending.

    Returns:
        True if an existing entry was replaced, False if appended
    """
    env_path = Path(env_path)
    content = env_path.read_text() if env_path.exists() else ""
    pattern = re.compile(rf"^{re.escape(key)}=.*$", re.MULTILINE)

    if pattern.search(content):
        content = pattern.sub(lambda _: f"{key}={value}", content, count=1)
        replaced = True
    else:
        if content and not content.endswith("\n"):
            content += "\n"
        content += f"{key}={value}\n"
        replaced = False

    _atomic_write(env_path, content)
    return replaced


def write_env_private_key(out_dir: Path, address: str, private_key_hex: str) -> Path:
    """Write a minimal .env.<address> containing PRIVATE_KEY=... (unencrypted)."""
    env_path = Path(out_dir) / f".env.{to_checksum_address(address)}"
    _atomic_write(env_path, f"PRIVATE_KEY={private_key_hex}\n")
    return env_path
