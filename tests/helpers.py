"""
Test doubles and archive builders shared across test modules.
"""

import io
import os
import tarfile
from pathlib import Path

API = "https://api.github.com"


def make_tarball(files: dict[str, bytes | str], compression: str = "gz") -> bytes:
    """Build an in-memory tarball; every member is executable."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode=f"w:{compression}") as tf:
        for name, content in files.items():
            data = content.encode() if isinstance(content, str) else content
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def make_executable(path: Path, content: str = "#!/bin/sh\nexit 0\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    os.chmod(path, 0o755)
    return path


class FakeTransport:
    """In-memory stand-in for the GitHub API and asset downloads."""

    def __init__(self):
        self.releases: dict[str, dict] = {}
        self.files: dict[str, bytes] = {}
        self.requests: list[str] = []
        # url → exception raised instead of answering
        self.errors: dict[str, BaseException] = {}

    def add_release(
        self,
        repo: str,
        assets: dict[str, bytes],
        tag: str = "v1.0.0",
        source: bytes | None = None,
    ) -> dict:
        metadata: dict = {"tag_name": tag, "assets": []}
        for name, data in assets.items():
            url = f"https://github.com/{repo}/releases/download/{tag}/{name}"
            metadata["assets"].append({"name": name, "browser_download_url": url})
            self.files[url] = data
        if source is not None:
            url = f"{API}/repos/{repo}/tarball/{tag}"
            metadata["tarball_url"] = url
            self.files[url] = source
        self.releases[f"{API}/repos/{repo}/releases/latest"] = metadata
        return metadata

    def get_json(self, url: str) -> dict:
        self.requests.append(url)
        if url in self.errors:
            raise self.errors[url]
        if url not in self.releases:
            raise OSError(f"HTTP Error 404: Not Found ({url})")
        return self.releases[url]

    def download(self, url: str, dest: Path) -> None:
        self.requests.append(url)
        if url in self.errors:
            raise self.errors[url]
        if url not in self.files:
            raise OSError(f"HTTP Error 404: Not Found ({url})")
        dest.write_bytes(self.files[url])
