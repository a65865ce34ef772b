"""
Release fetcher — download a tool's pre-built binary from GitHub releases.

Flow for one tool:

    latest release metadata → pick asset for the target triple
        → download into a private staging dir → extract → locate binary
        → chmod +x → atomic move into bin/ (or keep the whole tree and
          symlink bin/<binary> into it)

The staging directory is removed on every exit path. Failures are raised
as ``ProvisionError`` subclasses scoped to the tool being fetched.
"""

from __future__ import annotations

import http.client
import json
import logging
import lzma
import os
import shutil
import tarfile
import tempfile
import urllib.request
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from isoterm.core.errors import (
    AssetNotFound,
    DownloadFailed,
    ExtractionFailed,
    FilesystemError,
)
from isoterm.core.models.platform import TargetTriple
from isoterm.core.models.tool import ToolDescriptor
from isoterm.core.services.layout import EnvironmentLayout

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz")
STAGING_PREFIX = "isoterm-stage-"

_CHUNK_SIZE = 8192
_ARCHIVE_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error, lzma.LZMAError)
# urlopen raises ValueError for a malformed URL; a truncated body raises
# http.client.IncompleteRead, which is not an OSError
_TRANSPORT_ERRORS = (OSError, ValueError, http.client.HTTPException)


class Transport(Protocol):
    """HTTP access used by the fetcher (swapped for a fake in tests)."""

    def get_json(self, url: str) -> dict[str, Any]: ...

    def download(self, url: str, dest: Path) -> None: ...


class UrllibTransport:
    """Blocking HTTPS transport on ``urllib.request``."""

    def __init__(
        self,
        user_agent: str = "isoterm",
        token: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.user_agent = user_agent
        self.token = token
        self.timeout = timeout

    def get_json(self, url: str) -> dict[str, Any]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.user_agent,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        req = urllib.request.Request(url, headers=headers)
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:
            return json.loads(resp.read())

    def download(self, url: str, dest: Path) -> None:
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:
            with open(dest, "wb") as f:
                while True:
                    chunk = resp.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)


@dataclass
class FetchResult:
    """What a successful fetch installed."""

    path: Path                      # bin/<binary>
    asset: str                      # release asset name
    version: str = ""               # release tag
    notes: list[str] = field(default_factory=list)


def is_archive(name: str) -> bool:
    return name.endswith(ARCHIVE_SUFFIXES)


def select_asset(
    descriptor: ToolDescriptor,
    triple: TargetTriple,
    assets: list[dict[str, Any]],
) -> dict[str, Any]:
    """Pick the release asset for ``triple``.

    Candidate triples are tried in order; within one candidate the first
    asset (in listed order) whose name contains the fragment and ends in
    a known archive suffix wins.

    Raises:
        AssetNotFound: When no candidate matches any asset.
    """
    names = [a.get("name") or "" for a in assets]
    for fragment in descriptor.asset_fragments(triple):
        for asset, name in zip(assets, names):
            if fragment in name and is_archive(name):
                logger.debug("%s: fragment %r matched %s", descriptor.name, fragment, name)
                return asset
    raise AssetNotFound(descriptor.name, str(triple), names)


def extract_archive(archive: Path, dest: Path, tool: str) -> None:
    """Extract a gzip or xz tarball, refusing unsafe members."""
    try:
        with tarfile.open(archive, "r:*") as tf:
            tf.extractall(dest, filter="data")
    except _ARCHIVE_ERRORS as e:
        raise ExtractionFailed(tool, f"Cannot extract {archive.name}: {e}") from e


def strip_components(tree: Path, levels: int, tool: str) -> Path:
    """Descend ``levels`` single top-level directories."""
    for _ in range(levels):
        entries = list(tree.iterdir())
        if len(entries) != 1 or not entries[0].is_dir():
            raise ExtractionFailed(
                tool,
                f"Expected a single top-level directory in {tool} archive, "
                f"found {sorted(e.name for e in entries)}",
            )
        tree = entries[0]
    return tree


def locate_binary(tree: Path, descriptor: ToolDescriptor) -> Path:
    """Find the binary inside the (stripped) extraction tree."""
    expected = tree / descriptor.binary_in_tree
    if expected.is_file():
        return expected

    for p in sorted(tree.rglob(descriptor.binary)):
        if p.is_file():
            logger.debug("%s: binary found at %s instead of %s",
                         descriptor.name, p.relative_to(tree), descriptor.binary_in_tree)
            return p

    available = sorted(str(p.relative_to(tree)) for p in tree.rglob("*") if p.is_file())
    raise ExtractionFailed(
        descriptor.name,
        f"Binary '{descriptor.binary_in_tree}' not found in release archive "
        f"(files: {', '.join(available[:10]) or 'none'})",
    )


class ReleaseFetcher:
    """Fetch and install release binaries into an environment."""

    def __init__(
        self,
        transport: Transport | None = None,
        api_url: str = DEFAULT_API_URL,
        staging_root: Path | None = None,
    ) -> None:
        self.transport = transport or UrllibTransport()
        self.api_url = api_url.rstrip("/")
        self.staging_root = staging_root

    def latest_release(self, descriptor: ToolDescriptor) -> dict[str, Any]:
        url = f"{self.api_url}/repos/{descriptor.repo}/releases/latest"
        logger.debug("GET %s", url)
        try:
            data = self.transport.get_json(url)
        except _TRANSPORT_ERRORS as e:
            raise DownloadFailed(descriptor.name, url, e) from e
        if not isinstance(data, dict):
            raise DownloadFailed(descriptor.name, url, "unexpected release metadata")
        return data

    def fetch(
        self,
        descriptor: ToolDescriptor,
        triple: TargetTriple,
        layout: EnvironmentLayout,
    ) -> FetchResult:
        """Download, extract and install ``descriptor`` for ``triple``.

        Raises:
            AssetNotFound, DownloadFailed, ExtractionFailed, FilesystemError
        """
        release = self.latest_release(descriptor)
        version = release.get("tag_name", "")
        asset = select_asset(descriptor, triple, release.get("assets") or [])
        asset_name = asset["name"]
        logger.info("Fetching %s %s (%s)", descriptor.name, version, asset_name)

        staging = self._new_staging(descriptor)
        try:
            archive = staging / asset_name
            self._download(descriptor, asset.get("browser_download_url", ""), archive)

            extracted = staging / "extracted"
            extracted.mkdir()
            extract_archive(archive, extracted, descriptor.name)
            tree = strip_components(extracted, descriptor.relocation.strip_components,
                                    descriptor.name)
            found = locate_binary(tree, descriptor)

            try:
                if descriptor.relocation.keep_tree:
                    path = self._install_tree(descriptor, layout, tree, found, staging)
                else:
                    path = self._install_binary(descriptor, layout, found)
            except OSError as e:
                raise FilesystemError(
                    descriptor.name, f"Cannot install {descriptor.binary}: {e}"
                ) from e
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        result = FetchResult(path=path, asset=asset_name, version=version)
        if descriptor.relocation.share_from_source:
            note = self.ensure_share(descriptor, layout, release)
            if note:
                result.notes.append(note)
        return result

    def ensure_share(
        self,
        descriptor: ToolDescriptor,
        layout: EnvironmentLayout,
        release: dict[str, Any],
    ) -> str | None:
        """Populate ``<keep_tree>/share`` from the source tarball if missing.

        Returns a note for the outcome when the share tree could not be
        provided; the binary itself is still usable without it.
        """
        tree_name = descriptor.relocation.keep_tree
        if not tree_name:
            return None
        share = layout.subdir(tree_name) / "share"
        if share.is_dir():
            return None

        url = release.get("tarball_url")
        if not url:
            logger.warning("%s: release has no source tarball, share/ not installed",
                           descriptor.name)
            return "share/ not installed: no source tarball"

        staging = self._new_staging(descriptor)
        try:
            archive = staging / "source.tar.gz"
            self._download(descriptor, url, archive)
            extracted = staging / "source"
            extracted.mkdir()
            _extract_share(archive, extracted, descriptor.name)
            found = [p for p in extracted.glob("*/share") if p.is_dir()]
            if not found:
                raise ExtractionFailed(descriptor.name, "Source tarball has no share/ directory")
            try:
                shutil.move(str(found[0]), share)
            except OSError as e:
                raise FilesystemError(descriptor.name, f"Cannot install share/: {e}") from e
        except (DownloadFailed, ExtractionFailed, FilesystemError) as e:
            logger.warning("%s: share/ not installed: %s", descriptor.name, e)
            return f"share/ not installed: {e}"
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        logger.info("%s: installed share/ from source tarball", descriptor.name)
        return None

    def repair_share(self, descriptor: ToolDescriptor, layout: EnvironmentLayout) -> str | None:
        """Retry the ``share/`` step for a tool that is already installed.

        Makes no request when ``share/`` exists or when ``bin/<binary>``
        does not point into the kept tree (a linked system install).
        """
        tree_name = descriptor.relocation.keep_tree
        if not (tree_name and descriptor.relocation.share_from_source):
            return None
        tree = layout.subdir(tree_name).resolve()
        if not layout.bin_path(descriptor.binary).resolve().is_relative_to(tree):
            return None
        if (tree / "share").is_dir():
            return None

        logger.info("%s: share/ missing from %s, retrying", descriptor.name, tree)
        try:
            release = self.latest_release(descriptor)
            return self.ensure_share(descriptor, layout, release)
        except (DownloadFailed, FilesystemError) as e:
            logger.warning("%s: share/ not installed: %s", descriptor.name, e)
            return f"share/ not installed: {e}"

    # ── internals ───────────────────────────────────────────────

    def _new_staging(self, descriptor: ToolDescriptor) -> Path:
        try:
            return Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=self.staging_root))
        except OSError as e:
            raise FilesystemError(descriptor.name, f"Cannot create staging dir: {e}") from e

    def _download(self, descriptor: ToolDescriptor, url: str, dest: Path) -> None:
        if not url:
            raise DownloadFailed(descriptor.name, "<missing>", "asset has no download URL")
        logger.debug("Downloading %s", url)
        try:
            self.transport.download(url, dest)
        except _TRANSPORT_ERRORS as e:
            raise DownloadFailed(descriptor.name, url, e) from e

    def _install_binary(
        self,
        descriptor: ToolDescriptor,
        layout: EnvironmentLayout,
        found: Path,
    ) -> Path:
        target = layout.bin_path(descriptor.binary)
        tmp = target.with_name(f".{descriptor.binary}.tmp")
        shutil.move(str(found), tmp)
        os.chmod(tmp, 0o755)
        os.replace(tmp, target)
        return target

    def _install_tree(
        self,
        descriptor: ToolDescriptor,
        layout: EnvironmentLayout,
        tree: Path,
        found: Path,
        staging: Path,
    ) -> Path:
        dest = layout.subdir(descriptor.relocation.keep_tree)
        relative = found.relative_to(tree)
        os.chmod(found, 0o755)

        # The previous tree is discarded together with the staging dir
        if dest.exists() or dest.is_symlink():
            shutil.move(str(dest), staging / "previous")
        shutil.move(str(tree), dest)

        link = layout.bin_path(descriptor.binary)
        replace_symlink(link, Path(os.path.relpath(dest / relative, link.parent)))
        return link


def replace_symlink(link: Path, target: Path) -> None:
    """Point ``link`` at ``target`` atomically, replacing whatever is there."""
    tmp = link.with_name(f".{link.name}.tmp")
    if tmp.is_symlink() or tmp.exists():
        tmp.unlink()
    os.symlink(target, tmp)
    os.replace(tmp, link)


def _extract_share(archive: Path, dest: Path, tool: str) -> None:
    """Extract only ``<top>/share/...`` members of a source tarball."""
    try:
        with tarfile.open(archive, "r:*") as tf:
            members = [
                m for m in tf.getmembers()
                if len(Path(m.name).parts) >= 2 and Path(m.name).parts[1] == "share"
            ]
            tf.extractall(dest, members=members, filter="data")
    except _ARCHIVE_ERRORS as e:
        raise ExtractionFailed(tool, f"Cannot extract source tarball: {e}") from e
