"""Work out the package name and version behind an install reference.

Most references can be answered by looking at the string. Tarballs have to
be downloaded (or opened) and unpacked into a scratch directory so their
``package.json`` can be read; the scratch directory never outlives the
call that created it.
"""

from __future__ import annotations

import asyncio
import re
import tarfile
import tempfile
from pathlib import Path, PurePosixPath

import httpx

from create_react_app.config import Config
from create_react_app.manifest import ManifestError, read_manifest
from create_react_app.models import (
    FILE_PREFIX,
    PackageInfo,
    ReferenceKind,
    WorkingContext,
    is_archive,
    is_local_file,
)
from create_react_app.utils import console
from create_react_app.versions import clean_semver

GIT_NAME_RE = re.compile(r"([^/]+)\.git(#.*)?$")
# react-scripts-0.2.0-alpha.1.tgz -> react-scripts
ARCHIVE_NAME_RE = re.compile(r"^.+/(.+?)(?:-\d+.+)?\.(tgz|tar\.gz)$")

_DOWNLOAD_CHUNK = 64 * 1024


class ArchiveError(Exception):
    """Raised when an archive cannot be fetched, unpacked, or lacks a manifest."""


# ---------------------------------------------------------------------------
# Archive helpers
# ---------------------------------------------------------------------------


async def download_archive(url: str, dest: Path, timeout: float) -> Path:
    """Stream *url* into *dest* and return *dest*."""
    try:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0), follow_redirects=True
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with dest.open("wb") as handle:
                    async for chunk in response.aiter_bytes(_DOWNLOAD_CHUNK):
                        handle.write(chunk)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ArchiveError(f"Download of {url} failed: {exc}") from exc
    return dest


def extract_archive(archive: Path, dest: Path) -> Path:
    """Unpack a package tarball into *dest*, dropping the leading directory.

    npm tarballs wrap everything in a single ``package/`` directory; after
    extraction ``dest/package.json`` is the package manifest. Only regular
    files and directories are extracted.
    """
    try:
        with tarfile.open(archive, "r:*") as tar:
            members: list[tarfile.TarInfo] = []
            for member in tar.getmembers():
                if not (member.isfile() or member.isdir()):
                    continue
                parts = PurePosixPath(member.name).parts
                if len(parts) < 2:
                    continue
                member.name = str(PurePosixPath(*parts[1:]))
                members.append(member)
            tar.extractall(dest, members=members, filter="data")
    except (tarfile.TarError, OSError) as exc:
        raise ArchiveError(f"Could not unpack {archive}: {exc}") from exc
    return dest


def _local_path(reference: str, context: WorkingContext) -> Path:
    raw = reference[len(FILE_PREFIX):] if is_local_file(reference) else reference
    path = Path(raw)
    return path if path.is_absolute() else context.original_dir / path


async def _read_archive_info(reference: str, context: WorkingContext, config: Config) -> PackageInfo:
    # Errors while removing the scratch directory are ignored.
    with tempfile.TemporaryDirectory(prefix="cra-", ignore_cleanup_errors=True) as tmp:
        scratch = Path(tmp)
        if reference.startswith("http"):
            archive = await download_archive(
                reference, scratch / "package.tgz", config.timeouts.http
            )
        else:
            archive = _local_path(reference, context)

        unpack_dir = scratch / "unpacked"
        unpack_dir.mkdir()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, extract_archive, archive, unpack_dir)

        try:
            manifest = read_manifest(unpack_dir)
        except ManifestError as exc:
            raise ArchiveError(str(exc)) from exc
        if not manifest.name:
            raise ArchiveError(f"package.json in {reference} has no name")
        return PackageInfo(
            name=manifest.name, version=manifest.version, kind=ReferenceKind.TARBALL_URL
        )


def assume_archive_name(reference: str) -> str:
    """Guess a package name from an archive file name, dropping any version suffix."""
    match = ARCHIVE_NAME_RE.match(reference)
    if match is None:
        return reference
    return match.group(1)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def get_package_info(
    reference: str, context: WorkingContext, config: Config
) -> PackageInfo:
    """Return the name (and version, when knowable) behind *reference*.

    Handles, in order:

    * ``.tgz`` / ``.tar.gz`` archives, remote or local, by unpacking them.
      Failure falls back to a name guessed from the file name.
    * ``git+`` URLs, taking the repository name before ``.git``.
    * ``file:`` paths, by reading ``package.json`` in that directory.
    * ``name@version`` and ``@scope/name@tag``.
    * anything else, which is taken to be a bare package name.

    Raises:
        ManifestError: If a ``file:`` reference has no readable manifest.
    """
    if is_archive(reference):
        try:
            return await _read_archive_info(reference, context, config)
        except (ArchiveError, OSError) as exc:
            console.print(f"Could not extract the package name from the archive: {exc}")
            assumed = assume_archive_name(reference)
            console.print(f'Based on the filename, assuming it is "[cyan]{assumed}[/cyan]"')
            return PackageInfo(name=assumed, kind=ReferenceKind.TARBALL_URL)

    if reference.startswith("git+"):
        match = GIT_NAME_RE.search(reference)
        name = match.group(1) if match else reference
        return PackageInfo(name=name, kind=ReferenceKind.GIT_URL)

    if is_local_file(reference):
        manifest = read_manifest(_local_path(reference, context))
        return PackageInfo(
            name=manifest.name or reference,
            version=manifest.version,
            kind=ReferenceKind.LOCAL_PATH,
        )

    if "@" in reference[1:]:
        # Skip the first character so a leading "@scope/" is not split off.
        head, version = reference[1:].split("@", 1)
        kind = ReferenceKind.EXACT_SEMVER if clean_semver(version) else ReferenceKind.NPM_TAG
        return PackageInfo(name=reference[0] + head, version=version, kind=kind)

    return PackageInfo(name=reference)
