"""Toolchain providers: CI artifact install and a user-supplied rustc."""

from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import requests

from perfcollector.domain.models import Commit, Toolchain
from perfcollector.errors import ToolchainError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 20


def artifact_name(component: str, triple: str) -> str:
    return f"{component}-nightly-{triple}.tar.xz"


def _download(url: str, dest: Path, timeout: int) -> None:
    logger.info("downloading %s", url)
    try:
        with requests.get(url, stream=True, timeout=timeout) as resp:
            resp.raise_for_status()
            with dest.open("wb") as fh:
                for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                    fh.write(chunk)
    except requests.RequestException as exc:
        raise ToolchainError(f"failed to download {url}: {exc}") from exc


def _install_component(archive: Path, sysroot: Path, scratch: Path) -> None:
    """Unpack a rustup-style component tarball and merge its payload into *sysroot*.

    The tarball holds ``<name>/<component>/{bin,lib,...}`` next to installer
    metadata; only the component directories are copied.
    """
    try:
        with tarfile.open(archive) as tar:
            tar.extractall(scratch, filter="data")
    except (tarfile.TarError, OSError) as exc:
        raise ToolchainError(f"corrupt archive {archive.name}: {exc}") from exc

    for top in scratch.iterdir():
        components = top / "components"
        if not components.is_file():
            continue
        for component in components.read_text().split():
            src = top / component
            if src.is_dir():
                shutil.copytree(src, sysroot, dirs_exist_ok=True)


class ArtifactToolchainProvider:
    """ToolchainProvider that installs CI build artifacts for a commit."""

    def __init__(
        self,
        base_url: str,
        components: tuple[str, ...] = ("rustc", "rust-std", "cargo"),
        timeout: int = 300,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._components = components
        self._timeout = timeout

    @contextmanager
    def install(self, commit: Commit, triple: str) -> Iterator[Toolchain]:
        """Download and unpack the commit's artifacts into a temporary sysroot."""
        with tempfile.TemporaryDirectory(prefix=f"sysroot-{commit.sha[:12]}-") as tmp:
            root = Path(tmp)
            sysroot = root / "sysroot"
            sysroot.mkdir()
            for component in self._components:
                name = artifact_name(component, triple)
                archive = root / name
                _download(f"{self._base_url}/{commit.sha}/{name}", archive, self._timeout)
                scratch = root / f"unpack-{component}"
                scratch.mkdir()
                _install_component(archive, sysroot, scratch)
                archive.unlink()
                shutil.rmtree(scratch)

            rustc = sysroot / "bin" / "rustc"
            if not rustc.is_file():
                raise ToolchainError(f"no rustc in artifacts for {commit.sha}")
            cargo = sysroot / "bin" / "cargo"
            logger.info("installed toolchain for %s (%s)", commit.sha, triple)
            yield Toolchain(
                commit_sha=commit.sha,
                triple=triple,
                rustc=rustc,
                cargo=cargo if cargo.is_file() else None,
            )


class LocalToolchainProvider:
    """ToolchainProvider that hands out an already-built local rustc."""

    def __init__(self, rustc: Path) -> None:
        self._rustc = Path(rustc)

    @contextmanager
    def install(self, commit: Commit, triple: str) -> Iterator[Toolchain]:
        rustc = self._rustc.resolve()
        if not rustc.is_file():
            raise ToolchainError(f"rustc not found at {self._rustc}")
        cargo: Path | None = rustc.parent / "cargo"
        if not cargo.is_file():
            found = shutil.which("cargo")
            cargo = Path(found) if found else None
        yield Toolchain(commit_sha=commit.sha, triple=triple, rustc=rustc, cargo=cargo)
