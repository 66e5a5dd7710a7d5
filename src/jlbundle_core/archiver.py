"""Chunked archives of compiled bundles.

Each compiled target is streamed through a gzip-compressed tar into
fixed-size chunk files (``tardisk00``, ``tardisk01``, ...), the same
layout ``tar czpf - <target> | split -d -b 100M - tardisk`` produces.
Concatenating the chunks in numeric order and decompressing yields the
original tree; :func:`restore_archive` does exactly that.
"""

from __future__ import annotations

import re
import shutil
import tarfile
import time
from pathlib import Path
from types import TracebackType

import structlog

from jlbundle_core.config import DEFAULT_ARCHIVE_NAME, MIB
from jlbundle_core.context import BuildContext
from jlbundle_core.errors import ArchivingError
from jlbundle_core.models import PhaseResult, PhaseStatus

logger = structlog.get_logger(__name__)

DEFAULT_CHUNK_SIZE = 100 * MIB
SUFFIX_DIGITS = 2


def chunk_pattern(archive_name: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(archive_name)}(\d{{{SUFFIX_DIGITS},}})$")


def list_chunks(directory: Path, archive_name: str = DEFAULT_ARCHIVE_NAME) -> list[Path]:
    """Chunk files of ``archive_name`` in ``directory``, in numeric order."""
    pattern = chunk_pattern(archive_name)
    found: list[tuple[int, Path]] = []
    for entry in directory.iterdir():
        match = pattern.match(entry.name)
        if match and entry.is_file():
            found.append((int(match.group(1)), entry))
    return [path for _, path in sorted(found)]


class ChunkWriter:
    """Binary sink that splits everything written to it into numbered files.

    Attributes:
        directory: Where chunk files are created
        archive_name: Base name of chunk files
        chunk_size: Maximum bytes per chunk
        chunks: Chunk files created so far
    """

    def __init__(
        self,
        directory: Path,
        archive_name: str = DEFAULT_ARCHIVE_NAME,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.directory = directory
        self.archive_name = archive_name
        self.chunk_size = chunk_size
        self.chunks: list[Path] = []
        self._current = None
        self._written = 0
        self.closed = False

    def _next_chunk(self) -> None:
        if self._current is not None:
            self._current.close()
        path = self.directory / f"{self.archive_name}{len(self.chunks):0{SUFFIX_DIGITS}d}"
        self._current = path.open("wb")
        self.chunks.append(path)
        self._written = 0

    def write(self, data: bytes) -> int:
        if self.closed:
            raise ValueError("write to closed ChunkWriter")
        view = memoryview(data)
        while view:
            if self._current is None or self._written >= self.chunk_size:
                self._next_chunk()
            room = self.chunk_size - self._written
            piece = view[:room]
            self._current.write(piece)
            self._written += len(piece)
            view = view[len(piece):]
        return len(data)

    def close(self) -> None:
        if self._current is not None:
            self._current.close()
            self._current = None
        self.closed = True

    def __enter__(self) -> ChunkWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class ChunkReader:
    """Binary source reading a sequence of chunk files as one stream."""

    def __init__(self, chunks: list[Path]) -> None:
        self._pending = list(chunks)
        self._current = None
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        parts: list[bytes] = []
        remaining = size
        while remaining != 0:
            if self._current is None:
                if not self._pending:
                    break
                self._current = self._pending.pop(0).open("rb")
            data = self._current.read(remaining if remaining > 0 else -1)
            if not data:
                self._current.close()
                self._current = None
                continue
            parts.append(data)
            if remaining > 0:
                remaining -= len(data)
        return b"".join(parts)

    def close(self) -> None:
        if self._current is not None:
            self._current.close()
            self._current = None
        self.closed = True

    def __enter__(self) -> ChunkReader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def write_archive(
    source: Path,
    directory: Path,
    *,
    archive_name: str = DEFAULT_ARCHIVE_NAME,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[Path]:
    """Stream ``source`` as tar.gz into chunk files in ``directory``.

    Entries are stored under ``source.name`` with permissions preserved.

    Returns:
        Chunk files in numeric order.
    """
    with ChunkWriter(directory, archive_name, chunk_size) as writer:
        with tarfile.open(fileobj=writer, mode="w|gz") as tar:
            tar.add(source, arcname=source.name)
    return writer.chunks


def restore_archive(
    archive_dir: Path,
    destination: Path,
    *,
    archive_name: str = DEFAULT_ARCHIVE_NAME,
) -> list[Path]:
    """Reassemble the chunks in ``archive_dir`` and extract them.

    Returns:
        Top-level paths created under ``destination``.

    Raises:
        ArchivingError: If no chunks exist or the stream is corrupt.
    """
    chunks = list_chunks(archive_dir, archive_name)
    if not chunks:
        raise ArchivingError(
            archive_dir.name,
            f"No '{archive_name}' chunks found in {archive_dir}",
        )

    destination.mkdir(parents=True, exist_ok=True)
    try:
        with ChunkReader(chunks) as reader, tarfile.open(fileobj=reader, mode="r|gz") as tar:
            tar.extractall(destination, filter="tar")
            roots = {name.split("/", 1)[0] for name in tar.getnames()}
    except (OSError, tarfile.TarError, EOFError) as e:
        raise ArchivingError(
            archive_dir.name,
            f"Could not restore archive from {archive_dir}",
            internal_details=f"{type(e).__name__}: {e}",
        ) from e

    logger.info("archive_restored", archive_dir=str(archive_dir), chunks=len(chunks))
    return sorted(destination / root for root in roots)


class Archiver:
    """Splits each compiled target into chunk files.

    Failures are isolated per target: the partial archive directory and any
    stray chunks are removed and the next target is processed.

    Attributes:
        ctx: Build context
        archive_name: Base name of chunk files
        chunk_size: Maximum bytes per chunk
    """

    def __init__(
        self,
        ctx: BuildContext,
        *,
        archive_name: str = DEFAULT_ARCHIVE_NAME,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.ctx = ctx
        self.archive_name = archive_name
        self.chunk_size = chunk_size
        self._log = logger.bind(component="archiver", project=ctx.project_name)

    def archive_all(self) -> list[PhaseResult]:
        """Archive every target in order.

        Returns:
            One PhaseResult per target, named "archive:<target>".
        """
        return [self.archive_target(target) for target in self.ctx.targets]

    def archive_target(self, target: str) -> PhaseResult:
        """Archive one compiled target into ``<output_dir>/<target>_archived``."""
        start_time = time.monotonic()
        archive_dir = self.ctx.archive_dir(target)
        name = f"archive:{target}"

        try:
            chunks = self._archive(target, archive_dir)
        except ArchivingError as e:
            self._log.warning("archive_failed", target=target, error=e.internal_details)
            self._cleanup(archive_dir)
            return PhaseResult(
                name=name,
                status=PhaseStatus.WARNING,
                message=e.user_message,
                warnings=[e.user_message],
                details={"archive_dir": str(archive_dir)},
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )

        self._log.info("archive_completed", target=target, chunks=len(chunks))
        return PhaseResult(
            name=name,
            status=PhaseStatus.OK,
            message=f"Archiving complete for {target.upper()} @{archive_dir}",
            details={"archive_dir": str(archive_dir), "chunks": [c.name for c in chunks]},
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )

    def _archive(self, target: str, archive_dir: Path) -> list[Path]:
        bundle = self.ctx.bundle_dir(target)
        try:
            if archive_dir.exists():
                shutil.rmtree(archive_dir)
            if not bundle.is_dir():
                raise ArchivingError(target, f"No compiled bundle for {target.upper()} at {bundle}")
            archive_dir.mkdir(parents=True)

            chunks = write_archive(
                bundle,
                self.ctx.output_dir,
                archive_name=self.archive_name,
                chunk_size=self.chunk_size,
            )
            moved = []
            for chunk in chunks:
                moved.append(Path(shutil.move(chunk, archive_dir / chunk.name)))
            return moved
        except (OSError, tarfile.TarError) as e:
            raise ArchivingError(target, internal_details=f"{type(e).__name__}: {e}") from e

    def _cleanup(self, archive_dir: Path) -> None:
        shutil.rmtree(archive_dir, ignore_errors=True)
        if self.ctx.output_dir.is_dir():
            for chunk in list_chunks(self.ctx.output_dir, self.archive_name):
                chunk.unlink(missing_ok=True)
        self._log.info("archive_cleanup_completed", archive_dir=str(archive_dir))
