"""Zip implementation of the archive service."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path, PurePosixPath

from osccpipe.domain.errors import StageIOError

log = logging.getLogger(__name__)


class ZipArchiveService:
    """Expand an archive into a directory and compress a directory back."""

    compression = zipfile.ZIP_DEFLATED

    def unpack(self, archive: Path, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        try:
            with zipfile.ZipFile(archive) as source:
                for member in source.infolist():
                    if member.is_dir():
                        continue
                    _check_member(member.filename, archive)
                    source.extract(member, destination)
                log.debug("Unpacked %d entries from %s", len(source.infolist()), archive)
        except StageIOError:
            raise
        except (OSError, zipfile.BadZipFile) as exc:
            raise StageIOError(f"Cannot unpack archive {archive}: {exc}") from exc

    def pack(self, source: Path, archive: Path) -> None:
        files = sorted(path for path in source.rglob("*") if path.is_file())
        try:
            with zipfile.ZipFile(archive, "w", compression=self.compression) as target:
                for path in files:
                    target.write(path, path.relative_to(source).as_posix())
        except OSError as exc:
            raise StageIOError(f"Cannot write archive {archive}: {exc}") from exc
        log.debug("Packed %d entries into %s", len(files), archive)


def _check_member(name: str, archive: Path) -> None:
    path = PurePosixPath(name)
    if path.is_absolute() or ".." in path.parts:
        raise StageIOError(f"Archive {archive} contains an unsafe entry: {name}")
