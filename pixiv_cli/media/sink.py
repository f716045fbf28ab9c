"""
Commits downloaded bytes to disk.

The sink is the only component that touches the filesystem. It reports
rejected paths (illegal names, names that are too long) separately from
other failures so the caller can retry with a simpler path.
"""

import asyncio
import errno
import logging
import os
from contextlib import suppress
from enum import Enum
from pathlib import Path

import aiofiles

from pixiv_cli.exceptions import DownloadCommitFailed, PathRejected
from pixiv_cli.utils.path import create_dir

log = logging.getLogger(__name__)

_PATH_REJECTION_ERRNOS = {errno.ENAMETOOLONG, errno.EINVAL, errno.EILSEQ}
_PATH_REJECTION_MARKERS = ("invalid filename", "path too long")


class ConflictPolicy(str, Enum):
    UNIQUIFY = "uniquify"
    OVERWRITE = "overwrite"


def is_path_rejection(error: BaseException) -> bool:
    """True when a commit failure means 'try another path' rather than 'give up'."""
    if isinstance(error, PathRejected):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _PATH_REJECTION_MARKERS)


def _uniquify(path: Path) -> Path:
    counter = 1
    candidate = path
    while candidate.exists():
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        counter += 1
    return candidate


class FileSystemSink:
    """Writes assets below an output directory."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir).expanduser().resolve()

    def _target_for(self, relative_path: str) -> Path:
        target = (self.output_dir / relative_path).resolve()
        if self.output_dir not in target.parents:
            raise PathRejected(f"Invalid filename: '{relative_path}' escapes the output directory.")
        return target

    async def commit(
        self,
        data: bytes,
        target_path: str,
        conflict_policy: ConflictPolicy = ConflictPolicy.UNIQUIFY,
    ) -> Path:
        """
        Writes data to target_path (relative to the output directory).

        Returns:
            The absolute path that was written.

        Raises:
            PathRejected: The path is invalid or too long for this filesystem.
            DownloadCommitFailed: Any other I/O failure.
        """
        temp_path = None
        try:
            target = self._target_for(target_path)
            await asyncio.to_thread(create_dir, target.parent)
            if conflict_policy == ConflictPolicy.UNIQUIFY:
                target = await asyncio.to_thread(_uniquify, target)

            temp_path = target.with_name(f"{target.name}.part")
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(data)
            await asyncio.to_thread(os.replace, temp_path, target)
            temp_path = None
        except OSError as e:
            if e.errno in _PATH_REJECTION_ERRNOS:
                raise PathRejected(
                    f"Invalid filename or path too long: '{target_path}' ({e.strerror})"
                ) from e
            raise DownloadCommitFailed(f"Could not save '{target_path}': {e}") from e
        finally:
            if temp_path is not None:
                with suppress(OSError):
                    temp_path.unlink()

        log.debug(f"Saved {len(data)} bytes to {target}")
        return target
