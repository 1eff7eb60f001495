import logging
import zipfile
import zlib
from pathlib import Path
from typing import Iterable

from .errors import ArchivingFailed
from .storage import remove_path

logger = logging.getLogger(__name__)


def write_archive(files: Iterable[Path], dest: Path) -> Path:
    """Bundle `files` into a zip at `dest` at maximum compression, in the given order.

    ZipFile.write copies each member from disk in chunks, so the bytes of all
    members are never held in memory at once. On failure the partial archive
    is removed and ArchivingFailed is raised.
    """
    members = list(files)
    try:
        with zipfile.ZipFile(dest, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for member in members:
                zf.write(member, arcname=member.name)
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error) as e:
        remove_path(dest)
        raise ArchivingFailed(f"failed to write archive {dest.name}: {e}") from e
    logger.debug("archived %d file(s) into %s", len(members), dest)
    return dest
