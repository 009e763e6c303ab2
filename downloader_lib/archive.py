"""Archive integrity checks and selective extraction."""
import logging
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import Iterable, List, Optional

from downloader_lib.manifest import ExtractPair
from utils.constants import ARCHIVE_EXTENSIONS
from utils.filenames import is_enclosed_name, is_within


def verify_archive(path: Path, logger: Optional[logging.Logger] = None) -> bool:
    """Delete ``path`` if it is an archive that cannot be trusted.

    Only files with an archive extension are inspected. A zip that cannot be
    opened, or that holds any member whose name escapes the extraction root,
    is removed so the next run downloads it again.

    Returns True when the file is still on disk afterwards.
    """
    path = Path(path)
    if path.suffix.lower() not in ARCHIVE_EXTENSIONS:
        return path.exists()
    if not path.exists():
        return False

    valid = True
    try:
        with zipfile.ZipFile(path, 'r') as zf:
            for info in zf.infolist():
                if not is_enclosed_name(info.filename):
                    valid = False
                    break
    except zipfile.BadZipFile:
        valid = False

    if not valid:
        print(f"   - Error reading zip file [{path}] (deleting).")
        if logger:
            logger.warning(f"Corrupt or unsafe archive removed: {path}")
        path.unlink()
        return False
    return True


def build_extraction_plan(pairs: Iterable[ExtractPair], output_root: Path,
                          logger: Optional[logging.Logger] = None) -> List[ExtractPair]:
    """Pairs whose destination under ``output_root`` is not on disk yet.

    Destinations that would land outside ``output_root`` can never be
    extracted, so they are reported here and left out of the plan.
    """
    output_root = Path(output_root)
    plan = []
    for pair in pairs:
        dest = output_root / pair.dst
        if not is_within(output_root, dest):
            print(f"  - Error: Destination {pair.dst} escapes [{output_root}], skipping.")
            if logger:
                logger.warning(f"Ignoring {pair.src}: destination {pair.dst} is outside {output_root}")
            continue
        if not dest.exists():
            plan.append(pair)
    return plan


def extract_members(archive_path: Path, plan: Iterable[ExtractPair], output_root: Path,
                    logger: Optional[logging.Logger] = None) -> List[Path]:
    """Copy the planned members out of ``archive_path`` and delete the archive.

    Members missing from the archive, destinations that would land outside
    ``output_root`` and members with corrupt data are reported and skipped.
    The archive is removed once every pair has been handled.

    Returns the destination paths that were written.
    """
    archive_path = Path(archive_path)
    output_root = Path(output_root)
    written = []

    try:
        zf = zipfile.ZipFile(archive_path, 'r')
    except zipfile.BadZipFile:
        print(f"  ✗ Downloaded file is not a valid zip [{archive_path}] (deleting).")
        archive_path.unlink()
        raise

    with zf:
        names = set(zf.namelist())
        for pair in plan:
            if pair.src not in names:
                print(f"  - Error: File {pair.src} not found in zip [{archive_path}]")
                print("    - ExtractList in the JSON data is likely malformed. This is not a fault of this downloader.")
                if logger:
                    logger.warning(f"Member {pair.src} missing from {archive_path}")
                continue

            dest = output_root / pair.dst
            if not is_within(output_root, dest):
                print(f"  - Error: Destination {pair.dst} escapes [{output_root}], skipping.")
                if logger:
                    logger.warning(f"Refusing to extract {pair.src} outside {output_root}: {pair.dst}")
                continue

            dest.parent.mkdir(parents=True, exist_ok=True)
            print(f"  - Extracting {pair.src} to {dest}...")
            try:
                with zf.open(pair.src) as src, open(dest, 'wb') as out:
                    shutil.copyfileobj(src, out)
            except (zipfile.BadZipFile, zlib.error) as e:
                print(f"  - Error: File {pair.src} failed to extract from zip [{archive_path}]")
                if logger:
                    logger.warning(f"Extraction of {pair.src} from {archive_path} failed: {e}")
                if dest.exists():
                    dest.unlink()
                continue
            written.append(dest)

    archive_path.unlink()
    if logger:
        logger.info(f"Extracted {len(written)} member(s) from {archive_path.name}; archive removed")
    return written
