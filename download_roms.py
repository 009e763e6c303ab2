#!/usr/bin/env python3
"""
FRM Downloader (Fightcade ROM manager)

Fetches the ROMs an emulator needs for one game, using the local JSON rom
packs (``<emulator>[_<platform>]_roms.json``) as the source of download URLs,
dependencies and archive layout.

Usage:
    python download_roms.py <emulator> <rom_id>
    python download_roms.py fbneo md_sonic2
    python download_roms.py flycast mvsc2 --folder "D:/Fightcade/emulator" --no-prompt

Key behavior:
- The requested rom comes first in the queue, followed by the roms it
  ``require``s (one level; ``--recursive`` walks the whole graph).
- Files that are already present are skipped, so re-running is cheap. Zip
  files on disk are checked first and deleted if they are unsafe or corrupt.
- Entries with ``extract_to`` are downloaded as archives; only the listed
  members are copied out and the archive is removed afterwards.
- Downloads go to ``<name>.part`` and are renamed when complete.

Configuration note:
- An optional ``frm_config.json`` in the base directory (or ``--config``) can add
  emulator profiles and tune the download chunk size and progress rate.
"""

import argparse
import json
import logging
import sys
from collections import deque
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Iterable, Optional

import requests
from pydantic import ValidationError

from downloader_lib.archive import build_extraction_plan, extract_members, verify_archive
from downloader_lib.errors import ConfigurationError
from downloader_lib.fetch import fetch_file
from downloader_lib.manifest import Manifest, expand_dependencies, load_manifest
from downloader_lib.profiles import RomTarget, load_profiles, resolve_target
from utils.constants import (
    CONFIG_FILENAME,
    DL_ANIM_RATE,
    DOWNLOAD_CHUNK_SIZE,
    EMULATOR_INFO_TABLE,
    LOG_FILENAME,
    VERSION,
)
from utils.filenames import artifact_name, is_within, source_name_from_url

# Outcomes of a single work item
NOT_FOUND = 'not_found'
SKIPPED = 'skipped'
DOWNLOADED = 'downloaded'
EXTRACTED = 'extracted'
FAILED = 'failed'


def load_config(cfg_path: Path) -> Dict:
    """Read the optional config file; a missing or broken file means defaults."""
    cfg = {}
    if cfg_path.exists():
        try:
            with open(cfg_path, 'r', encoding='utf-8') as f:
                cfg = json.load(f)
        except (OSError, json.JSONDecodeError):
            cfg = {}
    if not isinstance(cfg, dict):
        cfg = {}
    # sections read with .get() must be objects
    for section in ('defaults', 'network'):
        if not isinstance(cfg.get(section, {}), dict):
            cfg[section] = {}
    return cfg


def _config_number(section: Dict, key: str, cast, default):
    """Read a numeric setting, falling back to ``default`` on a bad value."""
    try:
        value = cast(section.get(key, default))
    except (TypeError, ValueError, OverflowError):
        return default
    return value if value > 0 else default


def default_base_path() -> Path:
    """Directory used when ``--folder`` is not given.

    Run as a script (``python download_roms.py``) this is the script's own
    folder. Run through the installed ``frm-download`` command the module
    lives in site-packages, so the current directory is used instead.
    """
    script = Path(sys.argv[0]).resolve() if sys.argv and sys.argv[0] else None
    if script is not None and script == Path(__file__).resolve():
        return script.parent
    return Path.cwd()


def setup_logger(base_path: Path) -> Optional[logging.Logger]:
    """Per-base-directory logger writing to a rotating file."""
    try:
        log_path = Path(base_path) / LOG_FILENAME
        logger = logging.getLogger(f'RomDownloader:{base_path}')
        # Avoid adding duplicate handlers when reusing the same logger
        if not logger.handlers:
            handler = RotatingFileHandler(str(log_path), maxBytes=5 * 1024 * 1024, backupCount=3, encoding='utf-8')
            fmt = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
            handler.setFormatter(fmt)
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)
        return logger
    except OSError:
        # Logging should never block downloader operation
        return None


class RomDownloader:
    """Drains a work queue of rom ids, one rom at a time."""

    def __init__(self, base_path: Path, target: RomTarget, manifest: Manifest,
                 session: Optional[requests.Session] = None,
                 chunk_size: int = DOWNLOAD_CHUNK_SIZE,
                 progress_interval: float = DL_ANIM_RATE,
                 logger: Optional[logging.Logger] = None):
        """
        Args:
            base_path: Directory the roms folders are relative to
            target: Resolved emulator/platform/rom information
            manifest: Parsed rom pack for the target
            session: Shared HTTP session (one per run)
            chunk_size: Bytes read per streamed chunk
            progress_interval: Minimum seconds between progress redraws
        """
        self.base_path = Path(base_path)
        self.target = target
        self.manifest = manifest
        self.session = session if session is not None else requests.Session()
        self.chunk_size = chunk_size
        self.progress_interval = progress_interval
        self.logger = logger
        self.output_path = self.base_path / target.roms_folder

    def download_queue(self, queue: Iterable[str]) -> Dict[str, int]:
        """Acquire every rom in ``queue`` in order and return outcome counts."""
        summary = {NOT_FOUND: 0, SKIPPED: 0, DOWNLOADED: 0, EXTRACTED: 0, FAILED: 0}
        pending = deque(queue)
        while pending:
            rom = pending.popleft()
            outcome = self.acquire(rom)
            summary[outcome] += 1
        return summary

    def acquire(self, rom: str) -> str:
        """Skip, download, or download-and-extract a single rom."""
        try:
            rom_info = self.manifest.get(rom)
        except ValidationError as e:
            print(f"  ✗ Rom [{rom}] has an invalid entry in [{self.target.json_file}], skipping.")
            if self.logger:
                self.logger.warning(f"Invalid manifest entry for {rom}: {e}")
            return FAILED
        if rom_info is None:
            print(f"   - Rom [{rom}] not found for [{self.target.json_file}].")
            if self.logger:
                self.logger.warning(f"Rom {rom} not found in {self.target.json_file}")
            return NOT_FOUND

        source_file = source_name_from_url(rom_info.download)
        output_file = self.output_path / artifact_name(rom_info.download, rom_info.copy_to)
        if not is_within(self.output_path, output_file):
            print(f"  ✗ Rom [{rom}] would be written outside [{self.output_path}], skipping.")
            if self.logger:
                self.logger.warning(f"Refusing to write {output_file} for {rom}")
            return FAILED

        plan = []
        if rom_info.is_archive:
            plan = build_extraction_plan(rom_info.extract_to, self.output_path, logger=self.logger)
            if not plan:
                print("  Files already exist.")
                return SKIPPED
        else:
            verify_archive(output_file, logger=self.logger)
            if output_file.exists():
                print(f"  File {output_file} already exists.")
                return SKIPPED

        output_file.parent.mkdir(parents=True, exist_ok=True)
        ok = fetch_file(
            self.session,
            rom_info.download,
            source_file,
            output_file,
            chunk_size=self.chunk_size,
            progress_interval=self.progress_interval,
            logger=self.logger,
        )
        if not ok:
            return FAILED

        if rom_info.is_archive:
            extract_members(output_file, plan, self.output_path, logger=self.logger)
            return EXTRACTED
        return DOWNLOADED


def fetch_rom(base_path: Path, emulator: str, rom_id: str, session: requests.Session,
              config: Optional[Dict] = None, recursive: bool = False,
              logger: Optional[logging.Logger] = None) -> Dict[str, int]:
    """Resolve the target, load its rom pack and download everything it needs.

    Raises:
        ConfigurationError: unknown emulator/platform or missing/broken rom pack.
    """
    config = config or {}
    base_path = Path(base_path)

    extra_profiles = config.get('emulators') or {}
    if not isinstance(extra_profiles, dict):
        raise ConfigurationError("'emulators' in the config file must be an object")
    table = dict(EMULATOR_INFO_TABLE)
    table.update(extra_profiles)
    target = resolve_target(load_profiles(table), emulator, rom_id)

    manifest_path = base_path / target.json_file
    if not manifest_path.exists():
        raise ConfigurationError(f"Missing file [{target.json_file}] (Missing FC2 JSON Pack?)")
    manifest = load_manifest(manifest_path)
    if logger:
        logger.info(f"Loaded {len(manifest)} entries from {manifest_path}")

    print("  Searching for required roms...")
    queue = expand_dependencies(manifest, target.rom_id, recursive=recursive, logger=logger)

    net = config.get('network') or {}
    if not isinstance(net, dict):
        net = {}
    downloader = RomDownloader(
        base_path,
        target,
        manifest,
        session=session,
        chunk_size=_config_number(net, 'chunk_size', int, DOWNLOAD_CHUNK_SIZE),
        progress_interval=_config_number(net, 'progress_interval', float, DL_ANIM_RATE),
        logger=logger,
    )
    return downloader.download_queue(queue)


def main(argv=None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description="FRM downloader: fetch the roms an emulator needs for a game")
    parser.add_argument('emulator', nargs='?', help='Emulator name (e.g. fbneo, flycast)')
    parser.add_argument('rom_id', nargs='?', help='Rom id, optionally prefixed with a platform (e.g. md_sonic2)')
    parser.add_argument('--folder', '-f', help='Base directory holding the rom packs and roms folders (default: script directory, or the current directory for the installed command)')
    parser.add_argument('--config', '-c', help=f'Path to {CONFIG_FILENAME} (default: inside the base directory)')
    parser.add_argument('--recursive', action='store_true', help='Also fetch dependencies of dependencies')
    parser.add_argument('--no-prompt', action='store_true', help='Do not wait for Enter before exiting')
    args = parser.parse_args(argv)

    print(f"\nFRM Downloader v{VERSION}")
    if not args.emulator or not args.rom_id:
        print("  Error: missing arguments. Syntax: frm <emulator> <rom_id>")
        return 0

    if args.folder:
        base_path = Path(args.folder).expanduser().resolve()
    else:
        base_path = default_base_path()

    cfg_path = Path(args.config).expanduser() if args.config else base_path / CONFIG_FILENAME
    cfg = load_config(cfg_path)
    defaults = cfg.get('defaults', {})
    recursive = args.recursive or bool(defaults.get('recursive', False))
    prompt = not args.no_prompt and bool(defaults.get('prompt', True))

    logger = setup_logger(base_path)
    if logger:
        logger.info(f"Run started: emulator={args.emulator} rom={args.rom_id} base={base_path}")

    exit_code = 0
    try:
        with requests.Session() as session:
            summary = fetch_rom(base_path, args.emulator, args.rom_id, session,
                                config=cfg, recursive=recursive, logger=logger)
        print(f"  Done: {summary[DOWNLOADED]} downloaded, {summary[EXTRACTED]} extracted, "
              f"{summary[SKIPPED]} already present, {summary[FAILED] + summary[NOT_FOUND]} failed.")
        if logger:
            logger.info(f"Run finished: {summary}")
    except ConfigurationError as e:
        print(f"  Error: {e}")
        if logger:
            logger.warning(f"Configuration error: {e}")
    except KeyboardInterrupt:
        print("\n\n⏸️  Download interrupted by user. Run again to resume.")
        exit_code = 1
    except Exception as e:
        print(f"\n\n❌ Unexpected error: {e}")
        if logger:
            logger.exception(f"Unexpected error: {e}")
        exit_code = 1

    if prompt:
        try:
            input("Press Enter to continue...")
        except EOFError:
            print()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
