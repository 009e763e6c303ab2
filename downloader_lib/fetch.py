"""Network fetch helpers for the FRM downloader."""
import logging
import os
import sys
import time
from pathlib import Path
from typing import Callable, Optional

import requests

from utils.constants import DL_ANIM_RATE, DOWNLOAD_ANIM, DOWNLOAD_CHUNK_SIZE, USER_AGENT

PARTIAL_SUFFIX = '.part'


def _request_headers() -> dict:
    """Headers sent with every request."""
    return {'User-Agent': USER_AGENT}


class ProgressReporter:
    """Rate-limited single-line progress display.

    Elapsed time is accumulated between updates; a line is only drawn once
    the accumulator passes ``interval`` seconds, after which it starts over.
    """

    def __init__(self, display_name: str, total_size: int, interval: float = DL_ANIM_RATE,
                 clock: Callable[[], float] = time.monotonic, stream=None):
        self.display_name = display_name
        self.total_size = total_size
        self.interval = interval
        self.clock = clock
        self.stream = stream if stream is not None else sys.stdout
        self.frame = 0
        self.emitted = 0
        self._elapsed = 0.0
        self._last = clock()

    def update(self, downloaded: int) -> bool:
        """Account for one chunk; return True if a line was drawn."""
        now = self.clock()
        self._elapsed += now - self._last
        self._last = now
        if self._elapsed <= self.interval:
            return False
        self._elapsed = 0.0

        spin_char = DOWNLOAD_ANIM[self.frame]
        self.frame = (self.frame + 1) % len(DOWNLOAD_ANIM)
        if self.total_size > 0:
            percent = (downloaded / self.total_size) * 100
            line = f"  {spin_char} Downloading {self.display_name}: {percent:>8.4f}%...      "
        else:
            # Unknown size, just show downloaded amount
            downloaded_mb = downloaded / (1024 * 1024)
            line = f"  {spin_char} Downloading {self.display_name}: {downloaded_mb:.2f} MB...      "
        print(line, end='\r', flush=True, file=self.stream)
        self.emitted += 1
        return True


def fetch_file(session: requests.Session, url: str, display_name: str, destination: Path,
               chunk_size: int = DOWNLOAD_CHUNK_SIZE, progress_interval: float = DL_ANIM_RATE,
               clock: Callable[[], float] = time.monotonic,
               logger: Optional[logging.Logger] = None) -> bool:
    """Download ``url`` to ``destination``.

    A HEAD probe runs first; anything but 200 is reported and nothing is
    written. The body is then streamed into ``<destination>.part`` and renamed
    onto ``destination`` only once the stream has completed, so an
    interrupted download never looks finished on the next run.

    Network and filesystem errors are not retried; they propagate after the
    partial file is removed.

    Returns:
        True when the file was written, False when the probe failed.
    """
    destination = Path(destination)
    headers = _request_headers()
    start = clock()

    # check the file exists before opening the stream
    probe = session.head(url, headers=headers, allow_redirects=True)
    if probe.status_code != 200:
        print("  Error: File failed to download.")
        if logger:
            logger.warning(f"HEAD {url} returned HTTP {probe.status_code}")
        return False

    partial = destination.with_name(destination.name + PARTIAL_SUFFIX)
    downloaded = 0
    response = session.get(url, headers=headers, stream=True, allow_redirects=True)
    try:
        response.raise_for_status()
        total_size = int(response.headers.get('content-length', 0) or 0)
        if logger:
            logger.info(f"Downloading {url} -> {destination} ({total_size} bytes)")

        reporter = ProgressReporter(display_name, total_size, interval=progress_interval, clock=clock)
        with open(partial, 'wb') as f:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if chunk:
                    f.write(chunk)
                    downloaded += len(chunk)
                    reporter.update(downloaded)
    except BaseException:
        if partial.exists():
            partial.unlink()
        raise
    finally:
        # release the pooled connection
        response.close()
    os.replace(partial, destination)

    elapsed = clock() - start
    print(f"  * File {display_name} downloaded in {elapsed:.2f}s.       ")
    if logger:
        logger.info(f"Downloaded {display_name} ({downloaded} bytes) in {elapsed:.2f}s")
    return True
