"""Shared library for the FRM downloader.

- manifest.py: rom pack model and dependency expansion
- profiles.py: emulator profiles and rom id resolution
- fetch.py: HTTP download with progress
- archive.py: zip integrity checks and selective extraction
"""

# No exports needed - import directly from submodules
__all__ = []
