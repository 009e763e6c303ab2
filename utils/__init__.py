# Utilities package for frm-downloader
from .filenames import artifact_name, source_name_from_url, is_enclosed_name, is_within
from .constants import VERSION, USER_AGENT, ARCHIVE_EXTENSIONS, EMULATOR_INFO_TABLE

__all__ = [
    "artifact_name", "source_name_from_url", "is_enclosed_name", "is_within",
    "VERSION", "USER_AGENT", "ARCHIVE_EXTENSIONS", "EMULATOR_INFO_TABLE",
]
