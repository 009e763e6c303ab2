"""Emulator profiles and resolution of the requested rom id to a target."""
from typing import Dict, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from downloader_lib.errors import ConfigurationError
from utils.constants import MANIFEST_SUFFIX


class EmulatorProfile(BaseModel):
    """Where an emulator keeps its roms and how rom ids are normalized."""

    model_config = ConfigDict(extra="ignore")

    roms_folder: str = Field(..., description="Default output root, relative to the base directory")
    platforms: Optional[Dict[str, str]] = Field(None, description="platform-id -> output root override")
    prefix: Optional[str] = None
    dont_add_prefix_to_json_file: bool = False


class RomTarget(NamedTuple):
    emulator: str
    platform_id: str
    rom_id: str
    roms_folder: str
    json_file: str


def load_profiles(table: Dict[str, dict]) -> Dict[str, EmulatorProfile]:
    """Validate a raw emulator table (built-in or from the config file)."""
    profiles = {}
    for name, raw in table.items():
        try:
            profiles[name] = EmulatorProfile.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid profile for emulator [{name}]: {e}") from e
    return profiles


def manifest_filename(emulator: str, platform_id: str = '') -> str:
    if platform_id:
        return f"{emulator}_{platform_id}{MANIFEST_SUFFIX}"
    return f"{emulator}{MANIFEST_SUFFIX}"


def resolve_target(profiles: Dict[str, EmulatorProfile], emulator: str, rom_id: str) -> RomTarget:
    """Work out the manifest file, output folder and normalized rom id.

    Emulators with ``platforms`` accept ids of the form ``<platform>_<rom>``;
    the part before the first underscore selects the platform folder and
    manifest. Profiles with ``dont_add_prefix_to_json_file`` strip their
    ``prefix`` from the id before it is looked up in the manifest.

    Raises:
        ConfigurationError: unknown emulator, or unknown platform for it.
    """
    profile = profiles.get(emulator)
    if profile is None:
        raise ConfigurationError(f"unknown emulator [{emulator}]")

    roms_folder = profile.roms_folder
    platform_id = ''
    if profile.platforms and '_' in rom_id:
        platform_id, rom_id = rom_id.split('_', 1)
        if platform_id not in profile.platforms:
            raise ConfigurationError(f"unknown platform [{platform_id}] for emulator [{emulator}]")
        roms_folder = profile.platforms[platform_id]

    if profile.dont_add_prefix_to_json_file and profile.prefix:
        if rom_id.startswith(profile.prefix):
            rom_id = rom_id[len(profile.prefix):]

    return RomTarget(
        emulator=emulator,
        platform_id=platform_id,
        rom_id=rom_id,
        roms_folder=roms_folder,
        json_file=manifest_filename(emulator, platform_id),
    )
