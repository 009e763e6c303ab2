"""Shared constants for the FRM downloader."""

VERSION = "0.3.1"

# Sent on every HEAD/GET so mirror operators can identify the client
USER_AGENT = f"FRM-Downloader/{VERSION} (python-requests)"

# Progress line is redrawn at most once per interval (seconds)
DL_ANIM_RATE = 1.0 / 10.0
DOWNLOAD_ANIM = ['|', '/', '-', '\\']

DOWNLOAD_CHUNK_SIZE = 8192

ARCHIVE_EXTENSIONS = ['.zip']

MANIFEST_SUFFIX = '_roms.json'
CONFIG_FILENAME = 'frm_config.json'
LOG_FILENAME = 'frm_downloader.log'

# Built-in emulator profiles. Keys mirror the fields of EmulatorProfile.
EMULATOR_INFO_TABLE = {
    'fbneo': {
        'roms_folder': 'fbneo/ROMs',
        'platforms': {
            'md': 'fbneo/ROMs/megadrive',
            'gg': 'fbneo/ROMs/gamegear',
            'cv': 'fbneo/ROMs/coleco',
            'msx': 'fbneo/ROMs/msx',
            'sms': 'fbneo/ROMs/sms',
            'nes': 'fbneo/ROMs/nes',
            'pce': 'fbneo/ROMs/pce',
            'sg1k': 'fbneo/ROMs/sg1000',
            'tg': 'fbneo/ROMs/tg16',
        },
    },
    'nulldc': {
        'roms_folder': 'nulldc/nulldc-1-0-4-en-win',
    },
    'fc1': {
        'roms_folder': 'ggpofba/ROMs',
        'prefix': 'fc1_',
        'dont_add_prefix_to_json_file': True,
    },
    'flycast': {
        'roms_folder': 'flycast/ROMs',
    },
    'duckstation': {
        'roms_folder': 'duckstation/ROMs',
    },
    'snes9x': {
        'roms_folder': 'snes9x/ROMs',
    },
}
