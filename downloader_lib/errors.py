"""Exceptions shared by the downloader library."""


class ConfigurationError(Exception):
    """Unknown emulator/platform or an unusable manifest file.

    These end the run gracefully: the message is shown and the process exits
    normally.
    """
