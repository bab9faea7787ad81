"""Exceptions raised by the locker's collaborators"""


class OpenFilesLockerError(Exception):
    """Base class for all locker errors"""


class ConfigError(OpenFilesLockerError):
    """Settings are missing or invalid"""


class EnumerationError(OpenFilesLockerError):
    """The open-file enumerator could not produce a listing"""


class TransportError(OpenFilesLockerError):
    """A peer's snapshot could not be fetched"""

    def __init__(self, location: str, message: str):
        super().__init__(f"{location}: {message}")
        self.location = location


class DecodeError(OpenFilesLockerError):
    """A staged snapshot could not be read or parsed"""
