import os
from abc import ABC, abstractmethod

EXECUTABLE_MODE = 0o755


class FileModeSupport(ABC):
    """Applies file-mode bits to materialized files (no instantiation)"""

    __slots__ = ()

    @abstractmethod
    def mark_executable(self, fs_path: str) -> None:
        raise NotImplementedError


class PosixFileModeSupport(FileModeSupport):
    __slots__ = ()

    def mark_executable(self, fs_path: str) -> None:
        os.chmod(fs_path, EXECUTABLE_MODE)


class NoFileModeSupport(FileModeSupport):
    """For platforms without POSIX file modes, where nothing is applied"""

    __slots__ = ()

    def mark_executable(self, fs_path: str) -> None:
        pass


_POSIX_FILE_MODES = PosixFileModeSupport()
_NO_FILE_MODES = NoFileModeSupport()


def file_mode_support() -> FileModeSupport:
    if os.name == "posix":
        return _POSIX_FILE_MODES
    return _NO_FILE_MODES
