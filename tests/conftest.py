import logging
from typing import Any, Dict, List, Tuple

import pytest

from mock_installer import util
from mock_installer.persistent_environment import (
    ENVIRONMENT_SUBKEY,
    InMemoryPersistentEnvironment,
)


class FakeRegistryKey:
    def __init__(self, values: Dict[str, Tuple[Any, int]]) -> None:
        self.values = values
        self.closed = False

    def __enter__(self) -> "FakeRegistryKey":
        return self

    def __exit__(self, *args: Any) -> None:
        self.closed = True


class FakeWinreg:
    """Stands in for the `winreg` API, so the registry store can be tested on any platform"""

    HKEY_CURRENT_USER = "HKEY_CURRENT_USER"
    KEY_READ = 0x20019
    KEY_WRITE = 0x20006
    REG_SZ = 1
    REG_EXPAND_SZ = 2
    REG_DWORD = 4

    def __init__(self) -> None:
        self.keys: Dict[Tuple[str, str], Dict[str, Tuple[Any, int]]] = {
            (self.HKEY_CURRENT_USER, ENVIRONMENT_SUBKEY): {}
        }
        self.opened: List[Tuple[str, int]] = []

    @property
    def environment(self) -> Dict[str, Tuple[Any, int]]:
        return self.keys[(self.HKEY_CURRENT_USER, ENVIRONMENT_SUBKEY)]

    def OpenKey(self, root: str, sub_key: str, reserved: int, access: int) -> Any:
        self.opened.append((sub_key, access))
        try:
            values = self.keys[(root, sub_key)]
        except KeyError:
            raise FileNotFoundError(2, "The system cannot find the file specified")
        return FakeRegistryKey(values)

    def QueryValueEx(self, key: FakeRegistryKey, name: str) -> Tuple[Any, int]:
        try:
            return key.values[name]
        except KeyError:
            raise FileNotFoundError(2, "The system cannot find the file specified")

    def SetValueEx(
        self, key: FakeRegistryKey, name: str, reserved: int, value_type: int, value: Any
    ) -> None:
        key.values[name] = (value, value_type)

    def DeleteValue(self, key: FakeRegistryKey, name: str) -> None:
        try:
            del key.values[name]
        except KeyError:
            raise FileNotFoundError(2, "The system cannot find the file specified")


@pytest.fixture()
def fake_winreg() -> FakeWinreg:
    return FakeWinreg()


@pytest.fixture()
def in_memory_environment() -> InMemoryPersistentEnvironment:
    return InMemoryPersistentEnvironment({"PATH": r"%USERPROFILE%\.cargo\bin;C:\Windows"})


@pytest.fixture()
def reset_logging():
    yield
    root_logger = logging.getLogger()
    for handler in (util._STDOUT_HANDLER, util._STDERR_HANDLER):
        if handler is not None:
            root_logger.removeHandler(handler)
    util._STDOUT_HANDLER = None
    util._STDERR_HANDLER = None
    util._DEFAULT_LOGGER = None
    util._LOGGING_SET_UP = False
