"""Save and restore a persistent, user-scoped environment variable

Some code under test modifies the PATH stored in the user's persistent environment (on Windows,
`HKEY_CURRENT_USER\\Environment`).  That outlives the test process, so tests must save the
value before and restore it afterwards:

    >>> from mock_installer.persistent_environment import (
    ...     InMemoryPersistentEnvironment,
    ...     preserved_persistent_value,
    ... )
    >>> store = InMemoryPersistentEnvironment({"PATH": "%USERPROFILE%\\\\bin"})
    >>> with preserved_persistent_value(store=store):
    ...     store.set_expandable_value("PATH", "changed by the test")
    >>> store.get_value("PATH")
    '%USERPROFILE%\\\\bin'

The store is a single machine-global resource.  Nothing here serializes concurrent users.
"""

import contextlib
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from mock_installer.util import _debug_log

PERSISTENT_PATH_VARIABLE = "PATH"
ENVIRONMENT_SUBKEY = "Environment"

# Value kinds as used by InMemoryPersistentEnvironment
PLAIN_STRING = "string"
EXPANDABLE_STRING = "expandable-string"


class PersistentEnvironmentStore(ABC):
    """A user-scoped key/value store that survives process exit (no instantiation)"""

    __slots__ = ()

    @abstractmethod
    def get_value(self, name: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set_expandable_value(self, name: str, value: str) -> None:
        """Store `value` as an expandable string

        Variable references in the value (such as `%USERPROFILE%`) are stored as-is and
        only expanded by whoever reads the variable.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_value(self, name: str) -> None:
        """Delete `name` from the store; it is not an error if it is already absent"""
        raise NotImplementedError


class NullPersistentEnvironment(PersistentEnvironmentStore):
    __slots__ = ()

    def get_value(self, name: str) -> Optional[str]:
        return None

    def set_expandable_value(self, name: str, value: str) -> None:
        pass

    def delete_value(self, name: str) -> None:
        pass


class WindowsRegistryEnvironment(PersistentEnvironmentStore):
    __slots__ = ("_winreg",)

    def __init__(self, registry_api: Optional[Any] = None) -> None:
        if registry_api is None:
            import winreg as registry_api
        self._winreg = registry_api

    @contextlib.contextmanager
    def _environment_key(self) -> Iterator[Any]:
        winreg = self._winreg
        with winreg.OpenKey(
            winreg.HKEY_CURRENT_USER,
            ENVIRONMENT_SUBKEY,
            0,
            winreg.KEY_READ | winreg.KEY_WRITE,
        ) as key:
            yield key

    def get_value(self, name: str) -> Optional[str]:
        winreg = self._winreg
        with self._environment_key() as key:
            try:
                value, value_type = winreg.QueryValueEx(key, name)
            except FileNotFoundError:
                return None
        if value_type not in (winreg.REG_SZ, winreg.REG_EXPAND_SZ):
            return None
        return value

    def set_expandable_value(self, name: str, value: str) -> None:
        winreg = self._winreg
        with self._environment_key() as key:
            winreg.SetValueEx(key, name, 0, winreg.REG_EXPAND_SZ, value)

    def delete_value(self, name: str) -> None:
        with self._environment_key() as key:
            try:
                self._winreg.DeleteValue(key, name)
            except OSError as e:
                _debug_log(f"Ignoring failure to delete {name}: {e}")


class InMemoryPersistentEnvironment(PersistentEnvironmentStore):
    """Dictionary backed store for tests of code that uses the persistent environment"""

    __slots__ = ("_values",)

    def __init__(self, initial_values: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, Tuple[str, str]] = {}
        if initial_values:
            for name, value in initial_values.items():
                self._values[name] = (value, PLAIN_STRING)

    def get_value(self, name: str) -> Optional[str]:
        entry = self._values.get(name)
        return entry[0] if entry is not None else None

    def value_kind(self, name: str) -> Optional[str]:
        entry = self._values.get(name)
        return entry[1] if entry is not None else None

    def set_expandable_value(self, name: str, value: str) -> None:
        self._values[name] = (value, EXPANDABLE_STRING)

    def delete_value(self, name: str) -> None:
        self._values.pop(name, None)


def default_persistent_store() -> PersistentEnvironmentStore:
    if os.name == "nt":
        return WindowsRegistryEnvironment()
    return NullPersistentEnvironment()


def read_persistent_value(
    name: str = PERSISTENT_PATH_VARIABLE,
    *,
    store: Optional[PersistentEnvironmentStore] = None,
) -> Optional[str]:
    if store is None:
        store = default_persistent_store()
    return store.get_value(name)


def write_persistent_value(
    previous: Optional[str],
    name: str = PERSISTENT_PATH_VARIABLE,
    *,
    store: Optional[PersistentEnvironmentStore] = None,
) -> None:
    """Restore `name` to a value previously returned by `read_persistent_value`

    :param previous: The saved value. If None, the variable is deleted (best effort).
    :param name: The name of the variable
    :param store: The store to use. Defaults to the platform's persistent store.
    """
    if store is None:
        store = default_persistent_store()
    if previous is not None:
        _debug_log(f"Restoring persistent {name}")
        store.set_expandable_value(name, previous)
    else:
        _debug_log(f"Removing persistent {name}")
        store.delete_value(name)


@contextlib.contextmanager
def preserved_persistent_value(
    name: str = PERSISTENT_PATH_VARIABLE,
    *,
    store: Optional[PersistentEnvironmentStore] = None,
) -> Iterator[Optional[str]]:
    if store is None:
        store = default_persistent_store()
    saved = read_persistent_value(name, store=store)
    try:
        yield saved
    finally:
        write_persistent_value(saved, name, store=store)
