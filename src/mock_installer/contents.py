import base64
import binascii
import dataclasses
import os
from enum import Enum
from typing import (
    Any,
    Dict,
    Iterable,
    Optional,
    Tuple,
    Union,
)

from mock_installer.exceptions import InstallerDescriptionError
from mock_installer.platform_support import FileModeSupport, file_mode_support
from mock_installer.util import ensure_dir, _debug_log, _is_debug_log_enabled

BytesLike = Union[bytes, bytearray, memoryview]


class EntryType(Enum):
    FILE = "file"
    DIRECTORY = "dir"

    @property
    def manifest_key(self) -> str:
        return self.value


KEY2ENTRY_TYPE = {et.manifest_key: et for et in EntryType}


def _as_bytes(contents: Union[BytesLike, str]) -> bytes:
    if isinstance(contents, str):
        return contents.encode("utf-8")
    return bytes(contents)


@dataclasses.dataclass(slots=True, frozen=True)
class MockContents:
    """The payload of a single file

    The `contents` buffer is immutable, so multiple entries can (and should) share the same
    `bytes` object when they have the same content.
    """

    contents: bytes
    executable: bool = False

    def materialize(
        self,
        fs_path: str,
        mode_support: Optional[FileModeSupport] = None,
    ) -> None:
        parent_dir = os.path.dirname(fs_path)
        if parent_dir:
            ensure_dir(parent_dir)
        with open(fs_path, "wb") as fd:
            fd.write(self.contents)
        if self.executable:
            if mode_support is None:
                mode_support = file_mode_support()
            mode_support.mark_executable(fs_path)
        if _is_debug_log_enabled():
            _debug_log(
                f"Materialized {fs_path} ({len(self.contents)} bytes,"
                f" executable={self.executable})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content_base64": base64.b64encode(self.contents).decode("ascii"),
            "executable": self.executable,
        }

    @classmethod
    def from_dict(cls, d: Any, where: str) -> "MockContents":
        if not isinstance(d, dict):
            raise InstallerDescriptionError(f"{where} must be a JSON object")
        has_text = "content" in d
        has_base64 = "content_base64" in d
        if has_text == has_base64:
            raise InstallerDescriptionError(
                f'{where} must have exactly one of "content" or "content_base64"'
            )
        if has_text:
            raw = d["content"]
            if not isinstance(raw, str):
                raise InstallerDescriptionError(f'{where}: "content" must be a string')
            contents = raw.encode("utf-8")
        else:
            raw = d["content_base64"]
            if not isinstance(raw, str):
                raise InstallerDescriptionError(
                    f'{where}: "content_base64" must be a string'
                )
            try:
                contents = base64.b64decode(raw, validate=True)
            except binascii.Error as e:
                raise InstallerDescriptionError(
                    f'{where}: "content_base64" is not valid base64: {e}'
                ) from e
        executable = d.get("executable", False)
        if not isinstance(executable, bool):
            raise InstallerDescriptionError(f'{where}: "executable" must be a boolean')
        return cls(contents, executable=executable)


@dataclasses.dataclass(slots=True, frozen=True)
class MockDirContents:
    children: Tuple[Tuple[str, MockContents], ...]

    def materialize(
        self,
        fs_path: str,
        mode_support: Optional[FileModeSupport] = None,
    ) -> None:
        for name, contents in self.children:
            contents.materialize(os.path.join(fs_path, name), mode_support)


Contents = Union[MockContents, MockDirContents]


@dataclasses.dataclass(slots=True, frozen=True)
class MockFile:
    """One entry of a mock component: either a file or a directory of files

    Use the `new`, `new_shared` or `new_dir` constructors:

        >>> exe = MockFile.new("bin/rustc", b"#!/bin/sh\\n").executable(True)
        >>> exe.manifest_line
        'file:bin/rustc'
        >>> MockFile.new_dir("lib/rustlib", [("a", b"", False)]).manifest_line
        'dir:lib/rustlib'
    """

    path: str
    contents: Contents

    @classmethod
    def new(cls, path: str, contents: Union[BytesLike, str]) -> "MockFile":
        return cls(path, MockContents(_as_bytes(contents)))

    @classmethod
    def new_shared(cls, path: str, contents: bytes) -> "MockFile":
        if not isinstance(contents, bytes):
            raise TypeError(
                f"Shared contents must be an immutable bytes object, got {type(contents).__name__}"
            )
        return cls(path, MockContents(contents))

    @classmethod
    def new_dir(
        cls,
        path: str,
        files: Iterable[Tuple[str, Union[BytesLike, str], bool]],
    ) -> "MockFile":
        children = tuple(
            (name, MockContents(_as_bytes(data), executable=exe))
            for name, data, exe in files
        )
        return cls(path, MockDirContents(children))

    def executable(self, exe: bool) -> "MockFile":
        if isinstance(self.contents, MockContents):
            return dataclasses.replace(
                self, contents=dataclasses.replace(self.contents, executable=exe)
            )
        return self

    @property
    def entry_type(self) -> EntryType:
        if isinstance(self.contents, MockDirContents):
            return EntryType.DIRECTORY
        return EntryType.FILE

    @property
    def is_dir(self) -> bool:
        return self.entry_type == EntryType.DIRECTORY

    @property
    def manifest_line(self) -> str:
        return f"{self.entry_type.manifest_key}:{self.path}"

    def materialize(
        self,
        base_dir: str,
        mode_support: Optional[FileModeSupport] = None,
    ) -> None:
        self.contents.materialize(os.path.join(base_dir, self.path), mode_support)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.entry_type.manifest_key,
            "path": self.path,
        }
        if isinstance(self.contents, MockDirContents):
            d["children"] = [
                {"name": name, **contents.to_dict()}
                for name, contents in self.contents.children
            ]
        else:
            d.update(self.contents.to_dict())
        return d

    @classmethod
    def from_dict(cls, d: Any, where: str = "entry") -> "MockFile":
        if not isinstance(d, dict):
            raise InstallerDescriptionError(f"{where} must be a JSON object")
        path = d.get("path")
        if not isinstance(path, str):
            raise InstallerDescriptionError(f'{where} must have a "path" string')
        where = f'{where} ("{path}")'
        raw_type = d.get("type", EntryType.FILE.manifest_key)
        try:
            entry_type = KEY2ENTRY_TYPE[raw_type]
        except (KeyError, TypeError):
            raise InstallerDescriptionError(
                f'{where} has unknown type "{raw_type}".'
                f" Expected one of: {', '.join(sorted(KEY2ENTRY_TYPE))}"
            ) from None

        if entry_type == EntryType.FILE:
            return cls(path, MockContents.from_dict(d, where))

        raw_children = d.get("children")
        if not isinstance(raw_children, list):
            raise InstallerDescriptionError(f'{where} must have a "children" list')
        children = []
        for idx, raw_child in enumerate(raw_children):
            child_where = f"{where}, child {idx}"
            if not isinstance(raw_child, dict) or not isinstance(
                raw_child.get("name"), str
            ):
                raise InstallerDescriptionError(
                    f'{child_where} must be a JSON object with a "name" string'
                )
            children.append(
                (raw_child["name"], MockContents.from_dict(raw_child, child_where))
            )
        return cls(path, MockDirContents(tuple(children)))
