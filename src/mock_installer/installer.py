import dataclasses
import json
import os
import sys
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Tuple, IO

from mock_installer.contents import MockFile
from mock_installer.exceptions import InstallerDescriptionError
from mock_installer.platform_support import FileModeSupport
from mock_installer.util import _info

COMPONENTS_FILE = "components"
MANIFEST_FILE = "manifest.in"
INSTALLER_VERSION_FILE = "rust-installer-version"
INSTALLER_VERSION = "3"


def _open_text(path: str, mode: str) -> IO[str]:
    # The consumers expect "\n" line endings, also on Windows
    return open(path, mode, encoding="utf-8", newline="\n")


@dataclasses.dataclass(slots=True, frozen=True)
class MockComponentBuilder:
    name: str
    files: Tuple[MockFile, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.files, tuple):
            object.__setattr__(self, "files", tuple(self.files))

    def manifest_lines(self) -> Iterator[str]:
        for mock_file in self.files:
            yield mock_file.manifest_line

    def materialize(
        self,
        installer_root: str,
        mode_support: Optional[FileModeSupport] = None,
    ) -> None:
        component_dir = os.path.join(installer_root, self.name)
        if not os.path.exists(component_dir):
            os.mkdir(component_dir)

        with _open_text(os.path.join(component_dir, MANIFEST_FILE), "w") as manifest:
            for mock_file in self.files:
                manifest.write(f"{mock_file.manifest_line}\n")
                mock_file.materialize(component_dir, mode_support)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "files": [f.to_dict() for f in self.files],
        }

    @classmethod
    def from_dict(cls, d: Any, where: str = "component") -> "MockComponentBuilder":
        if not isinstance(d, dict):
            raise InstallerDescriptionError(f"{where} must be a JSON object")
        name = d.get("name")
        if not isinstance(name, str):
            raise InstallerDescriptionError(f'{where} must have a "name" string')
        raw_files = d.get("files", [])
        if not isinstance(raw_files, list):
            raise InstallerDescriptionError(
                f'{where} ("{name}"): "files" must be a list'
            )
        return cls(
            name,
            tuple(
                MockFile.from_dict(raw_file, f'component "{name}", entry {idx}')
                for idx, raw_file in enumerate(raw_files)
            ),
        )


@dataclasses.dataclass(slots=True, frozen=True)
class MockInstallerBuilder:
    """In-memory description of an installer tree

    Materializing an installer appends to the `components` file of the target root, so
    materializing twice into the same root (or using the same component name twice) gives
    duplicate lines in `components`. The manifests and the version marker are simply
    rewritten.
    """

    components: Tuple[MockComponentBuilder, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.components, tuple):
            object.__setattr__(self, "components", tuple(self.components))

    def materialize(
        self,
        root: str,
        mode_support: Optional[FileModeSupport] = None,
    ) -> None:
        start_time = datetime.now()
        components_path = os.path.join(root, COMPONENTS_FILE)
        for component in self.components:
            with _open_text(components_path, "a") as fd:
                fd.write(f"{component.name}\n")
            component.materialize(root, mode_support)

        with _open_text(os.path.join(root, INSTALLER_VERSION_FILE), "w") as fd:
            fd.write(f"{INSTALLER_VERSION}\n")
        end_time = datetime.now()
        _info(
            f"Materialized mock installer with {len(self.components)} component(s) in {root},"
            f" took: {end_time - start_time}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"components": [c.to_dict() for c in self.components]}

    @classmethod
    def from_dict(cls, d: Any) -> "MockInstallerBuilder":
        if not isinstance(d, dict):
            raise InstallerDescriptionError(
                "The installer description must be a JSON object"
            )
        raw_components = d.get("components")
        if not isinstance(raw_components, list):
            raise InstallerDescriptionError(
                'The installer description must have a "components" list'
            )
        return cls(
            tuple(
                MockComponentBuilder.from_dict(raw_component, f"component {idx}")
                for idx, raw_component in enumerate(raw_components)
            )
        )


def parse_installer_description(description_path: str) -> MockInstallerBuilder:
    try:
        if description_path == "-":
            with sys.stdin as fd:
                data = json.load(fd)
        else:
            with open(description_path, encoding="utf-8") as fd:
                data = json.load(fd)
    except json.JSONDecodeError as e:
        raise InstallerDescriptionError(
            f'The installer description "{description_path}" is not valid JSON: {e}'
        ) from e
    return MockInstallerBuilder.from_dict(data)


def output_installer_description(
    description_path: str,
    installer: MockInstallerBuilder,
) -> None:
    with open(description_path, "w", encoding="utf-8") as fd:
        json.dump(installer.to_dict(), fd, indent=2)
        fd.write("\n")
