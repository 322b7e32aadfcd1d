from .version import __version__
from .contents import (
    EntryType,
    MockContents,
    MockDirContents,
    MockFile,
)
from .installer import (
    COMPONENTS_FILE,
    INSTALLER_VERSION,
    INSTALLER_VERSION_FILE,
    MANIFEST_FILE,
    MockComponentBuilder,
    MockInstallerBuilder,
)
from .persistent_environment import (
    PERSISTENT_PATH_VARIABLE,
    preserved_persistent_value,
    read_persistent_value,
    write_persistent_value,
)

__all__ = [
    "__version__",
    "COMPONENTS_FILE",
    "EntryType",
    "INSTALLER_VERSION",
    "INSTALLER_VERSION_FILE",
    "MANIFEST_FILE",
    "MockComponentBuilder",
    "MockContents",
    "MockDirContents",
    "MockFile",
    "MockInstallerBuilder",
    "PERSISTENT_PATH_VARIABLE",
    "preserved_persistent_value",
    "read_persistent_value",
    "write_persistent_value",
]
