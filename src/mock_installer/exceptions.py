from typing import cast


class MockInstallerRuntimeError(RuntimeError):
    @property
    def message(self) -> str:
        return cast("str", self.args[0])


class InstallerDescriptionError(MockInstallerRuntimeError):
    pass
