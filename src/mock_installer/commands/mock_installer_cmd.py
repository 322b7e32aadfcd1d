import argparse
import json
import os
import shutil
import textwrap
from typing import Optional, Sequence

from mock_installer.exceptions import MockInstallerRuntimeError
from mock_installer.installer import parse_installer_description
from mock_installer.persistent_environment import (
    PERSISTENT_PATH_VARIABLE,
    read_persistent_value,
    write_persistent_value,
)
from mock_installer.util import (
    _error,
    _info,
    ColorizedArgumentParser,
    ensure_dir,
    program_name,
    setup_logging,
)
from mock_installer.version import __version__


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    description = textwrap.dedent(
        """\
    Low level tool for producing mock installer trees from a JSON description and for
    saving/restoring the persistent (user-scoped) PATH around test runs.

    The tool is intended for test harnesses rather than end users.
    """
    )

    parser = ColorizedArgumentParser(
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        prog=program_name(),
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", required=True)

    materialize_parser = subparsers.add_parser(
        "materialize",
        allow_abbrev=False,
        help="Materialize a mock installer tree from a JSON description",
    )
    materialize_parser.add_argument(
        "description",
        metavar="DESCRIPTION",
        help='The JSON description of the installer ("-" for stdin)',
    )
    materialize_parser.add_argument(
        "root",
        metavar="ROOT",
        help="Where to materialize the installer. Created if it does not exist",
    )
    materialize_parser.add_argument(
        "--discard-existing-output",
        dest="discard_existing_output",
        default=False,
        action="store_true",
        help="If passed, an existing ROOT is *deleted* first. Otherwise, the components"
        " file of an existing ROOT is appended to.",
    )

    save_parser = subparsers.add_parser(
        "save-persistent-value",
        allow_abbrev=False,
        help="Save the persistent environment variable to a JSON file",
    )
    save_parser.add_argument(
        "output",
        metavar="OUTPUT",
        help="Where to store the saved value",
    )
    save_parser.add_argument(
        "--name",
        dest="name",
        default=PERSISTENT_PATH_VARIABLE,
        help="The variable to save (default: %(default)s)",
    )

    restore_parser = subparsers.add_parser(
        "restore-persistent-value",
        allow_abbrev=False,
        help="Restore a persistent environment variable saved by save-persistent-value",
    )
    restore_parser.add_argument(
        "saved_value",
        metavar="INPUT",
        help="A file produced by save-persistent-value",
    )

    return parser.parse_args(argv)


def materialize(description: str, root: str, discard_existing_output: bool) -> None:
    installer = parse_installer_description(description)
    if os.path.exists(root) and discard_existing_output:
        _info(f'Removing existing path "{root}" as requested by --discard-existing-output')
        shutil.rmtree(root)
    ensure_dir(root)
    installer.materialize(root)


def save_persistent_value(output: str, name: str) -> None:
    value = read_persistent_value(name)
    with open(output, "w", encoding="utf-8") as fd:
        json.dump({"name": name, "value": value}, fd)
    if value is None:
        _info(f"The persistent {name} is not set; recorded it as absent")
    else:
        _info(f"Saved the persistent {name} to {output}")


def restore_persistent_value(saved_value: str) -> None:
    with open(saved_value, encoding="utf-8") as fd:
        try:
            serial_format = json.load(fd)
        except json.JSONDecodeError as e:
            _error(f'The file "{saved_value}" is not valid JSON: {e}')
    name = serial_format.get("name") if isinstance(serial_format, dict) else None
    if not isinstance(name, str):
        _error(f'The file "{saved_value}" was not produced by save-persistent-value')
    value = serial_format.get("value")
    if value is not None and not isinstance(value, str):
        _error(f'The saved value in "{saved_value}" must be a string or null')
    write_persistent_value(value, name)
    _info(f"Restored the persistent {name}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    setup_logging(reconfigure_logging=True)
    parsed_args = parse_args(argv)
    try:
        if parsed_args.command == "materialize":
            materialize(
                parsed_args.description,
                parsed_args.root,
                parsed_args.discard_existing_output,
            )
        elif parsed_args.command == "save-persistent-value":
            save_persistent_value(parsed_args.output, parsed_args.name)
        elif parsed_args.command == "restore-persistent-value":
            restore_persistent_value(parsed_args.saved_value)
        else:
            _error(f'Internal error: Unimplemented command "{parsed_args.command}"')
    except MockInstallerRuntimeError as e:
        _error(e.message)
    except OSError as e:
        _error(str(e))


if __name__ == "__main__":
    main()
