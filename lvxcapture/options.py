"""Command-line options of the capture programs."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from lvxcapture.lvx import default_lvx_filename

DEFAULT_SAVE_TIME = 10

_HELP = (
    " [-c] Register device broadcast code\n"
    " [-l] Save the log file\n"
    " [-t] Time to save point cloud to the lvx file\n"
    " [-p] Get the extrinsic parameter from extrinsic.xml file\n"
    " [-h] Show help\n"
)

# long name -> (short name, takes an argument)
_LONG = {
    "code": ("c", True),
    "log": ("l", False),
    "time": ("t", True),
    "param": ("p", False),
    "help": ("h", False),
}
_SHORT = {short: takes for short, takes in _LONG.values()}

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


class OptionsError(ValueError):
    """Raised for an unknown option or an option missing its argument."""


@dataclass
class Options:
    """Settings chosen on the command line."""

    broadcast_codes: list[str] = field(default_factory=list)
    save_log: bool = False
    save_time: int = DEFAULT_SAVE_TIME
    read_extrinsic_from_xml: bool = False
    show_help: bool = False


def help_text() -> str:
    """Usage text listing every option."""
    return _HELP


def _atoi(text: str) -> int:
    """Leading integer of text, 0 if there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group()) if match else 0


def _apply(options: Options, name: str, value: str | None) -> None:
    if name == "c":
        assert value is not None
        options.broadcast_codes = [code for code in value.split("&") if code]
    elif name == "l":
        options.save_log = True
    elif name == "t":
        assert value is not None
        options.save_time = _atoi(value)
    elif name == "p":
        options.read_extrinsic_from_xml = True
    elif name == "h":
        options.show_help = True


def parse_options(argv: Sequence[str] | None = None) -> Options:
    """Parse the arguments after the program name.

    Parsing stops at the first argument that is not an option or after "--".
    """
    args = list(sys.argv[1:] if argv is None else argv)
    options = Options()
    pos = 0
    while pos < len(args):
        arg = args[pos]
        pos += 1
        if arg == "--":
            break
        if arg.startswith("--"):
            name, sep, inline = arg[2:].partition("=")
            if name not in _LONG:
                raise OptionsError(f"invalid option: --{name}")
            short, takes = _LONG[name]
            value = None
            if takes:
                if sep:
                    value = inline
                elif pos < len(args):
                    value = args[pos]
                    pos += 1
                else:
                    raise OptionsError(f"option --{name} requires an argument")
            elif sep:
                raise OptionsError(f"option --{name} takes no argument")
            _apply(options, short, value)
            continue
        if not arg.startswith("-") or arg == "-":
            break
        letters = arg[1:]
        while letters:
            short, letters = letters[0], letters[1:]
            if short not in _SHORT:
                raise OptionsError(f"invalid option: -{short}")
            value = None
            if _SHORT[short]:
                if letters:
                    value, letters = letters, ""
                elif pos < len(args):
                    value = args[pos]
                    pos += 1
                else:
                    raise OptionsError(f"option -{short} requires an argument")
            _apply(options, short, value)
    return options


def lvx_filename(broadcast_codes: Sequence[str], now: datetime | None = None) -> str:
    """Name of the LVX output: the device's code if exactly one was requested, else the local time."""
    if len(broadcast_codes) == 1:
        return f"{broadcast_codes[0]}.lvx"
    return default_lvx_filename(now)