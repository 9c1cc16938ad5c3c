# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""Collection of jailconf helper functions."""
import typing
import os
import re
import subprocess  # nosec: B404

import libjailconf.errors

# MyPy
import libjailconf.Logger  # noqa: F401
CommandOutput = typing.Tuple[typing.Optional[str], typing.Optional[str], int]


def exec(
    command: typing.List[str],
    logger: typing.Optional['libjailconf.Logger.Logger']=None,
    ignore_error: bool=False,
    **subprocess_args: typing.Any
) -> CommandOutput:
    """Execute a shell command."""
    if isinstance(command, str):
        command = [command]

    command_str = " ".join(command)

    if logger is not None:
        logger.log(f"Executing: {command_str}", level="spam")

    subprocess_args["stdout"] = subprocess_args.get("stdout", subprocess.PIPE)
    subprocess_args["stderr"] = subprocess_args.get("stderr", subprocess.PIPE)
    subprocess_args["shell"] = subprocess_args.get("shell", False)

    child = subprocess.Popen(  # nosec: B603
        command,
        **subprocess_args
    )

    stdout, stderr = child.communicate()

    if stderr is not None:
        stderr = stderr.decode("UTF-8").strip()

    if (stdout is not None):
        stdout = stdout.decode("UTF-8").strip()
        if logger and stdout:
            logger.spam(_prettify_output(stdout))

    returncode = child.wait()
    if returncode > 0:

        if logger:
            log_level = "spam" if ignore_error else "warn"
            logger.log(
                f"Command exited with {returncode}: {command_str}",
                level=log_level
            )
            if stderr:
                logger.log(_prettify_output(stderr), level=log_level)

        if ignore_error is False:
            raise libjailconf.errors.CommandFailure(
                returncode=returncode,
                command=command_str,
                logger=logger
            )

    return stdout, stderr, returncode


def _prettify_output(output: str) -> str:
    return "\n".join(map(
        lambda line: f"    {line}",
        output.strip().splitlines()
    ))


# helper function to validate names
_validate_name = re.compile(r"[a-z0-9][a-z0-9_\-]{0,62}", re.I)


def validate_name(name: str) -> bool:
    """Return True if the name matches the naming convention."""
    if isinstance(name, str) is False:
        return False
    return _validate_name.fullmatch(name) is not None


def parse_none(
    data: typing.Any,
    none_matches: typing.List[str]=["none", "-", ""]
) -> None:
    """Raise if the input does not translate to None."""
    if data is None:
        return None
    if isinstance(data, str) and (data.lower() in none_matches):
        return None
    raise TypeError("Value is not None")


def parse_int(data: typing.Optional[typing.Union[str, int, float]]) -> int:
    """
    Try to parse integer from strings.

    On success, it returns the parsed integer on failure it raises a TypeError.

    Usage:
        >>> parse_int("-1")
        -1
        >>> parse_int(3)
        3
        >>> parse_int(None)
        TypeError: None is not a number
        >>> parse_int("invalid")
        TypeError: Value is not an integer: invalid
        >>> parse_int(5.0)
        5
        >>> parse_int(5.1)
        TypeError: Value is not an integer: 5.1
        >>> parse_int(True)
        TypeError: Value is not an integer: True
    """
    if data is None:
        raise TypeError("None is not a number")
    if isinstance(data, bool):
        raise TypeError(f"Value is not an integer: {data}")
    try:
        if isinstance(data, float) and (float(data).is_integer() is False):
            raise ValueError
        return int(data)
    except ValueError:
        pass
    raise TypeError(f"Value is not an integer: {data}")


def to_string(
    data: typing.Union[str, bool, int, None],
    true: str="yes",
    false: str="no",
    none: str="-"
) -> str:
    """
    Translate simple types into a string.

    Usage:
        >>> to_string(True)
        "yes"
        >>> to_string(None)
        "-"
        >>> to_string(4)
        "4"
    """
    if data is None:
        return none
    if data is True:
        return true
    if data is False:
        return false
    return str(data)


def require_no_symlink(
    path: str,
    base: typing.Optional[str]=None,
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> None:
    """
    Raise when the path contains a symlink.

    When a base directory is given, only the path components below it are
    checked.
    """
    directories = os.path.abspath(path).split("/")
    if base is None:
        minimum_depth = 1
    else:
        minimum_depth = len(os.path.abspath(base).split("/")) + 1
    while len(directories) >= minimum_depth and len(directories) > 1:
        current_directory = "/".join(directories)
        if os.path.islink(current_directory):
            raise libjailconf.errors.SecurityViolation(
                reason=f"Path {current_directory} is a symbolic link.",
                logger=logger
            )
        directories.pop()


def makedirs_safe(
    target: str,
    mode: int=0o755,
    base: typing.Optional[str]=None,
    exist_ok: bool=True,
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> None:
    """Create a directory without following symlinks."""
    require_no_symlink(target, base=base, logger=logger)
    if logger is not None:
        logger.verbose(f"Safely creating {target} directory")
    os.makedirs(target, mode=mode, exist_ok=exist_ok)
