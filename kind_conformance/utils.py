# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */


"""Utility functions for running commands and touching the filesystem."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import sh

from kind_conformance import console
from kind_conformance.constants import EXIT_SIGNAL_BASE
from kind_conformance.errors import CommandError

COMMAND_NOT_FOUND_EXIT_CODE = 127


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", "replace")
    return data


def _echo(line: str) -> None:
    console.print(line, end="", markup=False, highlight=False)


def run_command(
    binary: str,
    *args: object,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    stream: bool = False,
) -> str:
    """Run an external command via sh and return its stdout.

    Args:
        binary: Command name (resolved on PATH at call time) or path.
        *args: Command arguments; converted with ``str``.
        cwd: Working directory, or None for the current one.
        env: Variables added on top of the current process environment.
        stream: Echo output to the console line by line instead of capturing it.

    Returns:
        Captured stdout, or an empty string when streaming.

    Raises:
        CommandError: If the command is missing or exits non-zero.
    """
    argv = [str(arg) for arg in args]
    command_line = " ".join([binary, *argv])

    kwargs: dict = {"_decode_errors": "replace"}
    if cwd is not None:
        kwargs["_cwd"] = str(cwd)
    if env:
        kwargs["_env"] = {**os.environ, **env}
    if stream:
        kwargs["_out"] = _echo
        kwargs["_err"] = _echo

    try:
        command = sh.Command(binary)
    except sh.CommandNotFound as err:
        raise CommandError(command_line, COMMAND_NOT_FOUND_EXIT_CODE, f"command not found: {binary}") from err

    try:
        result = command(*argv, **kwargs)
    except sh.ErrorReturnCode as err:
        output = _decode(err.stderr) or _decode(err.stdout)
        # sh reports death by signal as -signum; shells report 128+signum
        exit_code = err.exit_code if err.exit_code >= 0 else EXIT_SIGNAL_BASE - err.exit_code
        raise CommandError(command_line, exit_code, output) from err
    return "" if stream else str(result)


def prepend_to_path(directory: Path) -> None:
    """Put *directory* first on this process's PATH."""
    current = os.environ.get("PATH", "")
    os.environ["PATH"] = f"{directory}{os.pathsep}{current}" if current else str(directory)


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree; missing paths are ignored."""
    if path.is_symlink() or path.is_file():
        path.unlink(missing_ok=True)
    elif path.is_dir():
        shutil.rmtree(path)
