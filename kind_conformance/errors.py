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


"""Error taxonomy for the conformance run.

Every primary phase owns exactly one error class. Collaborators raise
:class:`CommandError`; :func:`phase_scope` converts it to the owning phase's
error so the exit status of the failing tool becomes the exit status of the run.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from kind_conformance.constants import (
    EXIT_FAILURE,
    EXIT_SIGNAL_BASE,
    EXIT_UNSUPPORTED_PLATFORM,
)


class CommandError(RuntimeError):
    """An external command failed or could not be started.

    Attributes:
        command: The command line that was run.
        exit_code: Process exit status (127 when the binary was not found).
        output: Captured stderr (or stdout) of the command, possibly empty.
    """

    def __init__(self, command: str, exit_code: int, output: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        self.output = output
        message = f"'{command}' failed with exit code {exit_code}"
        if output:
            message += f": {output.strip()}"
        super().__init__(message)


class ConformanceError(RuntimeError):
    """Base class for primary phase failures."""

    phase = "run"
    default_exit_code = EXIT_FAILURE

    def __init__(self, message: str, *, exit_code: int | None = None, output: str = "") -> None:
        self.exit_code = self.default_exit_code if exit_code is None else exit_code
        self.output = output
        super().__init__(f"[{self.phase}] {message}")


class UnsupportedPlatformError(ConformanceError):
    phase = "detect-platform"
    default_exit_code = EXIT_UNSUPPORTED_PLATFORM


class ToolUnavailableError(ConformanceError):
    phase = "ensure-tool"


class BuildError(ConformanceError):
    phase = "build"


class ProvisionError(ConformanceError):
    phase = "provision"


class TestExecutionError(ConformanceError):
    __test__ = False  # keep pytest from collecting this class
    phase = "run-tests"


class CollectionError(ConformanceError):
    phase = "collect-results"


class RunInterrupted(ConformanceError):
    """The process received a termination signal mid-run."""

    phase = "signal"

    def __init__(self, signum: int) -> None:
        self.signum = signum
        super().__init__(f"interrupted by signal {signum}", exit_code=EXIT_SIGNAL_BASE + signum)


@contextmanager
def phase_scope(error_cls: type[ConformanceError]) -> Iterator[None]:
    """Re-raise command and OS failures inside the block as *error_cls*.

    Errors that already belong to a phase pass through untouched.

    Args:
        error_cls: Phase error raised in place of the underlying failure.

    Raises:
        ConformanceError: *error_cls*, chained to the original exception.
    """
    try:
        yield
    except ConformanceError:
        raise
    except CommandError as err:
        raise error_cls(str(err), exit_code=err.exit_code, output=err.output) from err
    except OSError as err:
        raise error_cls(str(err)) from err
