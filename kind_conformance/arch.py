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


"""Host architecture detection."""

from __future__ import annotations

import platform
from enum import Enum
from fnmatch import fnmatchcase

from kind_conformance.constants import (
    MACHINE_PATTERNS_AMD64,
    MACHINE_PATTERNS_ARM,
    MACHINE_PATTERNS_ARM64,
)
from kind_conformance.errors import UnsupportedPlatformError


class PlatformArch(str, Enum):
    """Architectures the conformance image is built for."""

    AMD64 = "amd64"
    ARM64 = "arm64"
    ARM = "arm"

    def __str__(self) -> str:
        return self.value


# Ordered: arm64 patterns must be tried before the generic arm* pattern.
_MACHINE_PATTERNS: list[tuple[tuple[str, ...], PlatformArch]] = [
    (MACHINE_PATTERNS_AMD64, PlatformArch.AMD64),
    (MACHINE_PATTERNS_ARM64, PlatformArch.ARM64),
    (MACHINE_PATTERNS_ARM, PlatformArch.ARM),
]

SUPPORTED_MACHINES = "x86_64, arm, arm64"


def arch_for_machine(machine: str) -> PlatformArch:
    """Map a ``uname -m`` style machine identifier to a PlatformArch.

    Args:
        machine: Host machine identifier (e.g. ``x86_64``, ``aarch64``).

    Returns:
        The matching architecture.

    Raises:
        UnsupportedPlatformError: If the identifier is not recognized.
    """
    for patterns, arch in _MACHINE_PATTERNS:
        if any(fnmatchcase(machine, pattern) for pattern in patterns):
            return arch
    raise UnsupportedPlatformError(
        f"Unknown, unsupported architecture ({machine}). "
        f"Supported architectures {SUPPORTED_MACHINES}."
    )


def detect_platform_arch(override: str | None = None, machine: str | None = None) -> PlatformArch:
    """Resolve the platform architecture, preferring an explicit override.

    Args:
        override: Architecture name (``amd64``/``arm64``/``arm``); when
            non-empty, host detection is skipped entirely.
        machine: Machine identifier to use instead of querying the host.

    Returns:
        The resolved architecture.

    Raises:
        UnsupportedPlatformError: If the override or the machine is unsupported.
    """
    if override:
        try:
            return PlatformArch(override)
        except ValueError:
            raise UnsupportedPlatformError(
                f"Unsupported PLATFORM_ARCH override ({override}). "
                f"Supported values: {', '.join(a.value for a in PlatformArch)}."
            ) from None
    if machine is None:
        machine = platform.machine()
    return arch_for_machine(machine)
