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


"""Kubernetes build helpers: node image prerequisites, make targets, version."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from kind_conformance import logger
from kind_conformance.constants import (
    BAZEL_BIN_DIR,
    DROP_CACHES_PATH,
    E2E_BUILD_TARGETS,
    GO_RUNNER_TARGET,
    REL_CONFORMANCE_IMAGE_DIR,
    REL_VERSION_LIB,
)
from kind_conformance.errors import CommandError
from kind_conformance.utils import run_command

_VERSION_SCRIPT = (
    'source "{lib}" && kube::version::get_version_vars && printf "%s\\n" "${{KUBE_GIT_VERSION}}"'
)


class RunnerKind(str, Enum):
    """Which conformance runner the source tree ships."""

    LEGACY = "legacy"
    GO_RUNNER = "go-runner"


def probe_runner(kube_root: Path) -> RunnerKind:
    """Detect whether the conformance image is built around the go-runner.

    Args:
        kube_root: Root of the Kubernetes source tree.

    Returns:
        GO_RUNNER when the go-runner sources exist, LEGACY otherwise.
    """
    if (kube_root / GO_RUNNER_TARGET).is_dir():
        return RunnerKind.GO_RUNNER
    return RunnerKind.LEGACY


def e2e_build_targets(runner: RunnerKind) -> list[str]:
    """Return the ``make WHAT=`` targets the conformance image needs."""
    targets = list(E2E_BUILD_TARGETS)
    if runner is RunnerKind.GO_RUNNER:
        targets.append(GO_RUNNER_TARGET)
    return targets


def find_built_kubectl(kube_root: Path) -> Path | None:
    """Locate a kubectl binary produced by bazel, if any.

    Args:
        kube_root: Root of the Kubernetes source tree.

    Returns:
        Path to the first regular ``kubectl`` file under ``bazel-bin``, or None.
    """
    bazel_bin = kube_root / BAZEL_BIN_DIR
    if not bazel_bin.is_dir():
        return None
    candidates = sorted(
        p for p in bazel_bin.rglob("kubectl") if p.is_file() and not p.is_symlink()
    )
    return candidates[0] if candidates else None


def setup_bazel_remote_cache(script: Path) -> None:
    """Write bazel remote cache rc files; failures only warn."""
    try:
        run_command(str(script))
    except CommandError as err:
        logger.warning("Bazel remote cache setup failed, building without it: %s", err)


def release_build_memory() -> None:
    """Flush and drop the page cache after a build; best-effort."""
    try:
        os.sync()
    except OSError as err:
        logger.debug("sync failed: %s", err)
    try:
        with open(DROP_CACHES_PATH, "w") as f:
            f.write("1")
    except OSError as err:
        logger.debug("Could not drop page cache: %s", err)


class KubeBuild:
    """The Kubernetes make-based build system.

    Every method raises :class:`~kind_conformance.errors.CommandError` when
    the underlying command fails.
    """

    def __init__(self, kube_root: Path, binary: str = "make") -> None:
        self.kube_root = kube_root.resolve()
        self.binary = binary

    def build_targets(self, targets: list[str]) -> None:
        """Run ``make WHAT="<targets>"`` at the source root."""
        run_command(self.binary, f"WHAT={' '.join(targets)}", cwd=self.kube_root, stream=True)

    def build_conformance_image(self, arch: str, version: str, registry: str) -> None:
        """Run ``make build`` in the conformance image directory."""
        run_command(
            self.binary, "build",
            f"ARCH={arch}",
            f"VERSION={version}",
            f"REGISTRY={registry}",
            cwd=self.kube_root / REL_CONFORMANCE_IMAGE_DIR,
            env={"VERSION": version},
            stream=True,
        )

    def git_version(self) -> str:
        """Return ``KUBE_GIT_VERSION`` as computed by ``hack/lib/version.sh``."""
        output = run_command(
            "bash", "-c", _VERSION_SCRIPT.format(lib=self.kube_root / REL_VERSION_LIB),
            cwd=self.kube_root,
            env={"KUBE_ROOT": str(self.kube_root)},
        )
        lines = output.strip().splitlines()
        return lines[-1].strip() if lines else ""
