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


"""Conformance image naming, manifest patching, and pod completion."""

from __future__ import annotations

import re
from pathlib import Path

from tenacity import RetryError, retry, retry_if_result, stop_after_delay, wait_fixed

from kind_conformance import console
from kind_conformance.arch import PlatformArch
from kind_conformance.config import ConformanceConfig
from kind_conformance.constants import (
    POD_PHASE_FAILED,
    POD_PHASE_SUCCEEDED,
    VERSION_METADATA_DELIMITER,
)
from kind_conformance.errors import TestExecutionError
from kind_conformance.kubectl import Kubectl
from kind_conformance.models import ClusterHandle, ImageReference

_MANIFEST_IMAGE_RE = re.compile(
    r"conformance-(?:" + "|".join(re.escape(a.value) for a in PlatformArch) + r"):.*"
)
_TERMINAL_PHASES = (POD_PHASE_SUCCEEDED, POD_PHASE_FAILED)


def strip_build_metadata(version: str) -> str:
    """Drop everything from the first ``+`` on (``v1.2.3+abc`` -> ``v1.2.3``)."""
    return version.split(VERSION_METADATA_DELIMITER, 1)[0]


def conformance_image(registry: str, arch: PlatformArch, version: str) -> ImageReference:
    """Return the reference ``make build`` tags the conformance image with."""
    return ImageReference(f"{registry}/conformance-{arch.value}", version)


def patch_manifest_image(manifest: str, arch: PlatformArch, version: str) -> str:
    """Point every ``conformance-<arch>:<tag>`` reference at the new build.

    The registry prefix in front of the match is kept; the match runs to the
    end of its line.

    Args:
        manifest: Manifest template text.
        arch: Architecture of the built image.
        version: Tag of the built image.

    Returns:
        The rewritten manifest text.
    """
    replacement = f"conformance-{arch.value}:{version}"
    return _MANIFEST_IMAGE_RE.sub(lambda _: replacement, manifest)


def write_patched_manifest(template: Path, dest_dir: Path, arch: PlatformArch, version: str) -> Path:
    """Write a patched copy of *template* into *dest_dir*, leaving the template untouched.

    Returns:
        Path of the patched manifest.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = dest_dir / template.name
    target.write_text(patch_manifest_image(template.read_text(), arch, version))
    return target


def wait_for_pod_completion(
    kubectl: Kubectl,
    cluster: ClusterHandle,
    conformance_cfg: ConformanceConfig,
) -> str:
    """Poll the conformance pod until it succeeds or fails.

    Args:
        kubectl: kubectl wrapper.
        cluster: Cluster the pod runs in.
        conformance_cfg: Pod coordinates, timeout and poll interval.

    Returns:
        The terminal pod phase (``Succeeded`` or ``Failed``).

    Raises:
        TestExecutionError: If the pod does not finish within the timeout.
        CommandError: If kubectl fails while polling.
    """

    @retry(
        retry=retry_if_result(lambda phase: phase not in _TERMINAL_PHASES),
        stop=stop_after_delay(conformance_cfg.pod_timeout_seconds),
        wait=wait_fixed(conformance_cfg.poll_interval_seconds),
    )
    def _poll() -> str:
        phase = kubectl.get_pod_phase(cluster, conformance_cfg.namespace, conformance_cfg.pod_name)
        console.print(f"[yellow]   Pod status is: {phase or 'Unknown'}[/yellow]")
        return phase

    try:
        return _poll()
    except RetryError as err:
        raise TestExecutionError(
            f"Pod {conformance_cfg.namespace}/{conformance_cfg.pod_name} did not finish "
            f"within {conformance_cfg.pod_timeout_seconds}s"
        ) from err
