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


"""Configuration classes, auto-loaded from the environment."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from kind_conformance import console
from kind_conformance.constants import (
    DEFAULT_ARTIFACTS_DIRNAME,
    DEFAULT_BAZEL_CACHE_SCRIPT,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_CLUSTER_WAIT,
    DEFAULT_CONFORMANCE_NAMESPACE,
    DEFAULT_CONFORMANCE_POD,
    DEFAULT_CONFORMANCE_REGISTRY,
    DEFAULT_KIND_LOGLEVEL,
    DEFAULT_NODE_IMAGE,
    DEFAULT_NODE_IMAGE_BUILD_TYPE,
    DEFAULT_POD_POLL_INTERVAL_SECONDS,
    DEFAULT_POD_TIMEOUT_SECONDS,
    DEFAULT_RESULTS_DIR,
    DEFAULT_RESULTS_STRIP_COMPONENTS,
    KIND_KUBECONFIG_FILENAME,
)


def _default_artifacts() -> Path:
    return Path.cwd() / DEFAULT_ARTIFACTS_DIRNAME


def _default_kubeconfig() -> Path:
    return Path.home() / ".kube" / KIND_KUBECONFIG_FILENAME


# ============================================================================
# Configuration classes
# ============================================================================

class RunConfig(BaseSettings):
    """Run-wide settings, loaded from unprefixed env vars.

    Attributes:
        artifacts: Directory receiving cluster logs and test results (ARTIFACTS).
        platform_arch: Architecture override; skips host detection when non-empty.
        bazel_remote_cache_enabled: Run the bazel remote cache setup before building.
        bazel_cache_script: Script that writes the bazel remote cache rc files.
        kube_root: Root of the Kubernetes source tree.
        remove_work_dir: Remove the transient work directory during cleanup.
    """

    model_config = SettingsConfigDict(extra="ignore")

    artifacts: Path = Field(default_factory=_default_artifacts)
    platform_arch: str | None = None
    bazel_remote_cache_enabled: bool = False
    bazel_cache_script: Path = Path(DEFAULT_BAZEL_CACHE_SCRIPT)
    kube_root: Path = Field(default_factory=Path.cwd)
    remove_work_dir: bool = False

    @field_validator("artifacts", "kube_root")
    @classmethod
    def _absolute(cls, value: Path) -> Path:
        # tools run with a different cwd than this process
        return value.resolve()


class KindConfig(BaseSettings):
    """kind cluster settings, auto-loaded from KIND_* env vars.

    Attributes:
        cluster_name: Name of the kind cluster.
        node_image: Node image built from the source tree and used for the nodes.
        build_type: ``kind build node-image --type`` value.
        wait: How long ``kind create cluster`` waits for nodes to be ready.
        loglevel: kind log level.
        kubeconfig: Kubeconfig file kind writes the cluster credentials to.
    """

    model_config = SettingsConfigDict(env_prefix="KIND_", extra="ignore")

    cluster_name: str = DEFAULT_CLUSTER_NAME
    node_image: str = DEFAULT_NODE_IMAGE
    build_type: str = DEFAULT_NODE_IMAGE_BUILD_TYPE
    wait: str = Field(default=DEFAULT_CLUSTER_WAIT, pattern=r"^\d+[smh]?$")
    loglevel: str = DEFAULT_KIND_LOGLEVEL
    kubeconfig: Path = Field(default_factory=_default_kubeconfig)


class ConformanceConfig(BaseSettings):
    """Conformance image and pod settings, auto-loaded from CONFORMANCE_* env vars.

    Attributes:
        registry: Registry prefix of the conformance image.
        namespace: Namespace the conformance pod runs in.
        pod_name: Name of the conformance pod.
        results_dir: Directory holding results inside the node container.
        strip_components: Leading path components dropped when extracting results.
        pod_timeout_seconds: Upper bound on waiting for the pod to finish.
        poll_interval_seconds: Delay between pod phase checks.
    """

    model_config = SettingsConfigDict(env_prefix="CONFORMANCE_", extra="ignore")

    registry: str = DEFAULT_CONFORMANCE_REGISTRY
    namespace: str = DEFAULT_CONFORMANCE_NAMESPACE
    pod_name: str = DEFAULT_CONFORMANCE_POD
    results_dir: str = DEFAULT_RESULTS_DIR
    strip_components: int = Field(default=DEFAULT_RESULTS_STRIP_COMPONENTS, ge=0)
    pod_timeout_seconds: int = Field(default=DEFAULT_POD_TIMEOUT_SECONDS, ge=1)
    poll_interval_seconds: int = Field(default=DEFAULT_POD_POLL_INTERVAL_SECONDS, ge=0)


# ============================================================================
# Display
# ============================================================================

def display_config(
    run_cfg: RunConfig,
    kind_cfg: KindConfig,
    conformance_cfg: ConformanceConfig,
) -> None:
    """Print the resolved configuration."""
    console.print(Panel.fit("Configuration", style="bold blue"))

    console.print("[yellow]Run:[/yellow]")
    console.print(f"  artifacts       : {run_cfg.artifacts}")
    console.print(f"  kube_root       : {run_cfg.kube_root}")
    console.print(f"  platform_arch   : {run_cfg.platform_arch or '(auto-detect)'}")
    console.print(f"  bazel_cache     : {run_cfg.bazel_remote_cache_enabled}")
    console.print(f"  remove_work_dir : {run_cfg.remove_work_dir}")

    console.print("[yellow]kind cluster:[/yellow]")
    console.print(f"  cluster_name    : {kind_cfg.cluster_name}")
    console.print(f"  node_image      : {kind_cfg.node_image}")
    console.print(f"  wait            : {kind_cfg.wait}")
    console.print(f"  kubeconfig      : {kind_cfg.kubeconfig}")

    console.print("[yellow]Conformance:[/yellow]")
    console.print(f"  registry        : {conformance_cfg.registry}")
    console.print(f"  pod             : {conformance_cfg.namespace}/{conformance_cfg.pod_name}")
    console.print(f"  pod_timeout     : {conformance_cfg.pod_timeout_seconds}s")
