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


"""kind cluster topology and the kind CLI wrapper."""

from __future__ import annotations

from pathlib import Path

import yaml

from kind_conformance.constants import (
    KIND_CONFIG_API_VERSION,
    KIND_CONFIG_KIND,
    ROLE_CONTROL_PLANE,
    ROLE_WORKER,
    WORKER_NODE_COUNT,
)
from kind_conformance.models import ClusterHandle, ImageReference
from kind_conformance.utils import run_command

_CONFIG_HEADER = "# config for 1 control plane node and 2 workers\n# necessary for conformance\n"


# ============================================================================
# Topology descriptor
# ============================================================================

def cluster_topology() -> dict:
    """Build the fixed conformance topology: one control-plane, two workers.

    Returns:
        kind ``Cluster`` config as a dictionary.
    """
    nodes = [{"role": ROLE_CONTROL_PLANE}]
    nodes.extend({"role": ROLE_WORKER} for _ in range(WORKER_NODE_COUNT))
    return {
        "kind": KIND_CONFIG_KIND,
        "apiVersion": KIND_CONFIG_API_VERSION,
        "nodes": nodes,
    }


def write_cluster_config(path: Path) -> Path:
    """Write the topology descriptor to *path*, creating parent directories.

    Args:
        path: Destination YAML file.

    Returns:
        The written path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    body = yaml.safe_dump(cluster_topology(), sort_keys=False, default_flow_style=False)
    path.write_text(_CONFIG_HEADER + body)
    return path


# ============================================================================
# kind CLI
# ============================================================================

class KindCluster:
    """Thin wrapper around the ``kind`` binary.

    Every method raises :class:`~kind_conformance.errors.CommandError` when
    kind fails.
    """

    def __init__(self, binary: str = "kind") -> None:
        self.binary = binary

    def _run(self, *args: object, env: dict[str, str] | None = None, stream: bool = False) -> str:
        return run_command(self.binary, *args, env=env, stream=stream)

    def version(self) -> str:
        return self._run("version").strip()

    def build_node_image(self, kube_root: Path, image: ImageReference, build_type: str) -> None:
        self._run(
            "build", "node-image",
            f"--type={build_type}",
            f"--kube-root={kube_root}",
            f"--image={image}",
            stream=True,
        )

    def create_cluster(
        self,
        cluster: ClusterHandle,
        image: ImageReference,
        wait: str,
        loglevel: str,
    ) -> None:
        """Create the cluster, keeping nodes of a failed create for debugging."""
        self._run(
            "create", "cluster",
            "--name", cluster.name,
            f"--image={image}",
            "--retain",
            f"--wait={wait}",
            f"--loglevel={loglevel}",
            f"--config={cluster.config_path}",
            env=cluster.env,
            stream=True,
        )

    def load_docker_image(self, cluster: ClusterHandle, image: ImageReference) -> None:
        self._run("load", "docker-image", str(image), "--name", cluster.name, env=cluster.env)

    def export_logs(self, cluster_name: str, dest: Path) -> None:
        self._run("export", "logs", str(dest), "--name", cluster_name)

    def delete_cluster(self, cluster: ClusterHandle) -> None:
        self._run("delete", "cluster", "--name", cluster.name, env=cluster.env)
