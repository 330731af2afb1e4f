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


"""kubectl wrapper addressing the run's kind cluster."""

from __future__ import annotations

from pathlib import Path

from kind_conformance.models import ClusterHandle
from kind_conformance.utils import run_command


class Kubectl:
    """Thin wrapper around the ``kubectl`` binary.

    The binary is resolved on PATH at call time so a freshly built kubectl
    prepended by the build phase is picked up. Every method raises
    :class:`~kind_conformance.errors.CommandError` when kubectl fails.
    """

    def __init__(self, binary: str = "kubectl") -> None:
        self.binary = binary

    def _run(self, cluster: ClusterHandle, *args: object) -> str:
        return run_command(self.binary, *args, env=cluster.env)

    def _pod_jsonpath(self, cluster: ClusterHandle, namespace: str, pod: str, path: str) -> str:
        return self._run(
            cluster, "get", "pod", "-n", namespace, pod, "-o", f"jsonpath={{{path}}}",
        ).strip()

    def apply(self, cluster: ClusterHandle, manifest: Path) -> None:
        self._run(cluster, "apply", "-f", str(manifest))

    def get_pod_node(self, cluster: ClusterHandle, namespace: str, pod: str) -> str:
        """Return the name of the node the pod is scheduled on."""
        return self._pod_jsonpath(cluster, namespace, pod, ".spec.nodeName")

    def get_pod_phase(self, cluster: ClusterHandle, namespace: str, pod: str) -> str:
        return self._pod_jsonpath(cluster, namespace, pod, ".status.phase")

    def describe_pod(self, cluster: ClusterHandle, namespace: str, pod: str) -> str:
        return self._run(cluster, "describe", "pod", "-n", namespace, pod)

    def logs(self, cluster: ClusterHandle, namespace: str, pod: str) -> str:
        return self._run(cluster, "logs", "-n", namespace, pod)
