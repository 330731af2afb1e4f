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


"""Values passed between lifecycle phases."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ImageReference:
    """A tagged container image reference.

    Attributes:
        repository: Image repository including any registry prefix.
        tag: Image tag.
    """

    repository: str
    tag: str = "latest"

    @classmethod
    def parse(cls, reference: str) -> ImageReference:
        """Split ``repo[:tag]``; a colon inside the registry host is not a tag."""
        name, sep, tag = reference.rpartition(":")
        if sep and "/" not in tag:
            return cls(name, tag)
        return cls(reference)

    def __str__(self) -> str:
        return f"{self.repository}:{self.tag}"


@dataclass(frozen=True)
class ClusterHandle:
    """The kind cluster owned by a run.

    Attributes:
        name: kind cluster name.
        kubeconfig: Kubeconfig file holding the cluster credentials.
        config_path: Topology descriptor the cluster was created from.
    """

    name: str
    kubeconfig: Path
    config_path: Path

    @property
    def env(self) -> dict[str, str]:
        """Environment overrides that address this cluster."""
        return {"KUBECONFIG": str(self.kubeconfig)}
