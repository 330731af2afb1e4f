#!/usr/bin/env python3
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


"""
cli.py - Run the Kubernetes conformance image against an ephemeral kind cluster.

Run from the root of a Kubernetes source tree (or set KUBE_ROOT). The command
takes no arguments; everything is configured through the environment.

Environment Variables:
    - ARTIFACTS (default: $PWD/_artifacts)
    - PLATFORM_ARCH (default: detected from the host, one of amd64/arm64/arm)
    - BAZEL_REMOTE_CACHE_ENABLED (default: false)
    - KUBE_ROOT (default: $PWD)
    - REMOVE_WORK_DIR (default: false)
    - KIND_CLUSTER_NAME, KIND_NODE_IMAGE, KIND_WAIT, KIND_LOGLEVEL, KIND_KUBECONFIG
    - CONFORMANCE_REGISTRY, CONFORMANCE_POD_TIMEOUT_SECONDS, ...
      (see the config classes for the full list)

Examples:
    # Build, create the cluster, run conformance, collect results
    kind-conformance

    # Keep artifacts somewhere else and force the image architecture
    ARTIFACTS=/tmp/artifacts PLATFORM_ARCH=arm64 kind-conformance
"""

from __future__ import annotations

import logging
import sys

import typer
from rich.markup import escape

from kind_conformance import console
from kind_conformance.config import ConformanceConfig, KindConfig, RunConfig, display_config
from kind_conformance.controller import LifecycleController

app = typer.Typer(
    help="Run the Kubernetes conformance image against an ephemeral kind cluster.",
    add_completion=False,
)


@app.command()
def main() -> None:
    """Build Kubernetes, create a kind cluster, run conformance, collect results.

    Cleanup (log export, cluster deletion) always runs. The exit code is the
    one of the first failed phase, or 0.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    run_cfg = RunConfig()
    kind_cfg = KindConfig()
    conformance_cfg = ConformanceConfig()
    display_config(run_cfg, kind_cfg, conformance_cfg)

    controller = LifecycleController(run_cfg, kind_cfg, conformance_cfg)
    raise typer.Exit(code=controller.run())


def run() -> None:
    """Console script entry point."""
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    run()
