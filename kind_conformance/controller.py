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


"""Lifecycle controller: detect, ensure tool, build, provision, test, collect, cleanup.

The primary phases run strictly in order and are never retried. The first
failure aborts the remaining primary phases; cleanup runs exactly once on
every exit path, including SIGINT/SIGTERM.
"""

from __future__ import annotations

import signal
import tarfile
import tempfile
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel

from kind_conformance import console, logger
from kind_conformance.arch import PlatformArch, detect_platform_arch
from kind_conformance.build import (
    KubeBuild,
    e2e_build_targets,
    find_built_kubectl,
    probe_runner,
    release_build_memory,
    setup_bazel_remote_cache,
)
from kind_conformance.config import ConformanceConfig, KindConfig, RunConfig
from kind_conformance.conformance import (
    conformance_image,
    strip_build_metadata,
    wait_for_pod_completion,
    write_patched_manifest,
)
from kind_conformance.constants import (
    ARTIFACTS_LOGS_DIRNAME,
    CONFORMANCE_MANIFEST,
    EXIT_OK,
    KIND_CONFIG_FILENAME,
    POD_DESCRIBE_FILENAME,
    POD_LOG_FILENAME,
    POD_PHASE_FAILED,
    REL_CONFORMANCE_IMAGE_DIR,
    REL_E2E_TEST_LINK,
    REL_OUTPUT_BIN,
    WORK_DIR_PREFIX,
)
from kind_conformance.errors import (
    BuildError,
    CollectionError,
    CommandError,
    ConformanceError,
    ProvisionError,
    RunInterrupted,
    TestExecutionError,
    ToolUnavailableError,
    phase_scope,
)
from kind_conformance.kind import KindCluster, write_cluster_config
from kind_conformance.kubectl import Kubectl
from kind_conformance.models import ClusterHandle, ImageReference
from kind_conformance.runtime import DockerRuntime, extract_tar
from kind_conformance.utils import prepend_to_path, remove_path


@dataclass
class RunState:
    """Mutable state of a single run.

    Attributes:
        cluster: Set as soon as the create call is issued, not when it succeeds,
            so a partially created cluster is still torn down.
        work_dir: Transient directory for generated files, created on first use.
        cleaned_up: Whether cleanup has already run.
    """

    cluster: ClusterHandle | None = None
    work_dir: Path | None = None
    cleaned_up: bool = False

    @property
    def cluster_is_up(self) -> bool:
        return self.cluster is not None


@contextmanager
def interrupts_as_errors(signals: tuple[int, ...] = (signal.SIGINT, signal.SIGTERM)) -> Iterator[None]:
    """Raise :class:`RunInterrupted` for *signals* while the block runs.

    Handlers can only be installed from the main thread; elsewhere the block
    runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, _frame: object) -> None:
        raise RunInterrupted(signum)

    previous = {sig: signal.signal(sig, _handler) for sig in signals}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)


class LifecycleController:
    """Runs the conformance workflow against an ephemeral kind cluster.

    Collaborators default to the real CLI wrappers; tests pass doubles with
    the same methods.
    """

    def __init__(
        self,
        run_cfg: RunConfig | None = None,
        kind_cfg: KindConfig | None = None,
        conformance_cfg: ConformanceConfig | None = None,
        *,
        kind: KindCluster | None = None,
        build: KubeBuild | None = None,
        runtime: DockerRuntime | None = None,
        kubectl: Kubectl | None = None,
        machine: str | None = None,
    ) -> None:
        self.run_cfg = run_cfg or RunConfig()
        self.kind_cfg = kind_cfg or KindConfig()
        self.conformance_cfg = conformance_cfg or ConformanceConfig()
        self.kind = kind or KindCluster()
        self.build = build or KubeBuild(self.run_cfg.kube_root)
        self.runtime = runtime or DockerRuntime()
        self.kubectl = kubectl or Kubectl()
        self.machine = machine
        self.state = RunState()

    @property
    def artifacts(self) -> Path:
        return self.run_cfg.artifacts

    @property
    def kube_root(self) -> Path:
        return self.run_cfg.kube_root

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self) -> int:
        """Run every phase, then clean up.

        Returns:
            0 on success, otherwise the exit code of the first failed phase.
            Cleanup failures never change it.
        """
        self.state = RunState()

        exit_code = EXIT_OK
        with interrupts_as_errors():
            try:
                self._run_phases()
                console.print("[green]\u2705 Conformance run completed[/green]")
            except ConformanceError as err:
                console.print(f"[red]\u274c {escape(str(err))}[/red]")
                exit_code = err.exit_code
            finally:
                self.cleanup()
        return exit_code

    def _run_phases(self) -> None:
        with phase_scope(ProvisionError):
            self.artifacts.mkdir(parents=True, exist_ok=True)
        arch = self.detect_platform()
        self.ensure_tool()
        node_image = self.build_artifacts(arch)
        cluster = self.provision(node_image)
        self.run_tests(arch, cluster)
        self.collect_results(cluster)

    # ------------------------------------------------------------------
    # Primary phases
    # ------------------------------------------------------------------

    def detect_platform(self) -> PlatformArch:
        """Resolve the platform architecture (override wins)."""
        console.print(Panel.fit("Detecting platform", style="bold blue"))
        arch = detect_platform_arch(self.run_cfg.platform_arch, self.machine)
        console.print(f"[green]\u2705 Platform architecture: {arch}[/green]")
        return arch

    def ensure_tool(self) -> str:
        """Verify kind is installed and runnable.

        Raises:
            ToolUnavailableError: If ``kind version`` cannot be run.
        """
        console.print(Panel.fit("Checking kind", style="bold blue"))
        with phase_scope(ToolUnavailableError):
            version = self.kind.version()
        console.print(f"[green]\u2705 {escape(version)}[/green]")
        return version

    def build_artifacts(self, arch: PlatformArch) -> ImageReference:
        """Build the kind node image from the Kubernetes sources.

        Raises:
            BuildError: If the node image build fails.
        """
        console.print(Panel.fit(f"Building node image ({arch})", style="bold blue"))
        node_image = ImageReference.parse(self.kind_cfg.node_image)
        with phase_scope(BuildError):
            if self.run_cfg.bazel_remote_cache_enabled:
                setup_bazel_remote_cache(self.run_cfg.bazel_cache_script)

            self.kind.build_node_image(self.kube_root, node_image, self.kind_cfg.build_type)

            kubectl_path = find_built_kubectl(self.kube_root)
            if kubectl_path is not None:
                prepend_to_path(kubectl_path.parent)
                console.print(f"[yellow]\u2139\ufe0f  Using kubectl from {kubectl_path.parent}[/yellow]")

            release_build_memory()
        console.print(f"[green]\u2705 Built node image {node_image}[/green]")
        return node_image

    def provision(self, node_image: ImageReference) -> ClusterHandle:
        """Create the 1 control-plane + 2 worker kind cluster.

        Raises:
            ProvisionError: If the topology file cannot be written or kind fails.
        """
        console.print(Panel.fit("Creating kind cluster", style="bold blue"))
        with phase_scope(ProvisionError):
            config_path = write_cluster_config(self.artifacts / KIND_CONFIG_FILENAME)
            cluster = ClusterHandle(
                name=self.kind_cfg.cluster_name,
                kubeconfig=self.kind_cfg.kubeconfig,
                config_path=config_path,
            )
            # even if kind create fails, kind delete can clean up after it
            self.state.cluster = cluster
            self.kind.create_cluster(cluster, node_image, self.kind_cfg.wait, self.kind_cfg.loglevel)
        console.print(f"[green]\u2705 Cluster '{cluster.name}' created[/green]")
        return cluster

    def run_tests(self, arch: PlatformArch, cluster: ClusterHandle) -> None:
        """Build and load the conformance image, then run the conformance pod.

        Raises:
            TestExecutionError: If any step fails or the pod ends in ``Failed``.
        """
        console.print(Panel.fit("Running conformance tests", style="bold blue"))
        cfg = self.conformance_cfg
        with phase_scope(TestExecutionError):
            remove_path(self.kube_root / REL_OUTPUT_BIN)
            runner = probe_runner(self.kube_root)
            console.print(f"[yellow]\u2139\ufe0f  Conformance runner: {runner.value}[/yellow]")
            self.build.build_targets(e2e_build_targets(runner))

            version = strip_build_metadata(self.build.git_version())
            if not version:
                raise TestExecutionError("Could not determine the Kubernetes version")
            image = conformance_image(cfg.registry, arch, version)

            self.build.build_conformance_image(arch.value, version, cfg.registry)
            self.kind.load_docker_image(cluster, image)
            console.print(f"[green]\u2705 Loaded {image} into the cluster[/green]")

            template = self.kube_root / REL_CONFORMANCE_IMAGE_DIR / CONFORMANCE_MANIFEST
            manifest = write_patched_manifest(template, self._work_dir(), arch, version)
            self.kubectl.apply(cluster, manifest)

            phase = wait_for_pod_completion(self.kubectl, cluster, cfg)
            if phase == POD_PHASE_FAILED:
                self._save_pod_diagnostics(cluster)
                raise TestExecutionError(f"Conformance pod {cfg.namespace}/{cfg.pod_name} failed")
        console.print("[green]\u2705 Conformance pod succeeded[/green]")

    def collect_results(self, cluster: ClusterHandle) -> list[Path]:
        """Copy the results directory out of the conformance pod's node.

        Raises:
            CollectionError: If the node cannot be found or extraction fails.
        """
        console.print(Panel.fit("Collecting results", style="bold blue"))
        cfg = self.conformance_cfg
        with phase_scope(CollectionError):
            node = self.kubectl.get_pod_node(cluster, cfg.namespace, cfg.pod_name)
            if not node:
                raise CollectionError(f"Pod {cfg.namespace}/{cfg.pod_name} is not assigned to a node")
            archive = self.runtime.archive_path(node, cfg.results_dir)
            try:
                files = extract_tar(archive, self.artifacts, cfg.strip_components)
            except tarfile.TarError as err:
                raise CollectionError(f"Unreadable results archive from {node}: {err}") from err
        console.print(f"[green]\u2705 Extracted {len(files)} result files to {self.artifacts}[/green]")
        return files

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def cleanup(self) -> None:
        """Best-effort teardown; runs at most once per run and never raises."""
        if self.state.cleaned_up:
            return
        self.state.cleaned_up = True
        console.print(Panel.fit("Cleaning up", style="bold blue"))

        cluster = self.state.cluster
        cluster_name = cluster.name if cluster is not None else self.kind_cfg.cluster_name
        self._best_effort(
            "export cluster logs",
            self.kind.export_logs, cluster_name, self.artifacts / ARTIFACTS_LOGS_DIRNAME,
        )
        if cluster is not None:
            self._best_effort("delete cluster", self.kind.delete_cluster, cluster)
        self._best_effort("remove e2e.test link", remove_path, self.kube_root / REL_E2E_TEST_LINK)

        work_dir = self.state.work_dir
        if work_dir is not None:
            if self.run_cfg.remove_work_dir:
                self._best_effort("remove work directory", remove_path, work_dir)
            else:
                console.print(f"[yellow]\u2139\ufe0f  Leaving work directory {work_dir}[/yellow]")

    @staticmethod
    def _best_effort(description: str, fn: Callable[..., object], *args: object) -> bool:
        try:
            fn(*args)
        except Exception as e:
            logger.warning("Cleanup step '%s' failed: %s", description, e)
            console.print(f"[yellow]\u26a0\ufe0f  Failed to {description}: {escape(str(e))}[/yellow]")
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _work_dir(self) -> Path:
        if self.state.work_dir is None:
            self.state.work_dir = Path(tempfile.mkdtemp(prefix=WORK_DIR_PREFIX))
        return self.state.work_dir

    def _save_pod_diagnostics(self, cluster: ClusterHandle) -> None:
        cfg = self.conformance_cfg
        for filename, fetch in (
            (POD_DESCRIBE_FILENAME, self.kubectl.describe_pod),
            (POD_LOG_FILENAME, self.kubectl.logs),
        ):
            try:
                (self.artifacts / filename).write_text(fetch(cluster, cfg.namespace, cfg.pod_name))
            except (CommandError, OSError, ValueError) as err:
                logger.warning("Could not save %s: %s", filename, err)
