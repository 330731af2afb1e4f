"""Shared fixtures and collaborator doubles for the conformance controller."""

from __future__ import annotations

import io
import tarfile
import tempfile
from pathlib import Path

import pytest

from kind_conformance import controller as controller_module
from kind_conformance.config import ConformanceConfig, KindConfig, RunConfig
from kind_conformance.controller import LifecycleController

MANIFEST_TEMPLATE = """apiVersion: v1
kind: Pod
metadata:
  name: e2e-conformance-test
  namespace: conformance
spec:
  containers:
    - name: conformance-container
      image: k8s.gcr.io/conformance-amd64:v1.16.0
      imagePullPolicy: IfNotPresent
"""

GIT_VERSION = "v1.20.0-beta.1+abcdef123"


def make_tar(files: dict[str, bytes]) -> bytes:
    """Build an in-memory tar archive from a name -> content mapping."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buf.getvalue()


RESULTS_ARCHIVE = make_tar({
    "tmp/results/e2e.log": b"Ran 277 of 4994 Specs\nSUCCESS!\n",
    "tmp/results/junit_01.xml": b"<testsuite tests=\"277\"/>",
})


class Recorder:
    """Shared call log with per-call fault injection."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.failures: dict[str, BaseException] = {}

    def record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return self.calls.count(name)


class FakeKind:
    binary = "kind"

    def __init__(self, recorder: Recorder) -> None:
        self.recorder = recorder
        self.created: list = []

    def version(self) -> str:
        self.recorder.record("version")
        return "kind v0.6.0 go1.13.4 linux/amd64"

    def build_node_image(self, kube_root, image, build_type) -> None:
        self.recorder.record("build_node_image")

    def create_cluster(self, cluster, image, wait, loglevel) -> None:
        self.created.append((cluster, image, wait, loglevel))
        self.recorder.record("create_cluster")

    def load_docker_image(self, cluster, image) -> None:
        self.recorder.record("load_docker_image")

    def export_logs(self, cluster_name, dest: Path) -> None:
        self.recorder.record("export_logs")
        dest.mkdir(parents=True, exist_ok=True)
        (dest / "kind-version.txt").write_text("kind v0.6.0\n")

    def delete_cluster(self, cluster) -> None:
        self.recorder.record("delete_cluster")


class FakeBuild:
    def __init__(self, recorder: Recorder, git_version: str = GIT_VERSION) -> None:
        self.recorder = recorder
        self._git_version = git_version
        self.targets: list[str] = []
        self.conformance_builds: list[tuple[str, str, str]] = []

    def build_targets(self, targets: list[str]) -> None:
        self.targets = list(targets)
        self.recorder.record("build_targets")

    def build_conformance_image(self, arch: str, version: str, registry: str) -> None:
        self.conformance_builds.append((arch, version, registry))
        self.recorder.record("build_conformance_image")

    def git_version(self) -> str:
        self.recorder.record("git_version")
        return self._git_version


class FakeKubectl:
    def __init__(self, recorder: Recorder, phases: list[str] | None = None) -> None:
        self.recorder = recorder
        self.phases = list(phases or ["Pending", "Running", "Succeeded"])
        self.applied: list[str] = []

    def apply(self, cluster, manifest: Path) -> None:
        self.applied.append(manifest.read_text())
        self.recorder.record("apply")

    def get_pod_phase(self, cluster, namespace: str, pod: str) -> str:
        self.recorder.record("get_pod_phase")
        return self.phases.pop(0) if len(self.phases) > 1 else self.phases[0]

    def get_pod_node(self, cluster, namespace: str, pod: str) -> str:
        self.recorder.record("get_pod_node")
        return "kind-worker2"

    def describe_pod(self, cluster, namespace: str, pod: str) -> str:
        self.recorder.record("describe_pod")
        return "Status: Failed\n"

    def logs(self, cluster, namespace: str, pod: str) -> str:
        self.recorder.record("logs")
        return "FAIL! -- 1 Passed | 276 Failed\n"


class FakeRuntime:
    def __init__(self, recorder: Recorder, archive: bytes = RESULTS_ARCHIVE) -> None:
        self.recorder = recorder
        self.archive = archive
        self.requested: list[tuple[str, str]] = []

    def archive_path(self, container: str, path: str) -> bytes:
        self.requested.append((container, path))
        self.recorder.record("archive_path")
        return self.archive


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def kube_root(tmp_path: Path) -> Path:
    """A minimal Kubernetes source tree with the conformance manifest template."""
    root = tmp_path / "kubernetes"
    image_dir = root / "cluster" / "images" / "conformance"
    image_dir.mkdir(parents=True)
    (image_dir / "conformance-e2e.yaml").write_text(MANIFEST_TEMPLATE)
    return root


@pytest.fixture
def controller_factory(tmp_path, kube_root, recorder, monkeypatch):
    """Build a LifecycleController wired to fakes; keyword args override config."""
    monkeypatch.setattr(controller_module, "release_build_memory", lambda: None)
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))

    def _factory(
        *,
        machine: str = "x86_64",
        platform_arch: str | None = None,
        phases: list[str] | None = None,
        git_version: str = GIT_VERSION,
        **run_overrides,
    ) -> LifecycleController:
        run_cfg = RunConfig(
            artifacts=tmp_path / "artifacts",
            kube_root=kube_root,
            platform_arch=platform_arch,
            **run_overrides,
        )
        kind_cfg = KindConfig(cluster_name="kind", kubeconfig=tmp_path / "kubeconfig")
        conformance_cfg = ConformanceConfig(pod_timeout_seconds=5, poll_interval_seconds=0)
        return LifecycleController(
            run_cfg, kind_cfg, conformance_cfg,
            kind=FakeKind(recorder),
            build=FakeBuild(recorder, git_version=git_version),
            runtime=FakeRuntime(recorder),
            kubectl=FakeKubectl(recorder, phases),
            machine=machine,
        )

    return _factory


@pytest.fixture
def make_archive():
    return make_tar
