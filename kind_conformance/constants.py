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


"""Constants and defaults for the conformance run."""

from __future__ import annotations

# -- Exit codes --
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_UNSUPPORTED_PLATFORM = 3
EXIT_SIGNAL_BASE = 128

# -- Machine identifier patterns (fnmatch) --
MACHINE_PATTERNS_AMD64 = ("x86_64*", "i?86_64*", "amd64*")
MACHINE_PATTERNS_ARM64 = ("aarch64*", "arm64*")
MACHINE_PATTERNS_ARM = ("arm*",)

# -- kind defaults --
DEFAULT_CLUSTER_NAME = "kind"
DEFAULT_NODE_IMAGE = "kindest/node:latest"
DEFAULT_NODE_IMAGE_BUILD_TYPE = "bazel"
DEFAULT_CLUSTER_WAIT = "1m"
DEFAULT_KIND_LOGLEVEL = "debug"
KIND_CONFIG_KIND = "Cluster"
KIND_CONFIG_API_VERSION = "kind.sigs.k8s.io/v1alpha3"
KIND_CONFIG_FILENAME = "kind-config.yaml"
KIND_KUBECONFIG_FILENAME = "kind-config-default"
ROLE_CONTROL_PLANE = "control-plane"
ROLE_WORKER = "worker"
WORKER_NODE_COUNT = 2

# -- Build --
DEFAULT_BAZEL_CACHE_SCRIPT = "/usr/local/bin/create_bazel_cache_rcs.sh"
BAZEL_BIN_DIR = "bazel-bin"
DROP_CACHES_PATH = "/proc/sys/vm/drop_caches"
E2E_BUILD_TARGETS = (
    "test/e2e/e2e.test",
    "vendor/github.com/onsi/ginkgo/ginkgo",
    "cmd/kubectl",
)
GO_RUNNER_TARGET = "cluster/images/conformance/go-runner"

# -- Relative paths inside the Kubernetes source tree --
REL_OUTPUT_BIN = "_output/bin"
REL_E2E_TEST_LINK = "_output/bin/e2e.test"
REL_VERSION_LIB = "hack/lib/version.sh"
REL_CONFORMANCE_IMAGE_DIR = "cluster/images/conformance"
CONFORMANCE_MANIFEST = "conformance-e2e.yaml"

# -- Conformance defaults --
DEFAULT_CONFORMANCE_REGISTRY = "k8s.gcr.io"
DEFAULT_CONFORMANCE_NAMESPACE = "conformance"
DEFAULT_CONFORMANCE_POD = "e2e-conformance-test"
DEFAULT_RESULTS_DIR = "/tmp/results"
DEFAULT_RESULTS_STRIP_COMPONENTS = 2
DEFAULT_POD_TIMEOUT_SECONDS = 7200
DEFAULT_POD_POLL_INTERVAL_SECONDS = 5
POD_PHASE_SUCCEEDED = "Succeeded"
POD_PHASE_FAILED = "Failed"
VERSION_METADATA_DELIMITER = "+"

# -- Artifacts --
DEFAULT_ARTIFACTS_DIRNAME = "_artifacts"
ARTIFACTS_LOGS_DIRNAME = "logs"
POD_LOG_FILENAME = "conformance-pod.log"
POD_DESCRIBE_FILENAME = "conformance-pod-describe.txt"
WORK_DIR_PREFIX = "kind-conformance-"
