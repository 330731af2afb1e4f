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


"""Container runtime access and result archive extraction."""

from __future__ import annotations

import io
import shutil
import tarfile
from collections.abc import Callable
from pathlib import Path, PurePosixPath

import docker

from kind_conformance import logger
from kind_conformance.errors import CommandError


class DockerRuntime:
    """Docker access for reading files out of kind node containers."""

    def __init__(self, client_factory: Callable[[], docker.DockerClient] = docker.from_env) -> None:
        self._client_factory = client_factory

    def archive_path(self, container: str, path: str) -> bytes:
        """Return a tar archive of *path* inside *container*.

        Equivalent to ``docker exec <container> tar cf - <path>``, so member
        names keep the full path without its leading slash.

        Args:
            container: Container name (a kind node name).
            path: Absolute path inside the container.

        Returns:
            Raw tar bytes.

        Raises:
            CommandError: If Docker is unreachable, the container is missing,
                or tar exits non-zero.
        """
        argv = ["tar", "cf", "-", path]
        command_line = f"docker exec {container} {' '.join(argv)}"
        try:
            client = self._client_factory()
        except docker.errors.DockerException as err:
            raise CommandError(command_line, 1, f"Failed to connect to Docker: {err}") from err

        try:
            exit_code, output = client.containers.get(container).exec_run(argv, stdout=True, stderr=False)
        except docker.errors.DockerException as err:
            raise CommandError(command_line, 1, str(err)) from err
        finally:
            client.close()

        if exit_code != 0:
            raise CommandError(command_line, exit_code)
        return output or b""


def _stripped(name: str, strip_components: int) -> PurePosixPath | None:
    parts = PurePosixPath(name.lstrip("/")).parts[strip_components:]
    if not parts or ".." in parts:
        return None
    return PurePosixPath(*parts)


def extract_tar(data: bytes, dest: Path, strip_components: int = 0) -> list[Path]:
    """Extract regular files and directories from a tar archive.

    Behaves like ``tar -C <dest> --strip-components N -xf -``, except that
    links and members that would land outside *dest* are skipped.

    Args:
        data: Raw tar bytes.
        dest: Directory to extract into; created if missing.
        strip_components: Leading path components to drop from member names.

    Returns:
        Paths of the extracted regular files.

    Raises:
        tarfile.TarError: If *data* is not a readable tar archive.
    """
    dest.mkdir(parents=True, exist_ok=True)
    extracted: list[Path] = []
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
        for member in tar:
            rel = _stripped(member.name, strip_components)
            if rel is None:
                continue
            target = dest / rel
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            elif member.isfile():
                target.parent.mkdir(parents=True, exist_ok=True)
                src = tar.extractfile(member)
                if src is None:
                    continue
                with src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)
                extracted.append(target)
            else:
                logger.debug("Skipping non-regular archive member %s", member.name)
    return extracted
