"""Typed model and renderer for the reproducible build-environment Dockerfile.

The rendered file assembles the development container every bundle is meant
to run in:

- a pinned base image and a git identity for in-container merge commits
- an unprivileged user for tests that need one
- the default build tags exported as ``DOCKER_BUILDTAGS``
- frozen Hub images pinned by digest, loaded locally instead of pulled
- helper binaries installed by ``hack/dockerfile/install-binaries.sh``
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from hackmake.config import DEFAULT_DOCKER_PKG
from hackmake.errors import ValidationError

DIGEST_PATTERN = re.compile(r"^sha256:[0-9a-f]{64}$")

DEFAULT_BUILDTAGS: tuple[str, ...] = ("apparmor", "pkcs11", "seccomp", "selinux")
DEFAULT_INSTALL_BINARIES: tuple[str, ...] = ("tomlv", "vndr", "runc", "containerd", "grimes", "proxy")
FROZEN_IMAGES_DIR = "/docker-frozen-images"


@dataclass(frozen=True, slots=True)
class FrozenImage:
    reference: str
    digest: str

    def pinned(self) -> str:
        return f"{self.reference}@{self.digest}"


DEFAULT_FROZEN_IMAGES: tuple[FrozenImage, ...] = (
    FrozenImage(
        "buildpack-deps:jessie",
        "sha256:25785f89240fbcdd8a74bdaf30dd5599a9523882c6dfc567f2e9ef7cf6f79db6",
    ),
    FrozenImage(
        "busybox:latest",
        "sha256:e4f93f6ed15a0cdd342f5aae387886fba0ab98af0a102da6276eaf24d6e6ade0",
    ),
    FrozenImage(
        "debian:jessie",
        "sha256:f968f10b4b523737e253a97eac59b0d1420b5c19b69928d35801a6373ffe330e",
    ),
    FrozenImage(
        "hello-world:latest",
        "sha256:8be990ef2aeb16dbcb9271ddfe2610fa6658d13f6dfb8bc72074cc1ca36966a7",
    ),
)


@dataclass(frozen=True, slots=True)
class DevImage:
    base_image: str = "zxjos:docker-dev"
    docker_pkg: str = DEFAULT_DOCKER_PKG
    git_email: str = "docker-dummy@example.com"
    test_group: str = "docker"
    test_user: str = "unprivilegeduser"
    buildtags: tuple[str, ...] = DEFAULT_BUILDTAGS
    frozen_images: tuple[FrozenImage, ...] = DEFAULT_FROZEN_IMAGES
    install_binaries: tuple[str, ...] = DEFAULT_INSTALL_BINARIES
    entrypoint: tuple[str, ...] = ("hack/dind",)
    volumes: tuple[str, ...] = ("/var/lib/docker",)
    extra_env: dict[str, str] = field(default_factory=dict)

    @property
    def workdir(self) -> str:
        return f"/go/src/{self.docker_pkg}"

    def validate(self) -> None:
        for image in self.frozen_images:
            if not DIGEST_PATTERN.fullmatch(image.digest):
                raise ValidationError(
                    "Frozen images must be pinned by sha256 digest.",
                    hint="Use the `sha256:<64 hex>` digest reported by the registry.",
                    context={"image": image.reference, "digest": image.digest},
                )
        if not self.entrypoint:
            raise ValidationError("The build image requires an entrypoint.")


def render_dockerfile(image: DevImage | None = None) -> str:
    image = image or DevImage()
    image.validate()
    workdir = image.workdir
    lines = [
        "# Build environment for hack/make bundles.",
        "#",
        "# Usage:",
        "#",
        "# # Assemble the full dev environment. This is slow the first time.",
        "# docker build -t docker .",
        "#",
        "# # Run the test suite:",
        "# docker run --privileged docker hackmake test-unit test-integration-cli test-docker-py",
        "#",
        "",
        f"FROM {image.base_image}",
        "",
        f"RUN git config --global user.email '{image.git_email}'",
        "",
        f"RUN groupadd -r {image.test_group}",
        f"RUN useradd --create-home --gid {image.test_group} {image.test_user}",
        "",
    ]
    lines.extend(f"VOLUME {volume}" for volume in image.volumes)
    lines.append(f"WORKDIR {workdir}")
    lines.append(f"ENV DOCKER_BUILDTAGS {' '.join(image.buildtags)}")
    lines.extend(f"ENV {key} {value}" for key, value in sorted(image.extra_env.items()))
    lines.extend(
        [
            "",
            "RUN ln -sfv $PWD/.bashrc ~/.bashrc",
            'RUN echo "source $PWD/hack/make/.integration-test-helpers" >> /etc/bash.bashrc',
            "RUN ln -sv $PWD/contrib/completion/bash/docker /etc/bash_completion.d/docker",
            "",
        ]
    )
    if image.frozen_images:
        lines.append(f"COPY contrib/download-frozen-image-v2.sh {workdir}/contrib/")
        pinned = " \\\n\t".join(frozen.pinned() for frozen in image.frozen_images)
        lines.append(f"RUN ./contrib/download-frozen-image-v2.sh {FROZEN_IMAGES_DIR} \\\n\t{pinned}")
        lines.append("")
    if image.install_binaries:
        lines.append("COPY hack/dockerfile/install-binaries.sh /tmp/install-binaries.sh")
        lines.append(f"RUN /tmp/install-binaries.sh {' '.join(image.install_binaries)}")
        lines.append("")
    lines.append(f"ENTRYPOINT {json.dumps(list(image.entrypoint))}")
    lines.append("")
    lines.append(f"COPY . {workdir}")
    return "\n".join(lines) + "\n"


def write_dockerfile(path: str | Path, image: DevImage | None = None) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_dockerfile(image), encoding="utf-8")
    return target


__all__ = [
    "DEFAULT_BUILDTAGS",
    "DEFAULT_FROZEN_IMAGES",
    "DEFAULT_INSTALL_BINARIES",
    "DevImage",
    "FrozenImage",
    "render_dockerfile",
    "write_dockerfile",
]
