import dataclasses
import warnings
from pathlib import Path

import pytest

from hackmake.config import BuildConfig
from hackmake.container import NotInContainerWarning, in_container, warn_if_not_in_container
from hackmake.devimage import (
    DEFAULT_FROZEN_IMAGES,
    DevImage,
    FrozenImage,
    render_dockerfile,
    write_dockerfile,
)
from hackmake.errors import ValidationError

CONTAINER_CWD = Path("/go/src/github.com/docker/docker")


def test_in_container_requires_source_path_and_cross_platforms() -> None:
    config = BuildConfig(cross_platforms=("linux/arm",))

    assert in_container(config, cwd=CONTAINER_CWD, host_os="linux") is True
    assert in_container(BuildConfig(), cwd=CONTAINER_CWD, host_os="linux") is False
    assert in_container(config, cwd=Path("/home/dev/docker"), host_os="linux") is False


def test_in_container_on_windows_uses_from_dockerfile() -> None:
    assert in_container(BuildConfig(from_dockerfile=True), cwd=Path("C:/src"), host_os="windows")
    assert not in_container(BuildConfig(), cwd=CONTAINER_CWD, host_os="windows")


def test_warns_when_outside_container() -> None:
    with pytest.warns(NotInContainerWarning, match="make all"):
        assert warn_if_not_in_container(BuildConfig(), cwd=Path("/tmp"), host_os="linux") is False


def test_no_warning_inside_container() -> None:
    config = BuildConfig(cross_platforms=("linux/arm",))
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert warn_if_not_in_container(config, cwd=CONTAINER_CWD, host_os="linux") is True


def test_default_dockerfile_declares_build_environment() -> None:
    text = render_dockerfile()

    assert "FROM zxjos:docker-dev\n" in text
    assert "RUN useradd --create-home --gid docker unprivilegeduser\n" in text
    assert "VOLUME /var/lib/docker\n" in text
    assert "WORKDIR /go/src/github.com/docker/docker\n" in text
    assert "ENV DOCKER_BUILDTAGS apparmor pkcs11 seccomp selinux\n" in text
    assert "RUN /tmp/install-binaries.sh tomlv vndr runc containerd grimes proxy\n" in text
    assert 'ENTRYPOINT ["hack/dind"]\n' in text
    assert text.endswith("COPY . /go/src/github.com/docker/docker\n")
    for frozen in DEFAULT_FROZEN_IMAGES:
        assert frozen.pinned() in text


def test_dockerfile_rendering_is_deterministic(tmp_path: Path) -> None:
    image = DevImage(extra_env={"B": "2", "A": "1"})

    path = write_dockerfile(tmp_path / "Dockerfile", image)

    assert path.read_text(encoding="utf-8") == render_dockerfile(image)
    assert render_dockerfile(image).index("ENV A 1") < render_dockerfile(image).index("ENV B 2")


def test_frozen_images_must_be_pinned_by_digest() -> None:
    image = dataclasses.replace(
        DevImage(),
        frozen_images=(FrozenImage("busybox:latest", "latest"),),
    )

    with pytest.raises(ValidationError) as excinfo:
        render_dockerfile(image)

    assert excinfo.value.context["image"] == "busybox:latest"


def test_optional_sections_are_omitted_when_empty() -> None:
    text = render_dockerfile(DevImage(frozen_images=(), install_binaries=()))

    assert "download-frozen-image" not in text
    assert "install-binaries.sh" not in text
