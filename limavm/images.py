"""Disk image catalogue and cached image file names."""

from __future__ import annotations

import os
from dataclasses import replace
from typing import Mapping

from limavm.environment import Arch, normalize_arch
from limavm.limaconfig import File
from limavm.util import QemuNotFoundError, assert_qemu_img

ImageCatalogue = dict[str, dict[str, File]]
"""Map of runtime to a map of amd64/arm64 architecture name to image file."""


class DiskImageFile(str):
    """Path of a downloaded disk image, in qcow2 form or converted to raw."""

    def base(self) -> str:
        """Return the path without the .raw suffix."""
        return str(self).removesuffix(".raw")

    def raw(self) -> str:
        """Return the path of the raw image."""
        return self.base() + ".raw"

    def location(self) -> str:
        """Return the expected image path: raw when qemu-img is available."""
        try:
            assert_qemu_img()
        except QemuNotFoundError:
            return self.base()
        return self.raw()

    def generated(self) -> bool:
        """Return whether the image at the expected location exists as a file."""
        return os.path.isfile(self.location())


def load_images(data: str | bytes) -> ImageCatalogue:
    """Parse 'arch runtime url sha512' lines into an image catalogue."""
    text = data.decode() if isinstance(data, bytes) else data
    images: ImageCatalogue = {}
    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        arch_name, runtime, url, sha = (parts + ["", "", "", ""])[:4]
        arch = normalize_arch(arch_name)
        file = File(location=url, arch=arch, digest=f"sha512:{sha}" if sha else "")
        images.setdefault(runtime, {})[arch.go_arch()] = file
    return images


def find_image(images: Mapping[str, Mapping[str, File]], arch: str | Arch, runtime: str) -> File:
    """Return a copy of the image for arch and runtime, or raise LookupError."""
    target = normalize_arch(arch)
    image = images.get(runtime, {}).get(target.go_arch())
    if image is None:
        raise LookupError(f"cannot find {target} image for {runtime} runtime")
    return replace(image)