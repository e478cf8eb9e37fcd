"""Detection of disk image formats from their headers."""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import BinaryIO

QCOW2_MAGIC = (ord("Q") << 24) | (ord("F") << 16) | (ord("I") << 8) | 0xFB
VDI_SIGNATURE = 0xBEDA107F
VMDK_MAGIC = 0x564D444B
GZ_MAGIC1 = 0x1F
GZ_MAGIC2 = 0x8B

_QCOW2_HEADER_SIZE = 72
_VDI_HEADER_SIZE = 512
_VDI_SIGNATURE_OFFSET = 0x40
_VMDK_HEADER_SIZE = 512


class ImageFormat(IntEnum):
    QCOW2 = 0
    VDI = 1
    VMDK = 2
    GCE_TARBALL = 3
    GCE_GS = 4
    RAW = 5
    UNKNOWN = 6


def _read_header(stream: BinaryIO, size: int) -> bytes | None:
    data = stream.read(size)
    if data is None or len(data) < size:
        return None
    return data


def probe_gs(path: str) -> bool:
    """Return True for Google Cloud Storage paths."""
    return path.startswith("gs://")


def probe_gce_tarball(stream: BinaryIO) -> bool:
    header = _read_header(stream, 2)
    return header is not None and header[0] == GZ_MAGIC1 and header[1] == GZ_MAGIC2


def probe_qcow2(stream: BinaryIO) -> bool:
    header = _read_header(stream, _QCOW2_HEADER_SIZE)
    return header is not None and struct.unpack_from(">I", header)[0] == QCOW2_MAGIC


def probe_vdi(stream: BinaryIO) -> bool:
    header = _read_header(stream, _VDI_HEADER_SIZE)
    if header is None:
        return False
    return struct.unpack_from("<I", header, _VDI_SIGNATURE_OFFSET)[0] == VDI_SIGNATURE


def probe_vmdk(stream: BinaryIO) -> bool:
    header = _read_header(stream, _VMDK_HEADER_SIZE)
    return header is not None and struct.unpack_from("<I", header)[0] == VMDK_MAGIC


def probe(path: str) -> ImageFormat:
    """Detect the format of the image at ``path``.

    A file without a known header is taken to be a raw image.
    """
    if probe_gs(path):
        return ImageFormat.GCE_GS
    checks = (
        (probe_qcow2, ImageFormat.QCOW2),
        (probe_vdi, ImageFormat.VDI),
        (probe_vmdk, ImageFormat.VMDK),
        (probe_gce_tarball, ImageFormat.GCE_TARBALL),
    )
    with open(path, "rb") as stream:
        for check, image_format in checks:
            stream.seek(0)
            if check(stream):
                return image_format
    return ImageFormat.RAW


def is_cloud_image(path: str) -> bool:
    """Return True if ``path`` refers to an image in cloud storage."""
    try:
        return probe(path) == ImageFormat.GCE_GS
    except OSError:
        return False