"""The newc cpio header used to stream files into a guest."""

from __future__ import annotations

from typing import BinaryIO

C_ISREG = 0o100000
C_ISLNK = 0o120000
C_ISDIR = 0o040000

MAGIC = "070701"


def write_padded(stream: BinaryIO, data: bytes) -> None:
    """Write ``data`` followed by zero bytes up to a multiple of four."""
    stream.write(data)
    partial = len(data) % 4
    if partial:
        stream.write(bytes(4 - partial))


def to_wire_format(filename: str, mode: int, filesize: int) -> bytes:
    """Return the cpio header for a file, including its NUL-terminated name."""
    name = filename.encode("utf-8")
    fields = (
        0,  # inode
        mode,
        0,  # uid
        0,  # gid
        0,  # nlink
        0,  # mtime
        filesize,
        0,  # devmajor
        0,  # devminor
        0,  # rdevmajor
        0,  # rdevminor
        len(name) + 1,  # namesize
        0,  # check
    )
    header = MAGIC + "".join(f"{value:08x}" for value in fields)
    return header.encode("ascii") + name + b"\x00"