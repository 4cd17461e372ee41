"""
OctoMap message decoding on top of ``pyoctomap``.

Octomap messages carry a bare OcTree stream. OctoMap only reads trees from
files, so the stream is wrapped in the matching file header and handed to
``pyoctomap`` through a temporary file:

Binary stream (``binary=True``)
    ``.bt`` file (``# Octomap OcTree binary file``), read with
    ``OcTree.readBinary``. Every inner node is two bytes holding two bits
    per child: ``00`` absent, ``01`` free leaf, ``10`` occupied leaf,
    ``11`` inner node.

Full stream (``binary=False``)
    ``.ot`` file (``# Octomap OcTree file``), read with ``OcTree.read``.
    Every node is a float32 log-odds value and one byte of child bits.

The header ``size`` line is the node count of the stream. It is computed
from the child codes, and a stream whose codes do not account for exactly
its own length is rejected before it reaches OctoMap.
"""

from __future__ import annotations

import binascii
import logging
import math
import os
import tempfile

import numpy as np
import pyoctomap

logger = logging.getLogger(__name__)

TREE_TYPE = "OcTree"
TREE_DEPTH = 16
BT_FILE_HEADER = b"# Octomap OcTree binary file"
OT_FILE_HEADER = b"# Octomap OcTree file"

# Two-bit child codes of the binary stream
CHILD_UNKNOWN = 0b00
CHILD_FREE = 0b01
CHILD_OCCUPIED = 0b10
CHILD_INNER = 0b11

_CODE_SHIFTS = np.array([0, 2, 4, 6], dtype=np.uint8)
_FULL_NODE_SIZE = 5


class OctreeDecodeError(ValueError):
    """Raised when an octree payload cannot be decoded."""


def check_resolution(resolution: float) -> None:
    """Reject resolutions whose tree extent is not a finite positive length."""
    if not (math.isfinite(resolution) and resolution > 0.0):
        raise OctreeDecodeError(f"invalid octree resolution {resolution!r}")
    if not math.isfinite(resolution * 2 ** TREE_DEPTH):
        raise OctreeDecodeError(f"octree resolution {resolution!r} overflows the tree extent")


# ---------------------------------------------------------------------------
# Stream sizes
# ---------------------------------------------------------------------------


def binary_stream_size(stream: bytes) -> int:
    """Node count of a binary stream (inner nodes plus leaves)."""
    if len(stream) % 2:
        raise OctreeDecodeError(f"binary tree stream has odd length {len(stream)}")
    codes = (np.frombuffer(stream, dtype=np.uint8)[:, None] >> _CODE_SHIFTS) & 0b11
    records = len(stream) // 2
    inner = int(np.count_nonzero(codes == CHILD_INNER))
    if inner + 1 != records:
        raise OctreeDecodeError(
            f"binary tree stream declares {inner + 1} inner nodes in {records} records"
        )
    leaves = int(np.count_nonzero((codes == CHILD_FREE) | (codes == CHILD_OCCUPIED)))
    return records + leaves


def full_stream_size(stream: bytes) -> int:
    """Node count of a full stream."""
    if len(stream) % _FULL_NODE_SIZE:
        raise OctreeDecodeError(
            f"full tree stream length {len(stream)} is not a multiple of {_FULL_NODE_SIZE}"
        )
    child_bits = np.frombuffer(stream, dtype=np.uint8)[_FULL_NODE_SIZE - 1::_FULL_NODE_SIZE]
    records = len(stream) // _FULL_NODE_SIZE
    children = int(np.unpackbits(child_bits).sum())
    if children + 1 != records:
        raise OctreeDecodeError(
            f"full tree stream declares {children + 1} nodes in {records} records"
        )
    return records


# ---------------------------------------------------------------------------
# File containers
# ---------------------------------------------------------------------------


def _format(first_line: bytes, stream: bytes, resolution: float, size: int) -> bytes:
    header = (
        "\n# (feel free to add / change comments, but leave the first line as it is!)\n"
        "#\n"
        f"id {TREE_TYPE}\n"
        f"size {size}\n"
        f"res {resolution!r}\n"
        "data\n"
    )
    return first_line + header.encode("ascii") + stream


def format_bt(stream: bytes, resolution: float) -> bytes:
    """Wrap a binary stream in the ``.bt`` container."""
    return _format(BT_FILE_HEADER, stream, resolution, binary_stream_size(stream))


def format_ot(stream: bytes, resolution: float) -> bytes:
    """Wrap a full stream in the ``.ot`` container."""
    return _format(OT_FILE_HEADER, stream, resolution, full_stream_size(stream))


def _split(raw: bytes, first_line: bytes) -> tuple[bytes, float, int]:
    if not raw.startswith(first_line + b"\n"):
        raise OctreeDecodeError(f"missing {first_line.decode()!r} header")

    tree_id = None
    size = None
    resolution = None
    pos = 0
    while True:
        end = raw.find(b"\n", pos)
        if end < 0:
            raise OctreeDecodeError("octree file header has no 'data' line")
        line = raw[pos:end].decode("ascii", errors="replace").strip()
        pos = end + 1
        if not line or line.startswith("#"):
            continue
        token, _, value = line.partition(" ")
        try:
            if token == "data":
                break
            elif token == "id":
                tree_id = value.strip()
            elif token == "size":
                size = int(value)
            elif token == "res":
                resolution = float(value)
            else:
                logger.warning("Unknown keyword %r in octree file header, skipping", token)
        except ValueError as e:
            raise OctreeDecodeError(f"invalid octree file header line {line!r}") from e

    if tree_id != TREE_TYPE:
        raise OctreeDecodeError(f"unsupported octree type {tree_id!r}")
    if size is None or resolution is None:
        raise OctreeDecodeError("octree file header is missing 'size' or 'res'")
    return raw[pos:], resolution, size


def split_bt(raw: bytes) -> tuple[bytes, float, int]:
    """Split ``.bt`` contents into (binary stream, resolution, node count)."""
    return _split(raw, BT_FILE_HEADER)


def split_ot(raw: bytes) -> tuple[bytes, float, int]:
    """Split ``.ot`` contents into (full stream, resolution, node count)."""
    return _split(raw, OT_FILE_HEADER)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def _read_tree(contents: bytes, binary: bool, resolution: float) -> pyoctomap.OcTree:
    with tempfile.TemporaryDirectory(prefix="octomap-") as tmp_dir:
        path = os.path.join(tmp_dir, "scene.bt" if binary else "scene.ot")
        with open(path, "wb") as f:
            f.write(contents)

        if binary:
            tree = pyoctomap.OcTree(resolution)
            if not tree.readBinary(path):
                raise OctreeDecodeError("OctoMap rejected the binary tree stream")
            return tree

        tree = pyoctomap.OcTree(resolution).read(path)
        if tree is None:
            raise OctreeDecodeError("OctoMap rejected the full tree stream")
        return tree


def tree_from_message(msg) -> pyoctomap.OcTree:
    """Decode the tree carried by an :class:`OctomapMessage`.

    Raises:
        OctreeDecodeError: unsupported tree type, bad base64, empty or
            malformed stream, unusable resolution.
    """
    if msg.id != TREE_TYPE:
        raise OctreeDecodeError(f"unsupported octree type {msg.id!r}")
    check_resolution(msg.resolution)
    try:
        payload = msg.payload()
    except (binascii.Error, ValueError) as e:
        raise OctreeDecodeError(f"octomap data is not valid base64: {e}") from e
    if not payload:
        raise OctreeDecodeError("octomap message carries no data")

    if not msg.binary:
        return _read_tree(format_ot(payload, msg.resolution), False, msg.resolution)

    size = binary_stream_size(payload)
    if size == 1:
        # OctoMap turns a childless root into one occupied root-sized voxel
        logger.debug("Binary tree stream holds only an empty root")
        return pyoctomap.OcTree(msg.resolution)
    contents = _format(BT_FILE_HEADER, payload, msg.resolution, size)
    return _read_tree(contents, True, msg.resolution)
