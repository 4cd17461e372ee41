# OctoMap message decoding for the reachability filter

from .codec import (
    OctreeDecodeError,
    binary_stream_size,
    check_resolution,
    format_bt,
    format_ot,
    full_stream_size,
    split_bt,
    split_ot,
    tree_from_message,
)

__all__ = [
    "OctreeDecodeError",
    "binary_stream_size",
    "check_resolution",
    "format_bt",
    "format_ot",
    "full_stream_size",
    "split_bt",
    "split_ot",
    "tree_from_message",
]
