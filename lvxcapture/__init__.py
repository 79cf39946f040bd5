"""LVX point-cloud recording files, extrinsic XML, PLY export and capture coordination."""

__version__ = "0.1.0"
__all__ = ["capture", "extrinsic", "lvx", "options", "ply"]