"""Decoders for BGP OPEN, UPDATE and BGP-LS data as seen by a BMP collector."""

__version__ = "0.1.0"

__all__ = [
    "ls_attr",
    "ls_codec",
    "ls_sr",
    "model",
    "open_msg",
    "update_attrs",
    "update_msg",
]