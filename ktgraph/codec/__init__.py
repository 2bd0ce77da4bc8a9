"""
KT-SQEP XML interchange format.
"""

from .xml_codec import (
    DecodeResult,
    decode,
    decode_with_report,
    encode,
    encode_entity,
    format_coordinate,
)

__all__ = [
    "DecodeResult",
    "decode",
    "decode_with_report",
    "encode",
    "encode_entity",
    "format_coordinate",
]
