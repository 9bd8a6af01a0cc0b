"""
Category mappings for numeric and binary output.

Static mappings come from declared values; dynamic ones are grown on the
fly and persisted to mapping files.
"""

from featurefactory.mapping.codecs import (
    BinaryCodec,
    DynamicNumericCodec,
    NumericCodec,
    StaticNumericCodec,
)
from featurefactory.mapping.store import MappingFile, find_mapping_file, mapping_file_name

__all__ = [
    "BinaryCodec",
    "DynamicNumericCodec",
    "MappingFile",
    "NumericCodec",
    "StaticNumericCodec",
    "find_mapping_file",
    "mapping_file_name",
]
