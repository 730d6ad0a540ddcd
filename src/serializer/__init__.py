
"""
JSON serialization to files with optional AES encryption.

This package defines the serializer configuration, the JSON codec that maps
Python objects to JSON data, and the file-backed `EazySerializer`.
"""

from .file_store import EazySerializer, load_from_file, save_to_file
from .models import JsonOptions, LogEntry, Result, SerializerConfig

__all__ = [
    "EazySerializer",
    "JsonOptions",
    "LogEntry",
    "Result",
    "SerializerConfig",
    "load_from_file",
    "save_to_file",
]
