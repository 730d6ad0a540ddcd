
"""
Common primitives for eazy-serializer.

Modules:
- crypto: SHA-256 key/IV derivation and AES-CBC encryption
- errors: Error taxonomy shared by the serialization pipeline
- hostos: Host OS classification and writable path resolution
"""

__all__ = [
    "crypto",
    "errors",
    "hostos",
]
