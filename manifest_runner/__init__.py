"""
Manifest Runner

Writes a service manifest, loads it into the supervisor through its control
binary, echoes it and removes it again. Used to exercise socket activation
of the sa-wrapper test program end to end.
"""

from .manifest import ServiceManifest, SocketSpec, build_test_manifest
from .runner import ManifestRunner

__all__ = [
    "ManifestRunner",
    "ServiceManifest",
    "SocketSpec",
    "build_test_manifest",
]
