"""Archival provider settings and their server configuration."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import quote


class ArchivalProviderKind(enum.Enum):
    FILESTORE = "filestore"
    S3 = "s3"
    GCS = "gcs"
    UNKNOWN = "unknown"


_URI_SCHEMES = {
    ArchivalProviderKind.FILESTORE: "file",
    ArchivalProviderKind.S3: "s3",
    ArchivalProviderKind.GCS: "gs",
}


@dataclass
class FilestoreArchiver:
    dir_permissions: str = ""
    file_permissions: str = ""


@dataclass
class S3Archiver:
    region: str = ""
    endpoint: str | None = None
    s3_force_path_style: bool = False
    role_name: str | None = None
    credentials: Mapping[str, Any] | None = None


@dataclass
class ArchivalProvider:
    filestore: FilestoreArchiver | None = None
    s3: S3Archiver | None = None
    gcs: Mapping[str, Any] | None = None

    def kind(self) -> ArchivalProviderKind:
        if self.filestore is not None:
            return ArchivalProviderKind.FILESTORE
        if self.s3 is not None:
            return ArchivalProviderKind.S3
        if self.gcs is not None:
            return ArchivalProviderKind.GCS
        return ArchivalProviderKind.UNKNOWN


@dataclass
class ArchivalSpec:
    enabled: bool = False
    paused: bool = False
    path: str = ""


@dataclass
class ClusterArchivalSpec:
    enabled: bool = False
    provider: ArchivalProvider | None = None
    history: ArchivalSpec | None = None
    visibility: ArchivalSpec | None = None

    def is_enabled(self) -> bool:
        return self.enabled


def archival_uri(provider: ArchivalProvider | None, spec: ArchivalSpec) -> str:
    """Build the archival URI for the spec's path, or "" for an unknown provider."""
    kind = provider.kind() if provider is not None else ArchivalProviderKind.UNKNOWN
    scheme = _URI_SCHEMES.get(kind)
    if scheme is None:
        return ""
    path = quote(spec.path, safe="/$&+,:;=@")
    return f"{scheme}://{path}" if path else f"{scheme}:"


def filestore_archiver_config(archiver: FilestoreArchiver | None) -> dict[str, str] | None:
    if archiver is None:
        return None
    return {"dirMode": archiver.dir_permissions, "fileMode": archiver.file_permissions}


def s3_archiver_config(archiver: S3Archiver | None) -> dict[str, Any] | None:
    if archiver is None:
        return None
    return {
        "region": archiver.region,
        "endpoint": archiver.endpoint,
        "s3ForcePathStyle": archiver.s3_force_path_style,
    }