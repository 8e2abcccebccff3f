"""Evidence file storage on the local filesystem.

Files are written under a per-user prefix::

    <storage_dir>/<user_id>/<evid_…><ext>

The *reference* stored on an incident is the path relative to
``storage_dir``; ``url_for`` turns it into the public URL the files are
served at.
"""

import asyncio
import logging
import mimetypes
import re
from collections.abc import AsyncGenerator, Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from safereport.configs.config import get_evidence_config
from safereport.configs.system import EvidenceConfig
from safereport.infra.id_utils import (
    PREFIX_EVIDENCE,
    generate_id,
    is_safe_identifier,
)
from safereport.infra.lifespan import get_app

logger = logging.getLogger(__name__)

_EXTENSION = re.compile(r"^\.[a-z0-9]{1,8}$")


class EvidenceRejected(ValueError):
    """Upload refused before anything was written."""

    code = "EVIDENCE_REJECTED"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EvidenceTooLarge(EvidenceRejected):
    code = "FILE_TOO_LARGE"


class UnsupportedEvidenceType(EvidenceRejected):
    code = "UNSUPPORTED_MEDIA_TYPE"


@dataclass(frozen=True)
class StoredEvidence:
    reference: str
    url: str
    content_type: str
    size: int


class LocalEvidenceStorage:
    def __init__(
        self,
        root: Path,
        public_base_url: str,
        max_size_bytes: int,
        allowed_mime_types: Iterable[str],
    ) -> None:
        self._root = Path(root)
        self._base_url = public_base_url.rstrip("/")
        self._max_size = max_size_bytes
        self._allowed = frozenset(t.lower() for t in allowed_mime_types)

    @classmethod
    def from_config(cls, config: EvidenceConfig) -> "LocalEvidenceStorage":
        return cls(
            root=config.storage_dir,
            public_base_url=config.public_base_url,
            max_size_bytes=config.max_size_bytes,
            allowed_mime_types=config.allowed_mime_types,
        )

    @property
    def root(self) -> Path:
        return self._root

    @property
    def max_size_bytes(self) -> int:
        return self._max_size

    def validate(self, content_type: str | None, size: int) -> str:
        """Return the normalised content type or raise ``EvidenceRejected``."""
        if size > self._max_size:
            raise EvidenceTooLarge(
                f"File is {size} bytes; the limit is {self._max_size} bytes"
            )
        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in self._allowed:
            raise UnsupportedEvidenceType(
                f"Content type {mime or 'unknown'!r} is not accepted; "
                f"allowed: {', '.join(sorted(self._allowed))}"
            )
        return mime

    async def save(
        self,
        user_id: str,
        filename: str | None,
        content_type: str | None,
        data: bytes,
    ) -> StoredEvidence:
        if not is_safe_identifier(user_id):
            raise ValueError(f"User id {user_id!r} cannot be used as a storage prefix")
        mime = self.validate(content_type, len(data))

        name = generate_id(PREFIX_EVIDENCE) + _extension(filename, mime)
        reference = f"{user_id}/{name}"
        path = self.path_for(reference)
        await asyncio.to_thread(_write_file, path, data)

        logger.info("Stored evidence %s (%d bytes, %s)", reference, len(data), mime)
        return StoredEvidence(
            reference=reference,
            url=self.url_for(reference),
            content_type=mime,
            size=len(data),
        )

    def path_for(self, reference: str) -> Path:
        parts = PurePosixPath(reference).parts
        if not parts or any(not is_safe_identifier(p) for p in parts):
            raise ValueError(f"Invalid evidence reference {reference!r}")
        return self._root.joinpath(*parts)

    def exists(self, reference: str) -> bool:
        try:
            return self.path_for(reference).is_file()
        except ValueError:
            return False

    def url_for(self, reference: str) -> str:
        return f"{self._base_url}/{reference}"


def _extension(filename: str | None, mime: str) -> str:
    suffix = PurePosixPath(filename or "").suffix.lower()
    if _EXTENSION.match(suffix):
        return suffix
    return mimetypes.guess_extension(mime) or ""


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


# ---------------------------------------------------------------------------
# Lifespan + per-request dependencies
# ---------------------------------------------------------------------------


async def build_evidence_storage(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[EvidenceConfig, Depends(get_evidence_config)],
) -> AsyncGenerator[None, None]:
    """Create the storage root and attach the storage to ``app.state``."""
    storage = LocalEvidenceStorage.from_config(config)
    storage.root.mkdir(parents=True, exist_ok=True)
    app.state.evidence_storage = storage
    yield


def get_evidence_storage(request: Request) -> LocalEvidenceStorage:
    """FastAPI dependency: reads from ``app.state``."""
    return request.app.state.evidence_storage
