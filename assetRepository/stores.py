"""Artifact store collaborators holding carrier and surrogate bytes."""
from __future__ import annotations

from pathlib import Path
import threading
from typing import Dict, Protocol, Tuple
from urllib.parse import quote

import requests
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import AssetRepositoryError, NotFound
from .utils.log_json import JsonLogger

_logger = JsonLogger("artifact-store")


class ArtifactStore(Protocol):
    def get_canonical_content(self, artifact_id: str, version: str) -> bytes:
        ...

    def put_content(self, artifact_id: str, version: str, data: bytes) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryArtifactStore:
    """Process-local store keyed by ``(artifact_id, version)``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._content: Dict[Tuple[str, str], bytes] = {}

    def get_canonical_content(self, artifact_id: str, version: str) -> bytes:
        with self._lock:
            try:
                return self._content[(str(artifact_id), str(version))]
            except KeyError:
                raise NotFound(f"Artifact {artifact_id}:{version} not found") from None

    def put_content(self, artifact_id: str, version: str, data: bytes) -> None:
        with self._lock:
            self._content[(str(artifact_id), str(version))] = bytes(data)

    def clear(self) -> None:
        with self._lock:
            self._content.clear()


class FileSystemArtifactStore:
    """Stores each artifact version as ``<root>/<artifact_id>/<version>``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, artifact_id: str, version: str) -> Path:
        return self.root / quote(str(artifact_id), safe="") / quote(str(version), safe="")

    def get_canonical_content(self, artifact_id: str, version: str) -> bytes:
        path = self._path(artifact_id, version)
        if not path.is_file():
            raise NotFound(f"Artifact {artifact_id}:{version} not found")
        return path.read_bytes()

    def put_content(self, artifact_id: str, version: str, data: bytes) -> None:
        path = self._path(artifact_id, version)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(bytes(data))
        tmp.replace(path)

    def clear(self) -> None:
        for artifact_dir in self.root.iterdir():
            if artifact_dir.is_dir():
                for version_file in artifact_dir.iterdir():
                    version_file.unlink()
                artifact_dir.rmdir()


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    _logger.warning(
        "artifact_store.retry",
        attempt=retry_state.attempt_number,
        error=str(exc) if exc else None,
    )


class HttpArtifactStore:
    """Client for a remote artifact repository.

    Content lives at ``{base_url}/repos/{repository_id}/artifacts/{id}/versions/{v}``.
    Connection failures are retried; HTTP errors are not.
    """

    def __init__(
        self,
        base_url: str,
        repository_id: str = "default",
        *,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.repository_id = repository_id
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, artifact_id: str = "", version: str = "") -> str:
        url = f"{self.base_url}/repos/{quote(self.repository_id, safe='')}/artifacts"
        if artifact_id:
            url += f"/{quote(str(artifact_id), safe='')}"
        if version:
            url += f"/versions/{quote(str(version), safe='')}"
        return url

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(requests.ConnectionError),
        before_sleep=_log_retry,
    )
    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        return self.session.request(method, url, timeout=self.timeout, **kwargs)

    def get_canonical_content(self, artifact_id: str, version: str) -> bytes:
        url = self._url(artifact_id, version)
        resp = self._request("GET", url)
        if resp.status_code == 404:
            raise NotFound(f"Artifact {artifact_id}:{version} not found")
        if not resp.ok:
            _logger.error("artifact_store.get_failed", status=resp.status_code, url=url)
            raise AssetRepositoryError(
                f"Artifact store returned {resp.status_code} for {artifact_id}:{version}"
            )
        return resp.content

    def put_content(self, artifact_id: str, version: str, data: bytes) -> None:
        url = self._url(artifact_id, version)
        resp = self._request(
            "PUT",
            url,
            data=bytes(data),
            headers={"Content-Type": "application/octet-stream"},
        )
        if not resp.ok:
            _logger.error("artifact_store.put_failed", status=resp.status_code, url=url)
            raise AssetRepositoryError(
                f"Artifact store returned {resp.status_code} storing {artifact_id}:{version}"
            )

    def clear(self) -> None:
        resp = self._request("DELETE", self._url())
        if not resp.ok and resp.status_code != 404:
            raise AssetRepositoryError(f"Artifact store returned {resp.status_code} on clear")


__all__ = [
    "ArtifactStore",
    "InMemoryArtifactStore",
    "FileSystemArtifactStore",
    "HttpArtifactStore",
]
