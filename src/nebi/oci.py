"""OCI registry client for importing published workspaces.

Only anonymous pulls are supported: fetch the image manifest by tag (or
digest), pick the pixi.toml and pixi.lock layers, fetch their blobs.
oras-py's token auth backend answers ``Www-Authenticate: Bearer realm=...``
challenges with an anonymous token; requests follows redirects (registries
commonly redirect blob downloads to object storage). No credentials are sent.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging

import oras.provider
import requests
from oras.container import Container
from requests.adapters import HTTPAdapter

from .constants import (
    LOCK_FILE,
    MANIFEST_FILE,
    MEDIA_TYPE_PIXI_LOCK,
    MEDIA_TYPE_PIXI_TOML,
    OCI_MANIFEST_MEDIA_TYPE,
    OCI_TIMEOUT,
    OCI_TITLE_ANNOTATION,
)
from .errors import NebiError, OciFetchError

logger = logging.getLogger(__name__)


@dataclass
class OciReference:
    host: str
    repository: str
    tag: str = ""
    digest: str = ""

    @property
    def target(self) -> str:
        if self.digest:
            return f"{self.host}/{self.repository}@{self.digest}"
        return f"{self.host}/{self.repository}:{self.tag}"

    def __str__(self) -> str:
        return self.target


@dataclass
class OciContent:
    manifest: str
    lock: str
    reference: OciReference


def parse_oci_reference(reference: str) -> OciReference:
    """Parse ``host/repo:tag`` or ``host/repo@sha256:...``.

    Raises:
        NebiError: missing tag or repository
    """
    ref = reference.strip()
    for scheme in ("oci://", "https://", "http://"):
        if ref.startswith(scheme):
            ref = ref[len(scheme):]
            break

    digest = ""
    tag = ""
    if "@" in ref:
        ref, digest = ref.split("@", 1)
    else:
        slash = ref.rfind("/")
        colon = ref.rfind(":")
        if colon > slash:
            ref, tag = ref[:colon], ref[colon + 1:]

    if not tag and not digest:
        raise NebiError("tag is required; use format registry/repository:tag")

    host, sep, repository = ref.partition("/")
    if not sep or not host or not repository:
        raise NebiError(
            f"invalid OCI reference '{reference}'; use format registry/repository:tag"
        )
    return OciReference(host=host, repository=repository, tag=tag, digest=digest)


def select_layers(layers: List[Dict[str, Any]]) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """Pick (manifest layer, lock layer).

    Match by media type or title annotation first; when nothing matches,
    fall back to position (first is the manifest, second the lock).
    """
    toml_layer = None
    lock_layer = None
    for layer in layers:
        media_type = layer.get("mediaType", "")
        title = (layer.get("annotations") or {}).get(OCI_TITLE_ANNOTATION)
        if toml_layer is None and (media_type == MEDIA_TYPE_PIXI_TOML or title == MANIFEST_FILE):
            toml_layer = layer
        elif lock_layer is None and (media_type == MEDIA_TYPE_PIXI_LOCK or title == LOCK_FILE):
            lock_layer = layer

    if toml_layer is None and lock_layer is None and layers:
        toml_layer = layers[0]
        if len(layers) > 1:
            lock_layer = layers[1]
    return toml_layer, lock_layer


def _is_localhost(host: str) -> bool:
    hostname = host.rsplit(":", 1)[0] if host.count(":") == 1 else host
    return hostname in {"localhost", "127.0.0.1", "::1", "[::1]"}


class _TimeoutAdapter(HTTPAdapter):
    """HTTPAdapter that applies a default timeout to every request."""

    def __init__(self, timeout: float, *args, **kwargs):
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


class OciClient:
    """Anonymous pull of pixi workspaces from OCI registries."""

    def __init__(self, timeout: float = OCI_TIMEOUT):
        self.timeout = timeout

    def _client_for(self, host: str) -> oras.provider.Registry:
        client = oras.provider.Registry(insecure=_is_localhost(host))
        adapter = _TimeoutAdapter(self.timeout)
        client.session.mount("https://", adapter)
        client.session.mount("http://", adapter)
        return client

    def fetch(self, reference: str) -> OciContent:
        """Fetch manifest and lock text for ``host/repo:tag``.

        Raises:
            NebiError: malformed reference
            OciFetchError: any registry or transport failure
        """
        ref = parse_oci_reference(reference)
        client = self._client_for(ref.host)
        container = Container(ref.target)

        manifest = self._get_manifest(client, container, ref)
        toml_layer, lock_layer = select_layers(manifest.get("layers") or [])
        if toml_layer is None:
            raise OciFetchError(ref.host, ref.repository, f"{MANIFEST_FILE} not found in manifest layers")

        manifest_text = self._get_blob(client, container, ref, toml_layer["digest"])
        lock_text = ""
        if lock_layer is not None:
            lock_text = self._get_blob(client, container, ref, lock_layer["digest"])
        return OciContent(manifest=manifest_text, lock=lock_text, reference=ref)

    def _get_manifest(self, client: oras.provider.Registry, container: Container, ref: OciReference) -> Dict[str, Any]:
        url = f"{client.prefix}://{container.manifest_url()}"
        logger.debug("GET %s", url)
        try:
            resp = client.do_request(url, "GET", headers={"Accept": OCI_MANIFEST_MEDIA_TYPE})
        except requests.exceptions.RequestException as e:
            raise OciFetchError(ref.host, ref.repository, f"cannot connect to registry: {e}") from e

        self._check(resp, ref, f"manifest {ref.tag or ref.digest}")
        try:
            manifest = resp.json()
        except ValueError as e:
            content_type = resp.headers.get("content-type", "unknown")
            raise OciFetchError(
                ref.host, ref.repository, f"expected JSON manifest but got {content_type}"
            ) from e
        if not isinstance(manifest, dict):
            raise OciFetchError(ref.host, ref.repository, "malformed manifest")
        if manifest.get("manifests"):
            raise OciFetchError(
                ref.host, ref.repository, "reference points to an index, not a single artifact"
            )
        return manifest

    def _get_blob(self, client: oras.provider.Registry, container: Container, ref: OciReference, digest: str) -> str:
        logger.debug("GET blob %s from %s", digest, ref)
        try:
            resp = client.get_blob(container, digest)
        except requests.exceptions.RequestException as e:
            raise OciFetchError(ref.host, ref.repository, f"cannot connect to registry: {e}") from e
        self._check(resp, ref, f"blob {digest}")
        try:
            return resp.content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise OciFetchError(ref.host, ref.repository, f"blob {digest} is not UTF-8 text") from e

    @staticmethod
    def _check(resp: requests.Response, ref: OciReference, what: str) -> None:
        if resp.status_code == 200:
            return
        if resp.status_code == 404:
            raise OciFetchError(ref.host, ref.repository, f"{what} not found")
        if resp.status_code in (401, 403):
            raise OciFetchError(
                ref.host, ref.repository,
                f"access denied ({resp.status_code}); only public repositories can be imported",
            )
        raise OciFetchError(ref.host, ref.repository, f"registry returned HTTP {resp.status_code} for {what}")
