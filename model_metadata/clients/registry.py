"""
OCI registry client for modelcar images.

Talks to the distribution v2 HTTP API with `requests`: manifests (including
multi-architecture indexes), the image config blob for timestamps, and the
layer annotated as the modelcard, which is a (possibly gzipped) tar holding a
single markdown file.
"""
import io
import json
import logging
import re
import tarfile
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import requests

from ..models.schemas import Artifact, ModelcardFetch
from ..utils.text_utils import parse_time_to_epoch

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

MODELCARD_LAYER_ANNOTATION = "io.opendatahub.modelcar.layer.type"
MODELCARD_LAYER_TYPE = "modelcard"

MANIFEST_MEDIA_TYPES = [
    "application/vnd.oci.image.manifest.v1+json",
    "application/vnd.docker.distribution.manifest.v2+json",
    "application/vnd.oci.image.index.v1+json",
    "application/vnd.docker.distribution.manifest.list.v2+json",
]
INDEX_MEDIA_TYPES = frozenset({
    "application/vnd.oci.image.index.v1+json",
    "application/vnd.docker.distribution.manifest.list.v2+json",
})

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


class RegistryReferenceError(ValueError):
    """Raised for references that do not look like registry/repository/name[:tag]."""


class ImageRef(NamedTuple):
    registry: str
    repository: str
    name: str
    tag: str

    @property
    def path(self) -> str:
        return f"{self.repository}/{self.name}"

    @property
    def uri(self) -> str:
        return f"oci://{self.registry}/{self.path}:{self.tag}"

    def manifest_url(self, reference: Optional[str] = None) -> str:
        return f"https://{self.registry}/v2/{self.path}/manifests/{reference or self.tag}"

    def blob_url(self, digest: str) -> str:
        return f"https://{self.registry}/v2/{self.path}/blobs/{digest}"


def parse_image_ref(ref: str) -> ImageRef:
    """Split `registry/repository/name[:tag]`; the tag defaults to `latest`."""
    reference = ref[len("oci://"):] if ref.startswith("oci://") else ref
    parts = reference.split("/")
    if len(parts) < 3 or not all(parts):
        raise RegistryReferenceError(f"Invalid image reference format: {ref}")

    registry, repository = parts[0], parts[1]
    name_with_tag = "/".join(parts[2:])
    if ":" in name_with_tag:
        index = name_with_tag.rindex(":")
        name, tag = name_with_tag[:index], name_with_tag[index + 1:]
    else:
        name, tag = name_with_tag, "latest"
    return ImageRef(registry, repository, name, tag or "latest")


def extract_markdown_files(blob: bytes) -> List[Tuple[str, bytes]]:
    """Every `.md` member of a tar or tar.gz layer blob."""
    files = []
    try:
        with tarfile.open(fileobj=io.BytesIO(blob), mode="r:*") as archive:
            for member in archive:
                if not member.isfile() or not member.name.endswith(".md"):
                    continue
                handle = archive.extractfile(member)
                if handle is not None:
                    files.append((member.name, handle.read()))
    except (tarfile.TarError, EOFError, OSError) as e:
        logger.warning(f"Modelcard layer is not a readable tar archive: {e}")
    return files


def architectures_from_index(index: Dict[str, Any]) -> List[str]:
    architectures = {
        (entry.get("platform") or {}).get("architecture")
        for entry in index.get("manifests") or []
    }
    return sorted(arch for arch in architectures if arch and arch != "unknown")


class RegistryClient:
    """Read-only access to modelcar images in an OCI registry."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = DEFAULT_TIMEOUT,
                 username: Optional[str] = None, password: Optional[str] = None):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.auth = (username, password) if username and password else None

    def _bearer_token(self, challenge: str, image: ImageRef) -> Optional[str]:
        params = dict(_CHALLENGE_PARAM.findall(challenge))
        realm = params.pop("realm", None)
        if not realm:
            return None
        params.setdefault("scope", f"repository:{image.path}:pull")
        response = self.session.get(realm, params=params, auth=self.auth, timeout=self.timeout)
        response.raise_for_status()
        body = response.json()
        return body.get("token") or body.get("access_token")

    def _get(self, url: str, image: ImageRef, token: Optional[str],
             accept: Optional[List[str]] = None) -> Tuple[requests.Response, Optional[str]]:
        """GET with one retry through the registry's bearer token challenge."""
        headers = {"Accept": ", ".join(accept)} if accept else {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        response = self.session.get(url, headers=headers, timeout=self.timeout)

        if response.status_code == 401 and token is None:
            challenge = response.headers.get("WWW-Authenticate", "")
            token = self._bearer_token(challenge, image) if challenge.lower().startswith("bearer") else None
            if token:
                headers["Authorization"] = f"Bearer {token}"
                response = self.session.get(url, headers=headers, timeout=self.timeout)

        response.raise_for_status()
        return response, token

    def _resolve_manifest(self, image: ImageRef) -> Tuple[Dict[str, Any], List[str], Optional[str]]:
        """Image manifest, architectures and token; indexes resolve to their first usable entry."""
        logger.debug(f"Fetching manifest {image.manifest_url()}")
        response, token = self._get(image.manifest_url(), image, None, MANIFEST_MEDIA_TYPES)
        manifest = response.json()
        if not isinstance(manifest, dict):
            raise ValueError(f"Manifest for {image.uri} is not a JSON object")

        media_type = manifest.get("mediaType") or response.headers.get("Content-Type", "")
        if media_type not in INDEX_MEDIA_TYPES and "manifests" not in manifest:
            return manifest, [], token

        architectures = architectures_from_index(manifest)
        entries = [
            entry for entry in manifest.get("manifests") or []
            if (entry.get("platform") or {}).get("architecture") != "unknown"
        ]
        if not entries:
            raise ValueError(f"Image index for {image.uri} lists no manifests")

        response, token = self._get(image.manifest_url(entries[0]["digest"]), image, token, MANIFEST_MEDIA_TYPES)
        manifest = response.json()
        if not isinstance(manifest, dict):
            raise ValueError(f"Manifest for {image.uri} is not a JSON object")
        return manifest, architectures, token

    def _fetch_blob(self, image: ImageRef, digest: str, token: Optional[str]) -> bytes:
        response, _ = self._get(image.blob_url(digest), image, token)
        return response.content

    def fetch_modelcard(self, ref: str) -> ModelcardFetch:
        """
        Look for the modelcard markdown inside the image.

        Only layers annotated as the modelcard are downloaded. More than one
        markdown file across those layers is reported as ambiguous rather than
        guessing which one is canonical.
        """
        try:
            image = parse_image_ref(ref)
            manifest, _, token = self._resolve_manifest(image)
            layers = [
                layer for layer in manifest.get("layers") or []
                if (layer.get("annotations") or {}).get(MODELCARD_LAYER_ANNOTATION) == MODELCARD_LAYER_TYPE
            ]
            markdown = []
            for layer in layers:
                logger.debug(f"Fetching modelcard layer {layer.get('digest')} for {ref}")
                markdown.extend(extract_markdown_files(self._fetch_blob(image, layer["digest"], token)))
        except (RegistryReferenceError, requests.RequestException, ValueError, KeyError) as e:
            logger.warning(f"Failed to fetch modelcard for {ref}: {e}")
            return ModelcardFetch()

        if len(markdown) > 1:
            names = ", ".join(name for name, _ in markdown)
            logger.warning(f"Found {len(markdown)} markdown files in {ref} ({names}), treating as missing")
            return ModelcardFetch(ambiguous=True)
        if not markdown:
            logger.info(f"No modelcard layer found in {ref}")
            return ModelcardFetch()
        return ModelcardFetch(content=markdown[0][1], found=True)

    def fetch_artifacts(self, ref: str) -> List[Artifact]:
        """
        Artifact records for a reference. Never raises.

        Timestamps come from the image config (`created` and the last history
        entry) in epoch milliseconds. On any failure a single artifact carrying
        an `error` property is returned instead.
        """
        try:
            image = parse_image_ref(ref)
        except RegistryReferenceError as e:
            logger.warning(str(e))
            uri = ref if ref.startswith("oci://") else f"oci://{ref}"
            return [Artifact(uri=uri, custom_properties={"source": "unknown", "error": str(e)})]

        properties = {"source": image.registry, "type": "modelcar"}
        try:
            manifest, architectures, token = self._resolve_manifest(image)
            for key, value in (manifest.get("annotations") or {}).items():
                properties[key] = str(value)

            config: Dict[str, Any] = {}
            config_digest = (manifest.get("config") or {}).get("digest")
            if config_digest:
                config = json.loads(self._fetch_blob(image, config_digest, token))
            if not isinstance(config, dict):
                raise ValueError(f"image config is a {type(config).__name__}, not an object")
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.warning(f"Failed to fetch registry metadata for {ref}: {e}")
            return [Artifact(uri=image.uri, custom_properties={"source": "unknown", "error": str(e)})]

        if not architectures and config.get("architecture"):
            architectures = [config["architecture"]]
        if architectures:
            properties["architecture"] = json.dumps(architectures)

        created = parse_time_to_epoch(config.get("created"))
        history = config.get("history") or []
        last = history[-1] if isinstance(history, list) and history else None
        updated = parse_time_to_epoch(last.get("created")) if isinstance(last, dict) else None

        artifact = Artifact(
            uri=image.uri,
            create_time_since_epoch=created,
            last_update_time_since_epoch=updated or created,
            custom_properties=properties,
        )
        return [artifact]
