"""GitHub identifier and URL utilities."""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
from urllib.parse import urlparse

# https://api.github.com/repos/{owner}/{repo}[/anything]
_REPOSITORY_URL_RE = re.compile(r"^https://api\.github\.com/repos/([^/]+)/([^/]+)(?:/.*)?$")

# Legacy node ids decode to "<len>:<Type><databaseId>", e.g. "04:User583231".
_LEGACY_NODE_ID_RE = re.compile(r"^\d+:[A-Za-z]+(\d+)$")
# Plain "<anything>:<databaseId>".
_PLAIN_NODE_ID_RE = re.compile(r"^[^:]*:(\d+)$")

_HASH_MASK = (1 << 63) - 1


def parse_repository_url(repository_url: str) -> tuple[str, str] | None:
    """Extract ``(owner, name)`` from an API repository URL.

    Only ``https://api.github.com/repos/{owner}/{name}`` (optionally followed
    by a sub-path) is accepted.  Anything else: including other hosts and
    bare strings: returns ``None``.
    """
    match = _REPOSITORY_URL_RE.match(repository_url or "")
    if match is None:
        return None
    return match.group(1), match.group(2)


def repository_api_url(owner: str, name: str) -> str:
    return f"https://api.github.com/repos/{owner}/{name}"


def decode_node_id(node_id: str) -> int:
    """Recover the numeric database id embedded in a GraphQL node id.

    Falls back to :func:`stable_id_hash` whenever the token is not base64,
    not text, or carries no positive integer, so two distinct undecodable
    tokens never share an id.
    """
    decoded = _b64_text(node_id)
    if decoded is not None:
        match = _LEGACY_NODE_ID_RE.match(decoded) or _PLAIN_NODE_ID_RE.match(decoded)
        if match is not None:
            value = int(match.group(1))
            if value > 0:
                return value
    return stable_id_hash(node_id)


def stable_id_hash(token: str) -> int:
    """Deterministic, process-independent, non-zero 63-bit hash of *token*."""
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    return (int.from_bytes(digest, "big") & _HASH_MASK) or 1


def parse_workflow_run_id(details_url: str | None) -> int | None:
    """Return the run id from ``.../actions/runs/{run_id}/job/{job_id}``."""
    if not details_url:
        return None
    parts = [p for p in urlparse(details_url).path.split("/") if p]
    try:
        idx = parts.index("runs")
    except ValueError:
        return None
    if idx + 1 < len(parts) and parts[idx + 1].isdigit():
        return int(parts[idx + 1])
    return None


def _b64_text(token: str) -> str | None:
    if not token:
        return None
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, ValueError):
        return None
