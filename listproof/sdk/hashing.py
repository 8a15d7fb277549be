"""Canonical JSON serialization and Data Integrity proof digests.

Canonical form is RFC 8785 (JCS): keys sorted by UTF-16 code units at every
depth, array order kept, no whitespace, ECMAScript number formatting.
The digest signed for a proof is::

    SHA256(canonical(proof_options without proofValue)) || SHA256(canonical(document))
"""

from __future__ import annotations

import hashlib
import math
from typing import Any, Mapping

import jcs

from listproof.sdk.errors import CanonicalizationError

DIGEST_SIZE = 64


def canonicalize(value: Any) -> str:
    """Serialize a JSON value to its canonical string form.

    Args:
        value: dict, list, str, int, float, bool or None, nested freely

    Returns:
        Canonical JSON text

    Raises:
        CanonicalizationError: value contains a cycle or a non-JSON type
    """
    _check_json_value(value, set())
    try:
        return jcs.canonicalize(value).decode("utf-8")
    except (TypeError, ValueError) as e:
        raise CanonicalizationError(f"Value is not canonicalizable: {e}") from e


def canonical_bytes(value: Any) -> bytes:
    """UTF-8 bytes of the canonical form, ready for hashing."""
    return canonicalize(value).encode("utf-8")


def canonical_json_hash(value: Any) -> bytes:
    """SHA256 over the canonical form."""
    return hashlib.sha256(canonical_bytes(value)).digest()


def proof_digest(document: Mapping[str, Any], proof_options: Mapping[str, Any]) -> bytes:
    """Compute the 64-byte digest to sign for a document and its proof options.

    Any ``proofValue`` in ``proof_options`` is ignored: the value being
    produced never feeds its own input. The proof-options hash comes first.
    """
    if document is None or proof_options is None:
        raise ValueError("Document and proof options are required")

    options = {k: v for k, v in proof_options.items() if k != "proofValue"}
    return canonical_json_hash(options) + canonical_json_hash(document)


def digest_to_payload(digest: bytes) -> str:
    """Hex-encode a digest for the KMS raw-payload endpoint."""
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"Digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
    return "0x" + digest.hex()


def _check_json_value(value: Any, seen: set[int]) -> None:
    if value is None or isinstance(value, (str, bool, int)):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationError(f"Non-finite number is not JSON: {value!r}")
        return
    if isinstance(value, (dict, list, tuple)):
        _check_container(value, seen)
        return
    raise CanonicalizationError(f"Type {type(value).__name__} is not JSON-representable")


def _check_container(value: dict | list | tuple, seen: set[int]) -> None:
    if id(value) in seen:
        raise CanonicalizationError("Circular reference detected")
    seen.add(id(value))
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise CanonicalizationError(f"Object keys must be strings, got {type(key).__name__}")
            _check_json_value(item, seen)
    else:
        for item in value:
            _check_json_value(item, seen)
    seen.discard(id(value))
