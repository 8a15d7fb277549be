"""did:webvh identity creation for KMS-held Ed25519 keys.

Each identity carries two Multikey verification methods over the same
public key: ``#key-0`` for authentication and ``#key-1`` for assertions.
The document is self-certified through an injected signer by a pluggable
DID-method implementation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import base58

from listproof.sdk.models import DIDCreationResult, SigningKeyHandle
from listproof.sdk.webvh import WebVHGenesisMethod

if TYPE_CHECKING:
    from listproof.sdk.signer import Signer

logger = logging.getLogger(__name__)

MB_PREFIX = "z"  # multibase base58btc prefix
ED25519_MULTICODEC = b"\xed\x01"
AUTHENTICATION_FRAGMENT = "#key-0"
ASSERTION_FRAGMENT = "#key-1"


class DIDMethod(Protocol):
    """DID method that builds and self-certifies a new identity."""

    def create(
        self,
        *,
        domain: str,
        paths: list[str],
        signer: Signer,
        update_keys: list[str],
        verification_methods: list[dict[str, Any]],
        authentication: list[str],
        assertion_method: list[str],
        portable: bool,
    ) -> DIDCreationResult:
        ...


def address_to_public_key(address: str) -> bytes:
    """Decode a base58 account address to raw Ed25519 public key bytes."""
    if not isinstance(address, str) or not address:
        raise ValueError("Account address is required")

    public_key = base58.b58decode(address)
    if len(public_key) != 32:
        raise ValueError(f"Address does not encode a 32-byte Ed25519 key: {address}")
    return public_key


def public_key_multibase(address: str) -> str:
    """Multikey encoding (``z6Mk...``) of the key behind an account address."""
    multicodec_key = _build_multicodec_key(address_to_public_key(address))
    return MB_PREFIX + base58.b58encode(multicodec_key).decode("utf-8")


def multikey_to_public_key(multikey: str) -> bytes:
    """Parse a Multikey string back to raw public key bytes."""
    if not isinstance(multikey, str) or not multikey.startswith(MB_PREFIX):
        raise ValueError(f"Multikey must be multibase base58-btc: {multikey!r}")
    return _extract_public_key_from_multicodec(base58.b58decode(multikey[len(MB_PREFIX):]))


def build_verification_methods(key_handle: SigningKeyHandle) -> list[dict[str, Any]]:
    """Authentication and assertion methods over the one resolved key."""
    multikey = public_key_multibase(key_handle.account_address)
    return [
        {"id": fragment, "type": "Multikey", "controller": "", "publicKeyMultibase": multikey}
        for fragment in (AUTHENTICATION_FRAGMENT, ASSERTION_FRAGMENT)
    ]


def create_did(
    key_handle: SigningKeyHandle,
    signer: Signer,
    domain: str,
    path_slug: str,
    method: DIDMethod | None = None,
) -> DIDCreationResult:
    """Create a ``did:webvh`` identity self-certified by ``signer``.

    Re-running creation for an existing slug is left to the DID method.
    """
    if not domain or not path_slug:
        raise ValueError("Domain and path slug are required")

    method = method or WebVHGenesisMethod()
    result = method.create(
        domain=domain,
        paths=[path_slug],
        signer=signer,
        update_keys=[key_handle.verification_method_id],
        verification_methods=build_verification_methods(key_handle),
        authentication=[AUTHENTICATION_FRAGMENT],
        assertion_method=[ASSERTION_FRAGMENT],
        portable=False,
    )
    logger.info("Created %s", result.did)
    return result


def user_path_slug(custody_org_id: str) -> str:
    """Path for a user identity; derived from the organization id, never PII."""
    return f"user-{custody_org_id[:16]}"


def domain_from_did(did: str) -> str:
    """Extract the domain of a ``did:webvh:<scid>:<domain>:<path>`` identifier."""
    parts = did.split(":") if isinstance(did, str) else []
    if len(parts) < 4 or parts[0] != "did" or parts[1] != "webvh":
        raise ValueError(f"Cannot extract domain from DID: {did}")
    return parts[3].replace("%3A", ":")


def _build_multicodec_key(public_key_bytes: bytes) -> bytes:
    """Build multicodec key with Ed25519 prefix."""
    return ED25519_MULTICODEC + public_key_bytes


def _extract_public_key_from_multicodec(multicodec_bytes: bytes) -> bytes:
    """Extract public key bytes from multicodec format."""
    if len(multicodec_bytes) != 34 or multicodec_bytes[:2] != ED25519_MULTICODEC:
        raise ValueError("Invalid Ed25519 multicodec format")
    return multicodec_bytes[2:]
