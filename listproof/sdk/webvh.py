"""did:webvh genesis log entry.

Builds version 1 of a did:webvh log: the SCID is derived from the entry
itself with ``{SCID}`` placeholders, the version id from the entry hash, and
the entry is self-certified with an ``eddsa-jcs-2022`` Data Integrity proof
produced by the injected signer. Later versions and log verification are
handled elsewhere.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import base58

from listproof.sdk.hashing import canonical_bytes, proof_digest
from listproof.sdk.models import DataIntegrityProof, DIDCreationResult

if TYPE_CHECKING:
    from listproof.sdk.signer import Signer

METHOD_VERSION = "did:webvh:1.0"
SCID_PLACEHOLDER = "{SCID}"
SHA256_MULTIHASH = b"\x12\x20"
DID_CONTEXTS = ["https://www.w3.org/ns/did/v1", "https://w3id.org/security/multikey/v1"]


class WebVHGenesisMethod:
    """Creates the first entry of a did:webvh log."""

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
        if not update_keys:
            raise ValueError("At least one update key is required")

        did = build_did(SCID_PLACEHOLDER, domain, paths)
        version_time = _version_time()
        entry = {
            "versionId": SCID_PLACEHOLDER,
            "versionTime": version_time,
            "parameters": {
                "method": METHOD_VERSION,
                "scid": SCID_PLACEHOLDER,
                "updateKeys": list(update_keys),
                "portable": portable,
            },
            "state": build_document(did, verification_methods, authentication, assertion_method),
        }

        scid = entry_hash(entry)
        entry = _replace_placeholder(entry, scid)
        entry["versionId"] = f"1-{entry_hash(entry)}"
        entry["proof"] = [_sign_entry(entry, signer, version_time)]

        state = entry["state"]
        return DIDCreationResult(did=state["id"], did_document=state, did_log=[entry])


def build_did(scid: str, domain: str, paths: list[str]) -> str:
    """``did:webvh:<scid>:<domain>[:<path>...]``, with a port colon escaped."""
    segments = [scid, domain.replace(":", "%3A"), *paths]
    return "did:webvh:" + ":".join(segments)


def build_document(
    did: str,
    verification_methods: list[dict[str, Any]],
    authentication: list[str],
    assertion_method: list[str],
) -> dict[str, Any]:
    """W3C DID document with relative references resolved against ``did``."""
    methods = [
        {**vm, "id": _absolute(did, vm["id"]), "controller": vm.get("controller") or did}
        for vm in verification_methods
    ]
    return {
        "@context": list(DID_CONTEXTS),
        "id": did,
        "verificationMethod": methods,
        "authentication": [_absolute(did, ref) for ref in authentication],
        "assertionMethod": [_absolute(did, ref) for ref in assertion_method],
    }


def entry_hash(entry: dict[str, Any]) -> str:
    """base58-btc multihash (SHA-256) of the canonical entry, no multibase prefix."""
    digest = hashlib.sha256(canonical_bytes(entry)).digest()
    return base58.b58encode(SHA256_MULTIHASH + digest).decode("utf-8")


def _sign_entry(entry: dict[str, Any], signer: Signer, created: str) -> dict[str, Any]:
    proof = DataIntegrityProof(verification_method=signer.verification_method_id, created=created)
    options = proof.options()
    return {**options, "proofValue": signer.sign(proof_digest(entry, options))}


def _replace_placeholder(entry: dict[str, Any], scid: str) -> dict[str, Any]:
    return json.loads(json.dumps(entry).replace(SCID_PLACEHOLDER, scid))


def _absolute(did: str, ref: str) -> str:
    return did + ref if ref.startswith("#") else ref


def _version_time() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
