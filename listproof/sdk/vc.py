"""Data Integrity verifiable credentials for list and item events.

Issuance builds the unsigned envelope, digests it together with the proof
options and signs the digest through an injected signer. Each call yields a
new credential (fresh ``id`` and timestamps); credentials are append-only
facts and are never mutated after signing.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping

from listproof.sdk.custody import resolve_signing_key
from listproof.sdk.did import address_to_public_key, multikey_to_public_key
from listproof.sdk.errors import ListproofError
from listproof.sdk.hashing import proof_digest
from listproof.sdk.kms import KMSClient
from listproof.sdk.models import (
    DEFAULT_APP_CONTEXT,
    SUBJECT_TYPES,
    VC_CONTEXT_V1,
    CredentialSubject,
    DataIntegrityProof,
    VerifiableCredential,
    utc_now,
)
from listproof.sdk.signer import RemoteSigner, Signer, verify_proof

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuanceResult:
    """Outcome of a best-effort issuance: a credential or the error that stopped it."""

    credential: VerifiableCredential | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.credential is not None


def build_credential(
    subject: CredentialSubject,
    issuer_did: str,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> VerifiableCredential:
    """Build the unsigned credential envelope for a subject."""
    if not issuer_did:
        raise ValueError("Issuer DID is required")
    if type(subject) not in SUBJECT_TYPES.values():
        raise TypeError(f"Unsupported credential subject: {type(subject).__name__}")

    return VerifiableCredential(
        context=[VC_CONTEXT_V1, app_context],
        type=["VerifiableCredential", subject.credential_kind.value],
        id=f"urn:uuid:{uuid.uuid4()}",
        issuer=issuer_did,
        issuance_date=utc_now(),
        credential_subject=subject.to_claims(),
    )


def issue_credential(
    subject: CredentialSubject,
    issuer_did: str,
    signer: Signer,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> VerifiableCredential:
    """Issue a signed credential. Errors from signing propagate to the caller."""
    unsigned = build_credential(subject, issuer_did, app_context)
    proof = DataIntegrityProof(verification_method=signer.verification_method_id)

    digest = proof_digest(unsigned.unsigned_document(), proof.options())
    signed_proof = proof.model_copy(update={"proof_value": signer.sign(digest)})
    return unsigned.model_copy(update={"proof": signed_proof})


def issue_with_custodial_key(
    kms: KMSClient,
    custody_org_id: str,
    subject: CredentialSubject,
    issuer_did: str,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> VerifiableCredential:
    """Resolve the organization's key, then issue with a remote signer."""
    logger.info("Issuing %s credential (issuer %s)", subject.credential_kind.value, issuer_did)
    key_handle = resolve_signing_key(kms, custody_org_id)
    credential = issue_credential(subject, issuer_did, RemoteSigner(kms, key_handle), app_context)
    logger.info("Signed %s credential %s", subject.credential_kind.value, credential.id)
    return credential


def try_issue_credential(
    kms: KMSClient,
    custody_org_id: str,
    subject: CredentialSubject,
    issuer_did: str,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> IssuanceResult:
    """Best-effort issuance. Core failures are logged and returned, never raised.

    Covers KMS transport, key resolution, malformed KMS responses, signing
    and invalid inputs such as an empty organization id.
    """
    try:
        credential = issue_with_custodial_key(kms, custody_org_id, subject, issuer_did, app_context)
    except (ListproofError, ValueError) as e:
        logger.warning(
            "Could not issue %s credential for %s: %s",
            subject.credential_kind.value,
            _subject_ref(subject),
            e,
        )
        return IssuanceResult(error=e)
    return IssuanceResult(credential=credential)


def verify_credential(credential: VerifiableCredential | Mapping[str, Any]) -> bool:
    """Verify a signed credential against the key named by its verification method."""
    data = credential.to_wire() if isinstance(credential, VerifiableCredential) else dict(credential)
    proof = data.get("proof")
    if not isinstance(proof, Mapping) or not proof.get("proofValue"):
        return False

    verification_method = proof.get("verificationMethod")
    if not isinstance(verification_method, str):
        return False

    try:
        public_key = public_key_from_verification_method(verification_method)
    except ValueError:
        return False
    document = {k: v for k, v in data.items() if k != "proof"}
    return verify_proof(document, proof, public_key)


def public_key_from_verification_method(verification_method: str) -> bytes:
    """Public key of a ``did:key`` method, Multikey (``z6Mk``) or base58 address form."""
    if not isinstance(verification_method, str) or not verification_method.startswith("did:key:"):
        raise ValueError(f"Unsupported verification method: {verification_method}")

    key = verification_method[len("did:key:"):].split("#")[0]
    if key.startswith("z6Mk") and len(key) == 48:
        return multikey_to_public_key(key)
    return address_to_public_key(key)


def _subject_ref(subject: CredentialSubject) -> str:
    item_id = getattr(subject, "item_id", None)
    return f"item {item_id}" if item_id else f"list {subject.list_id}"
