"""Remote Ed25519 signing through the custodial KMS.

The KMS signs the 64-byte proof digest as-is (no hashing on its side) and
answers with hex ``r`` and ``s`` halves. ``r || s`` is normalized to a 64-byte
Ed25519 signature and published as a multibase base58-btc proof value.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

import base58
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from listproof.sdk.custody import resolve_signing_key
from listproof.sdk.did import MB_PREFIX
from listproof.sdk.errors import InvalidSignatureLengthError, KMSRequestError, RemoteSignError
from listproof.sdk.hashing import digest_to_payload, proof_digest
from listproof.sdk.kms import HASH_FUNCTION_NO_OP, PAYLOAD_ENCODING_HEX, KMSClient
from listproof.sdk.models import DataSignature, SigningKeyHandle
logger = logging.getLogger(__name__)

SIGNATURE_SIZE = 64


class Signer(Protocol):
    """Signing capability injected into credential and DID issuance."""

    verification_method_id: str

    def sign(self, data: bytes) -> str:
        """Sign a proof digest and return its multibase proof value."""
        ...


class RemoteSigner:
    """Signer backed by one KMS-held key. Reads and stores no key material."""

    def __init__(self, kms: KMSClient, key_handle: SigningKeyHandle):
        if kms is None or key_handle is None:
            raise ValueError("KMS client and key handle are required")

        self.kms = kms
        self.key_handle = key_handle
        self.verification_method_id = key_handle.verification_method_id

    def sign(self, data: bytes) -> str:
        """Sign a 64-byte proof digest with exactly one KMS round trip."""
        payload = digest_to_payload(data)
        result = self._sign_raw(payload)
        return encode_proof_value(normalize_signature(*_signature_parts(result)))

    def _sign_raw(self, payload: str) -> dict[str, Any]:
        try:
            return self.kms.sign_raw_payload(
                organization_id=self.key_handle.custody_org_id,
                sign_with=self.key_handle.account_address,
                payload=payload,
                encoding=PAYLOAD_ENCODING_HEX,
                hash_function=HASH_FUNCTION_NO_OP,
            )
        except KMSRequestError as e:
            logger.error("Signing with %s failed: %s", self.key_handle.account_address, e)
            raise RemoteSignError(f"Failed to sign with KMS: {e}") from e


def normalize_signature(r: str, s: str) -> bytes:
    """Join hex ``r`` and ``s`` into a 64-byte Ed25519 signature.

    A 65-byte concatenation loses its trailing byte (a recovery/parity byte
    some KMS responses append). The dropped byte is not inspected.
    """
    try:
        signature = bytes.fromhex(_strip_hex_prefix(r) + _strip_hex_prefix(s))
    except ValueError as e:
        raise RemoteSignError(f"Signature parts are not valid hex: {e}") from e

    if len(signature) == SIGNATURE_SIZE + 1:
        # TODO: confirm with the KMS vendor what the 65th byte encodes before relying on it
        return signature[:SIGNATURE_SIZE]
    if len(signature) != SIGNATURE_SIZE:
        raise InvalidSignatureLengthError(len(signature))
    return signature


def encode_proof_value(signature: bytes) -> str:
    """Multibase base58-btc (``z`` prefix) encoding of a signature."""
    return MB_PREFIX + base58.b58encode(signature).decode("utf-8")


def decode_proof_value(proof_value: str) -> bytes:
    if not isinstance(proof_value, str) or not proof_value.startswith(MB_PREFIX):
        raise ValueError(f"Proof value must be multibase base58-btc: {proof_value!r}")
    return base58.b58decode(proof_value[len(MB_PREFIX):])


def verify_proof(document: Mapping[str, Any], proof: Mapping[str, Any], public_key: bytes) -> bool:
    """Check a proof value against the digest of ``document`` and ``proof``."""
    if len(public_key) == 33:
        public_key = public_key[1:]
    elif len(public_key) != 32:
        return False

    try:
        signature = decode_proof_value(proof.get("proofValue", ""))
        VerifyKey(public_key).verify(proof_digest(document, proof), signature)
        return True
    except (BadSignatureError, ValueError):
        return False


def sign_data(kms: KMSClient, custody_org_id: str, data: str) -> DataSignature:
    """Sign arbitrary UTF-8 data with the organization's Ed25519 key."""
    if not data:
        raise ValueError("Data to sign is required")

    key_handle = resolve_signing_key(kms, custody_org_id)
    try:
        result = kms.sign_raw_payload(
            organization_id=custody_org_id,
            sign_with=key_handle.account_address,
            payload=data.encode("utf-8").hex(),
        )
    except KMSRequestError as e:
        raise RemoteSignError(f"Failed to sign data with KMS: {e}") from e

    signature = normalize_signature(*_signature_parts(result))
    return DataSignature(signature=signature.hex(), public_key=key_handle.account_address)


def _signature_parts(result: Mapping[str, Any]) -> tuple[str, str]:
    raw = ((result.get("activity") or {}).get("result") or {}).get("signRawPayloadResult") or {}
    r, s = raw.get("r"), raw.get("s")
    if not r or not s or not isinstance(r, str) or not isinstance(s, str):
        raise RemoteSignError("No signature returned from KMS")
    return r, s


def _strip_hex_prefix(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value
