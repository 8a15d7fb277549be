"""Test remote signing, signature normalization and proof verification."""

from __future__ import annotations

import base58
import pytest
from nacl.signing import SigningKey

from listproof.sdk.custody import build_key_handle
from listproof.sdk.did import address_to_public_key
from listproof.sdk.errors import InvalidSignatureLengthError, KMSRequestError, NoWalletError, RemoteSignError
from listproof.sdk.hashing import proof_digest
from listproof.sdk.signer import (
    RemoteSigner,
    decode_proof_value,
    encode_proof_value,
    normalize_signature,
    sign_data,
    verify_proof,
)
from tests.helpers import ORG_ID, FakeKMS, sign_result, zero_prefixed_signing_key


@pytest.fixture
def kms() -> FakeKMS:
    return FakeKMS()


@pytest.fixture
def signer(kms: FakeKMS) -> RemoteSigner:
    return RemoteSigner(kms, build_key_handle(ORG_ID, kms.address))


@pytest.fixture
def document() -> dict:
    return {"type": ["VerifiableCredential", "ItemCreated"], "credentialSubject": {"itemId": "I1"}}


@pytest.fixture
def proof_options(signer: RemoteSigner) -> dict:
    return {
        "type": "DataIntegrityProof",
        "cryptosuite": "eddsa-jcs-2022",
        "created": "2026-01-01T00:00:00.000Z",
        "verificationMethod": signer.verification_method_id,
        "proofPurpose": "assertionMethod",
    }


def test_normalize_signature_64_bytes() -> None:
    """Test 32-byte r and s are used as-is."""
    signature = normalize_signature("aa" * 32, "bb" * 32)

    assert signature == bytes.fromhex("aa" * 32 + "bb" * 32)


def test_normalize_signature_drops_65th_byte() -> None:
    """Test a 65-byte concatenation keeps its first 64 bytes."""
    signature = normalize_signature("aa" * 32, "bb" * 32 + "1b")

    assert signature == bytes.fromhex("aa" * 32 + "bb" * 32)


def test_normalize_signature_63_bytes_fails() -> None:
    """Test short signatures fail rather than being padded."""
    with pytest.raises(InvalidSignatureLengthError) as exc_info:
        normalize_signature("aa" * 32, "bb" * 31)

    assert exc_info.value.length == 63


def test_normalize_signature_66_bytes_fails() -> None:
    """Test anything longer than 65 bytes fails."""
    with pytest.raises(InvalidSignatureLengthError):
        normalize_signature("aa" * 33, "bb" * 33)


def test_normalize_signature_strips_hex_prefix() -> None:
    """Test 0x prefixes on either half are tolerated."""
    assert normalize_signature("0x" + "aa" * 32, "0x" + "bb" * 32) == normalize_signature("aa" * 32, "bb" * 32)


def test_normalize_signature_invalid_hex() -> None:
    """Test non-hex parts raise RemoteSignError."""
    with pytest.raises(RemoteSignError):
        normalize_signature("zz" * 32, "bb" * 32)


def test_proof_value_encoding() -> None:
    """Test multibase base58-btc encoding of a 64-byte signature."""
    signature = bytes(range(64))
    proof_value = encode_proof_value(signature)

    assert proof_value.startswith("z")
    assert base58.b58decode(proof_value[1:]) == signature
    assert decode_proof_value(proof_value) == signature


def test_proof_value_keeps_leading_zero_bytes() -> None:
    """Test signatures starting with zero bytes keep all 64 bytes."""
    signature = b"\x00\x00" + bytes(range(62))
    proof_value = encode_proof_value(signature)

    assert proof_value.startswith("z11")
    assert decode_proof_value(proof_value) == signature


def test_decode_proof_value_rejects_non_strings() -> None:
    """Test non-string proof values raise ValueError."""
    with pytest.raises(ValueError):
        decode_proof_value(12345)  # type: ignore[arg-type]


def test_remote_signer_zero_leading_signature(signer: RemoteSigner, kms: FakeKMS) -> None:
    """Test a KMS signature whose r starts with 0x00 survives encoding."""
    kms.sign_response = sign_result("00" + "11" * 31, "22" * 32)

    proof_value = signer.sign(bytes(64))

    assert decode_proof_value(proof_value) == bytes.fromhex("00" + "11" * 31 + "22" * 32)


def test_verify_zero_leading_signature(signer: RemoteSigner, proof_options: dict) -> None:
    """Test a real signature starting with 0x00 verifies."""
    public_key = address_to_public_key(signer.key_handle.account_address)
    for n in range(5000):
        document = {"n": n}
        proof_value = signer.sign(proof_digest(document, proof_options))
        if decode_proof_value(proof_value)[0] == 0:
            break
    else:
        pytest.fail("no zero-leading signature found")

    assert verify_proof(document, {**proof_options, "proofValue": proof_value}, public_key) is True


def test_zero_prefixed_key_signs_and_verifies(document: dict, proof_options: dict) -> None:
    """Test an account whose public key starts with 0x00 resolves, signs and verifies."""
    kms = FakeKMS(signing_key=zero_prefixed_signing_key())
    signer = RemoteSigner(kms, build_key_handle(ORG_ID, kms.address))

    assert kms.address.startswith("1")
    proof = {**proof_options, "proofValue": signer.sign(proof_digest(document, proof_options))}
    assert verify_proof(document, proof, address_to_public_key(kms.address)) is True


def test_decode_proof_value_requires_base58btc() -> None:
    """Test non-base58btc proof values are rejected."""
    with pytest.raises(ValueError):
        decode_proof_value("mAAAA")


def test_remote_signer_request(signer: RemoteSigner, kms: FakeKMS) -> None:
    """Test the KMS receives the hex digest, the account address and no hashing."""
    digest = bytes(range(64))
    signer.sign(digest)

    calls = kms.calls_named("sign_raw_payload")
    assert len(calls) == 1
    assert calls[0] == {
        "organization_id": ORG_ID,
        "sign_with": kms.address,
        "payload": "0x" + digest.hex(),
        "encoding": "PAYLOAD_ENCODING_HEXADECIMAL",
        "hash_function": "HASH_FUNCTION_NO_OP",
    }


def test_remote_signer_signature_verifies(signer: RemoteSigner, kms: FakeKMS, document: dict, proof_options: dict) -> None:
    """Test a remotely produced proof value verifies against the account key."""
    proof_value = signer.sign(proof_digest(document, proof_options))
    proof = {**proof_options, "proofValue": proof_value}

    assert len(decode_proof_value(proof_value)) == 64
    assert verify_proof(document, proof, address_to_public_key(signer.key_handle.account_address)) is True
    assert address_to_public_key(signer.key_handle.account_address) == bytes(kms.signing_key.verify_key)


def test_remote_signer_65_byte_response(signer: RemoteSigner, kms: FakeKMS) -> None:
    """Test a trailing recovery byte from the KMS is dropped."""
    kms.sign_response = sign_result("11" * 32, "22" * 32 + "01")

    proof_value = signer.sign(bytes(64))

    assert decode_proof_value(proof_value) == bytes.fromhex("11" * 32 + "22" * 32)


def test_remote_signer_short_response(signer: RemoteSigner, kms: FakeKMS) -> None:
    """Test a 63-byte response raises InvalidSignatureLengthError."""
    kms.sign_response = sign_result("aa" * 32, "bb" * 31)

    with pytest.raises(InvalidSignatureLengthError):
        signer.sign(bytes(64))


@pytest.mark.parametrize("response", [
    {},
    {"activity": {}},
    {"activity": {"result": {"signRawPayloadResult": {"r": "aa" * 32}}}},
    {"activity": {"result": {"signRawPayloadResult": {"r": "", "s": "bb" * 32}}}},
    {"activity": {"result": {"signRawPayloadResult": {"r": 123, "s": "bb" * 32}}}},
])
def test_remote_signer_missing_parts(signer: RemoteSigner, kms: FakeKMS, response: dict) -> None:
    """Test responses without r and s raise RemoteSignError."""
    kms.sign_response = response

    with pytest.raises(RemoteSignError, match="No signature"):
        signer.sign(bytes(64))


def test_remote_signer_kms_failure(signer: RemoteSigner, kms: FakeKMS) -> None:
    """Test KMS transport failures surface as RemoteSignError."""
    kms.sign_error = KMSRequestError("timed out")

    with pytest.raises(RemoteSignError, match="timed out"):
        signer.sign(bytes(64))


def test_remote_signer_rejects_non_digest(signer: RemoteSigner) -> None:
    """Test only 64-byte digests are sent for signing."""
    with pytest.raises(ValueError):
        signer.sign(b"short")


def test_verify_proof_detects_tampering(signer: RemoteSigner, document: dict, proof_options: dict) -> None:
    """Test verification fails when the document changes after signing."""
    proof = {**proof_options, "proofValue": signer.sign(proof_digest(document, proof_options))}
    tampered = {**document, "credentialSubject": {"itemId": "I2"}}

    assert verify_proof(tampered, proof, address_to_public_key(signer.key_handle.account_address)) is False


def test_verify_proof_wrong_key(signer: RemoteSigner, document: dict, proof_options: dict) -> None:
    """Test verification fails with another public key."""
    proof = {**proof_options, "proofValue": signer.sign(proof_digest(document, proof_options))}
    other_key = bytes(SigningKey(b"o" * 32).verify_key)

    assert verify_proof(document, proof, other_key) is False


def test_verify_proof_key_lengths(signer: RemoteSigner, document: dict, proof_options: dict) -> None:
    """Test 33-byte prefixed keys are accepted and other lengths rejected."""
    proof = {**proof_options, "proofValue": signer.sign(proof_digest(document, proof_options))}
    public_key = address_to_public_key(signer.key_handle.account_address)

    assert verify_proof(document, proof, b"\xed" + public_key) is True
    assert verify_proof(document, proof, public_key[:31]) is False


def test_verify_proof_missing_value(document: dict, proof_options: dict, signer: RemoteSigner) -> None:
    """Test a proof without proofValue does not verify."""
    assert verify_proof(document, proof_options, address_to_public_key(signer.key_handle.account_address)) is False


def test_proof_digest_matches_signed_message(signer: RemoteSigner, kms: FakeKMS, document: dict, proof_options: dict) -> None:
    """Test the payload sent to the KMS is exactly the proof digest."""
    signer.sign(proof_digest(document, proof_options))

    payload = kms.calls_named("sign_raw_payload")[0]["payload"]
    assert payload == "0x" + proof_digest(document, proof_options).hex()


def test_sign_data(kms: FakeKMS) -> None:
    """Test raw data signing returns a verifiable hex signature and the address."""
    result = sign_data(kms, ORG_ID, "hello")

    assert result.public_key == kms.address
    assert len(bytes.fromhex(result.signature)) == 64
    kms.signing_key.verify_key.verify(b"hello", bytes.fromhex(result.signature))
    assert kms.calls_named("sign_raw_payload")[0]["payload"] == b"hello".hex()


def test_sign_data_errors(kms: FakeKMS) -> None:
    """Test empty data and resolution failures raise."""
    with pytest.raises(ValueError):
        sign_data(kms, ORG_ID, "")

    kms.wallets = []
    with pytest.raises(NoWalletError):
        sign_data(kms, ORG_ID, "hello")


def test_remote_signer_requires_arguments(kms: FakeKMS) -> None:
    """Test construction without a key handle fails."""
    with pytest.raises(ValueError):
        RemoteSigner(kms, None)  # type: ignore[arg-type]
