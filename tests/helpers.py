"""Test helper functions and in-memory collaborators.

Provides a fake custodial KMS that signs with a real Ed25519 key, so issued
proofs verify end to end, and an in-memory item store for action flows.
"""

from __future__ import annotations

from typing import Any

import base58
from nacl.signing import SigningKey

from listproof.sdk.actions import StoredItem
from listproof.sdk.models import CredentialRecord

ORG_ID = "O1"
WALLET_ID = "wallet-1"


def address_for(signing_key: SigningKey) -> str:
    """Base58 account address (raw public key) for a signing key."""
    return base58.b58encode(bytes(signing_key.verify_key)).decode("utf-8")


def zero_prefixed_signing_key() -> SigningKey:
    """First seeded key whose public key starts with a 0x00 byte."""
    for n in range(10_000):
        signing_key = SigningKey(n.to_bytes(32, "big"))
        if bytes(signing_key.verify_key)[0] == 0:
            return signing_key
    raise AssertionError("no zero-prefixed key found")


def sign_result(r: str, s: str) -> dict[str, Any]:
    """Wrap r/s halves in the KMS raw-payload response shape."""
    return {"activity": {"status": "ACTIVITY_STATUS_COMPLETED", "result": {"signRawPayloadResult": {"r": r, "s": s, "v": "00"}}}}


class FakeKMS:
    """In-memory KMS with one wallet holding one Ed25519 account."""

    def __init__(self, signing_key: SigningKey | None = None, seed: bytes = b"k" * 32):
        self.signing_key = signing_key or SigningKey(seed)
        self.address = address_for(self.signing_key)
        self.wallets: list[dict[str, Any]] = [{"walletId": WALLET_ID, "walletName": "Default"}]
        self.accounts: list[dict[str, Any]] = [
            {"address": self.address, "curve": "CURVE_ED25519", "path": "m/44'/501'/0'/0'", "addressFormat": "ADDRESS_FORMAT_SOLANA"}
        ]
        self.sign_error: Exception | None = None
        self.sign_response: dict[str, Any] | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get_wallets(self, organization_id: str) -> dict[str, Any]:
        self.calls.append(("get_wallets", {"organization_id": organization_id}))
        return {"wallets": self.wallets}

    def get_wallet_accounts(self, organization_id: str, wallet_id: str) -> dict[str, Any]:
        self.calls.append(("get_wallet_accounts", {"organization_id": organization_id, "wallet_id": wallet_id}))
        return {"accounts": self.accounts}

    def sign_raw_payload(
        self,
        organization_id: str,
        sign_with: str,
        payload: str,
        encoding: str = "PAYLOAD_ENCODING_HEXADECIMAL",
        hash_function: str = "HASH_FUNCTION_NO_OP",
    ) -> dict[str, Any]:
        self.calls.append(("sign_raw_payload", {
            "organization_id": organization_id,
            "sign_with": sign_with,
            "payload": payload,
            "encoding": encoding,
            "hash_function": hash_function,
        }))
        if self.sign_error is not None:
            raise self.sign_error
        if self.sign_response is not None:
            return self.sign_response

        message = bytes.fromhex(payload[2:] if payload.startswith("0x") else payload)
        signature = self.signing_key.sign(message).signature
        return sign_result(signature[:32].hex(), signature[32:].hex())

    def calls_named(self, name: str) -> list[dict[str, Any]]:
        return [params for call, params in self.calls if call == name]

    def __enter__(self) -> FakeKMS:
        return self

    def __exit__(self, *exc_info: object) -> None:
        pass


class InMemoryItemStore:
    """Item store keeping items and their credential records in dicts."""

    def __init__(self) -> None:
        self.items: dict[str, StoredItem] = {}
        self.credentials: dict[str, list[CredentialRecord]] = {}

    def add_item(self, list_id: str, name: str, created_by_did: str, created_at: int) -> str:
        item_id = f"item-{len(self.items) + 1}"
        self.items[item_id] = StoredItem(item_id=item_id, list_id=list_id, name=name)
        return item_id

    def get_item(self, item_id: str) -> StoredItem | None:
        return self.items.get(item_id)

    def check_item(self, item_id: str, checked_by_did: str, checked_at: int) -> None:
        self.items[item_id] = self.items[item_id].model_copy(update={"checked": True})

    def uncheck_item(self, item_id: str, unchecked_by_did: str, unchecked_at: int) -> None:
        self.items[item_id] = self.items[item_id].model_copy(update={"checked": False})

    def add_credential(self, item_id: str, record: CredentialRecord) -> None:
        self.credentials.setdefault(item_id, []).append(record)
