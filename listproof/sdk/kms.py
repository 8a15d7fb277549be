"""Custodial KMS client.

The KMS holds every private key; this process only asks it to list wallets
and accounts and to sign raw payloads. Requests to the HTTP API are
authenticated with an API-key stamp: an ECDSA P-256 signature over the exact
request body, carried in the ``X-Stamp`` header.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any, Protocol

import httpx
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from listproof.sdk.errors import KMSRequestError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.turnkey.com"
STAMP_HEADER = "X-Stamp"
STAMP_SCHEME = "SIGNATURE_SCHEME_TK_API_P256"

PAYLOAD_ENCODING_HEX = "PAYLOAD_ENCODING_HEXADECIMAL"
HASH_FUNCTION_NO_OP = "HASH_FUNCTION_NO_OP"
SIGN_RAW_PAYLOAD_ACTIVITY = "ACTIVITY_TYPE_SIGN_RAW_PAYLOAD_V2"


class KMSClient(Protocol):
    """Narrow surface of the custodial KMS used by the signing core."""

    def get_wallets(self, organization_id: str) -> dict[str, Any]:
        ...

    def get_wallet_accounts(self, organization_id: str, wallet_id: str) -> dict[str, Any]:
        ...

    def sign_raw_payload(
        self,
        organization_id: str,
        sign_with: str,
        payload: str,
        encoding: str = PAYLOAD_ENCODING_HEX,
        hash_function: str = HASH_FUNCTION_NO_OP,
    ) -> dict[str, Any]:
        ...


class ApiKeyStamper:
    """Stamps request bodies with a P-256 API key."""

    def __init__(self, api_public_key: str, api_private_key: str):
        if not api_public_key or not api_private_key:
            raise ValueError("API public and private keys are required")

        self.api_public_key = api_public_key
        self._private_key = ec.derive_private_key(int(api_private_key, 16), ec.SECP256R1())

    def stamp(self, body: str) -> str:
        """Return the ``X-Stamp`` header value for ``body``."""
        signature = self._private_key.sign(body.encode("utf-8"), ec.ECDSA(hashes.SHA256()))
        stamp = {
            "publicKey": self.api_public_key,
            "scheme": STAMP_SCHEME,
            "signature": signature.hex(),
        }
        encoded = base64.urlsafe_b64encode(json.dumps(stamp).encode("utf-8"))
        return encoded.rstrip(b"=").decode("ascii")


class HttpKMSClient:
    """KMS client over the HTTP API. Never retries; timeouts raise KMSRequestError."""

    def __init__(
        self,
        stamper: ApiKeyStamper,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
    ):
        self.stamper = stamper
        self.base_url = base_url.rstrip("/")
        self.http = httpx.Client(base_url=self.base_url, timeout=timeout)

    def get_wallets(self, organization_id: str) -> dict[str, Any]:
        return self._post("/public/v1/query/list_wallets", {"organizationId": organization_id})

    def get_wallet_accounts(self, organization_id: str, wallet_id: str) -> dict[str, Any]:
        body = {"organizationId": organization_id, "walletId": wallet_id}
        return self._post("/public/v1/query/list_wallet_accounts", body)

    def sign_raw_payload(
        self,
        organization_id: str,
        sign_with: str,
        payload: str,
        encoding: str = PAYLOAD_ENCODING_HEX,
        hash_function: str = HASH_FUNCTION_NO_OP,
    ) -> dict[str, Any]:
        body = {
            "type": SIGN_RAW_PAYLOAD_ACTIVITY,
            "timestampMs": str(int(time.time() * 1000)),
            "organizationId": organization_id,
            "parameters": {
                "signWith": sign_with,
                "payload": payload,
                "encoding": encoding,
                "hashFunction": hash_function,
            },
        }
        return self._post("/public/v1/submit/sign_raw_payload", body)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> HttpKMSClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        content = json.dumps(body)
        headers = {"Content-Type": "application/json", STAMP_HEADER: self.stamper.stamp(content)}
        try:
            response = self.http.post(path, content=content, headers=headers)
        except httpx.HTTPError as e:
            logger.error("KMS request %s failed: %s", path, e)
            raise KMSRequestError(f"KMS request {path} failed: {e}") from e

        if response.is_error:
            raise KMSRequestError(
                f"KMS request {path} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        return _decode_json(path, response)


def _decode_json(path: str, response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise KMSRequestError(f"KMS request {path} returned invalid JSON", response.status_code) from e
    if not isinstance(data, dict):
        raise KMSRequestError(f"KMS request {path} returned non-object JSON", response.status_code)
    return data
