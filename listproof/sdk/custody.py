"""Signing key resolution from the custodial KMS.

Resolves the first Ed25519 account of the first wallet of an organization.
When several Ed25519 accounts exist the first one wins; no disambiguation is
attempted. Transport errors from the KMS propagate unchanged; malformed
wallet or account payloads surface as ``KeyResolutionError``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from listproof.sdk.errors import KeyResolutionError, NoAccountError, NoEd25519AccountError, NoWalletError
from listproof.sdk.kms import KMSClient
from listproof.sdk.models import KeyCurve, SigningKeyHandle

logger = logging.getLogger(__name__)


def resolve_signing_key(kms: KMSClient, custody_org_id: str) -> SigningKeyHandle:
    """Resolve the Ed25519 signing key handle for a custodial organization."""
    if not isinstance(custody_org_id, str) or not custody_org_id:
        raise ValueError("Custody organization ID is required")

    wallet_id = _first_wallet_id(kms, custody_org_id)
    accounts = kms.get_wallet_accounts(custody_org_id, wallet_id).get("accounts") or []
    if not isinstance(accounts, list) or not accounts:
        raise NoAccountError(custody_org_id, wallet_id)

    address = _first_ed25519_address(accounts)
    if address is None:
        raise NoEd25519AccountError(custody_org_id, wallet_id)

    logger.debug("Resolved Ed25519 account %s for organization %s", address, custody_org_id)
    return build_key_handle(custody_org_id, address)


def build_key_handle(custody_org_id: str, address: str) -> SigningKeyHandle:
    """Key handle whose verification method is ``did:key:<address>``."""
    return SigningKeyHandle(
        custody_org_id=custody_org_id,
        account_address=address,
        curve=KeyCurve.ED25519,
        verification_method_id=f"did:key:{address}",
    )


def _first_wallet_id(kms: KMSClient, custody_org_id: str) -> str:
    wallets = kms.get_wallets(custody_org_id).get("wallets") or []
    if not isinstance(wallets, list) or not wallets:
        raise NoWalletError(custody_org_id)

    wallet = wallets[0]
    wallet_id = wallet.get("walletId") if isinstance(wallet, Mapping) else None
    if not isinstance(wallet_id, str) or not wallet_id:
        raise KeyResolutionError(custody_org_id, f"Malformed wallet entry for organization {custody_org_id}")
    return wallet_id


def _first_ed25519_address(accounts: list[Any]) -> str | None:
    for account in accounts:
        if not isinstance(account, Mapping) or account.get("curve") != KeyCurve.ED25519.value:
            continue
        address = account.get("address")
        if isinstance(address, str) and address:
            return address
        logger.warning("Skipping Ed25519 account without an address")
    return None
