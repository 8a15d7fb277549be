"""Error taxonomy for key resolution, signing and credential issuance."""

from __future__ import annotations


class ListproofError(Exception):
    """Base class for every error raised by the signing core."""


class CanonicalizationError(ListproofError, ValueError):
    """Value cannot be represented as canonical JSON."""


class KeyResolutionError(ListproofError):
    """No usable signing key for a custodial organization."""

    def __init__(self, custody_org_id: str, message: str):
        super().__init__(message)
        self.custody_org_id = custody_org_id


class NoWalletError(KeyResolutionError):
    def __init__(self, custody_org_id: str):
        super().__init__(custody_org_id, f"No wallets found for organization {custody_org_id}")


class NoAccountError(KeyResolutionError):
    def __init__(self, custody_org_id: str, wallet_id: str):
        super().__init__(custody_org_id, f"No wallet accounts found in wallet {wallet_id}")
        self.wallet_id = wallet_id


class NoEd25519AccountError(KeyResolutionError):
    def __init__(self, custody_org_id: str, wallet_id: str):
        super().__init__(custody_org_id, f"No Ed25519 account found in wallet {wallet_id}")
        self.wallet_id = wallet_id


class KMSRequestError(ListproofError):
    """KMS call failed at the transport or HTTP level."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteSignError(ListproofError):
    """Raw-payload signing failed or returned a malformed result."""


class InvalidSignatureLengthError(ListproofError, ValueError):
    """Concatenated r||s is not a usable Ed25519 signature."""

    def __init__(self, length: int):
        super().__init__(f"Invalid Ed25519 signature length: {length} (expected 64 bytes)")
        self.length = length


class IdentityCreationError(ListproofError):
    """Identity bootstrap failed; surfaced to end users as a generic error."""

    def __init__(self, message: str = "could not create identity"):
        super().__init__(message)


class ItemNotFoundError(ListproofError, LookupError):
    def __init__(self, item_id: str):
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id
