"""Entry points used by the application's action handlers.

Item-event credentials are best-effort: the primary write always commits
and a failed issuance is reported as ``credential_issued=False``. Identity
creation is fatal: any failure aborts with ``IdentityCreationError``.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

from pydantic import BaseModel, Field

from listproof.sdk.custody import resolve_signing_key
from listproof.sdk.did import create_did, domain_from_did, user_path_slug
from listproof.sdk.errors import IdentityCreationError, ItemNotFoundError, ListproofError
from listproof.sdk.kms import KMSClient
from listproof.sdk.models import (
    DEFAULT_APP_CONTEXT,
    CredentialRecord,
    DIDCreationResult,
    ItemActionResult,
    ItemActionSubject,
    ItemActionType,
    ItemCompletedSubject,
    ItemCreatedSubject,
    ListOwnershipSubject,
    item_action_subject_id,
)
from listproof.sdk.signer import RemoteSigner
from listproof.sdk.vc import IssuanceResult, try_issue_credential

logger = logging.getLogger(__name__)


class StoredItem(BaseModel):
    """Item fields needed to describe a completion."""

    item_id: str
    list_id: str
    name: str
    checked: bool = Field(default=False)


class ItemStore(Protocol):
    """Data store owning list items. Persistence is outside this package."""

    def add_item(self, list_id: str, name: str, created_by_did: str, created_at: int) -> str:
        ...

    def get_item(self, item_id: str) -> StoredItem | None:
        ...

    def check_item(self, item_id: str, checked_by_did: str, checked_at: int) -> None:
        ...

    def uncheck_item(self, item_id: str, unchecked_by_did: str, unchecked_at: int) -> None:
        ...

    def add_credential(self, item_id: str, record: CredentialRecord) -> None:
        ...


def add_item_with_credential(
    store: ItemStore,
    kms: KMSClient,
    *,
    list_id: str,
    name: str,
    creator_did: str,
    custody_org_id: str,
    created_at: int,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> ItemActionResult:
    """Create an item, then attach an ItemCreated credential if signing succeeds."""
    item_id = store.add_item(list_id, name, creator_did, created_at)

    subject = ItemCreatedSubject(
        id=creator_did,
        item_id=item_id,
        list_id=list_id,
        item_name=name,
        creator_did=creator_did,
        created_at=created_at,
    )
    result = try_issue_credential(kms, custody_org_id, subject, creator_did, app_context)
    return ItemActionResult(item_id=item_id, credential_issued=_attach(store, item_id, result))


def check_item_with_credential(
    store: ItemStore,
    kms: KMSClient,
    *,
    item_id: str,
    checked_by_did: str,
    custody_org_id: str,
    checked_at: int,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> ItemActionResult:
    """Mark an item done, then attach an ItemCompleted credential if signing succeeds."""
    item = store.get_item(item_id)
    if item is None:
        raise ItemNotFoundError(item_id)

    store.check_item(item_id, checked_by_did, checked_at)

    subject = ItemCompletedSubject(
        id=checked_by_did,
        item_id=item_id,
        list_id=item.list_id,
        item_name=item.name,
        completer_did=checked_by_did,
        completed_at=checked_at,
    )
    result = try_issue_credential(kms, custody_org_id, subject, checked_by_did, app_context)
    return ItemActionResult(item_id=item_id, credential_issued=_attach(store, item_id, result))


def uncheck_item_with_credential(
    store: ItemStore,
    kms: KMSClient,
    *,
    item_id: str,
    list_did: str,
    unchecked_by_did: str,
    custody_org_id: str,
    unchecked_at: int,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> ItemActionResult:
    """Clear an item's checked state, then attach an ItemUnchecked credential if signing succeeds."""
    if store.get_item(item_id) is None:
        raise ItemNotFoundError(item_id)

    store.uncheck_item(item_id, unchecked_by_did, unchecked_at)

    result = sign_item_action(
        kms,
        action_type=ItemActionType.ITEM_UNCHECKED,
        list_did=list_did,
        item_id=item_id,
        actor_did=unchecked_by_did,
        custody_org_id=custody_org_id,
        timestamp=unchecked_at,
        app_context=app_context,
    )
    return ItemActionResult(item_id=item_id, credential_issued=_attach(store, item_id, result))


def sign_item_action(
    kms: KMSClient,
    *,
    action_type: ItemActionType,
    list_did: str,
    item_id: str,
    actor_did: str,
    custody_org_id: str,
    timestamp: int | None = None,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> IssuanceResult:
    """Best-effort audit-trail credential for an add, check, uncheck or removal."""
    subject = ItemActionSubject(
        id=item_action_subject_id(list_did, item_id),
        action_type=action_type,
        list_did=list_did,
        item_id=item_id,
        actor=actor_did,
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
    )
    return try_issue_credential(kms, custody_org_id, subject, actor_did, app_context)


def register_list_ownership(
    kms: KMSClient,
    *,
    list_id: str,
    asset_did: str,
    owner_did: str,
    list_name: str,
    custody_org_id: str,
    app_context: str = DEFAULT_APP_CONTEXT,
) -> IssuanceResult:
    """Best-effort ListOwnership credential for a new or renamed list."""
    subject = ListOwnershipSubject(
        id=owner_did,
        list_id=list_id,
        asset_did=asset_did,
        owner_did=owner_did,
        list_name=list_name,
    )
    return try_issue_credential(kms, custody_org_id, subject, owner_did, app_context)


def create_user_identity(kms: KMSClient, custody_org_id: str, domain: str) -> DIDCreationResult:
    """Bootstrap the user's did:webvh identity during onboarding."""
    return _create_identity(kms, custody_org_id, domain, user_path_slug(custody_org_id))


def create_list_identity(kms: KMSClient, custody_org_id: str, user_did: str, slug: str) -> DIDCreationResult:
    """Create a did:webvh for a published list on the owner's domain."""
    try:
        domain = domain_from_did(user_did)
    except ValueError as e:
        logger.error("List identity for %s failed: %s", slug, e)
        raise IdentityCreationError() from e
    return _create_identity(kms, custody_org_id, domain, slug)


def _create_identity(kms: KMSClient, custody_org_id: str, domain: str, path_slug: str) -> DIDCreationResult:
    logger.info("Creating did:webvh for %s on %s", path_slug, domain)
    try:
        key_handle = resolve_signing_key(kms, custody_org_id)
        return create_did(key_handle, RemoteSigner(kms, key_handle), domain, path_slug)
    except (ListproofError, ValueError) as e:
        logger.error("Identity creation for %s failed: %s", path_slug, e)
        raise IdentityCreationError() from e


def _attach(store: ItemStore, item_id: str, result: IssuanceResult) -> bool:
    if not result.ok:
        return False

    credential = result.credential
    record = CredentialRecord(
        type=credential.kind,
        credential=credential.to_json(),
        issued_at=int(time.time() * 1000),
        issuer_did=credential.issuer,
    )
    store.add_credential(item_id, record)
    logger.info("Stored %s credential for item %s", credential.kind.value, item_id)
    return True
