"""Pydantic models for keys, credential subjects, proofs and credentials.

Wire names are camelCase (W3C VC / DID core); Python attributes are
snake_case. Dump with ``by_alias=True`` to get the wire shape.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

VC_CONTEXT_V1 = "https://www.w3.org/2018/credentials/v1"
DEFAULT_APP_CONTEXT = "https://originals.tech/credentials/v1"


class KeyCurve(str, Enum):
    """Curves reported by the KMS for wallet accounts."""
    ED25519 = "CURVE_ED25519"
    SECP256K1 = "CURVE_SECP256K1"


class CredentialKind(str, Enum):
    """Event kinds a credential can attest."""
    ITEM_CREATED = "ItemCreated"
    ITEM_COMPLETED = "ItemCompleted"
    LIST_OWNERSHIP = "ListOwnership"
    RESOURCE_CREATED = "ResourceCreated"
    RESOURCE_UPDATED = "ResourceUpdated"


class ItemActionType(str, Enum):
    """Item actions recorded in a list's audit trail."""
    ITEM_ADDED = "ItemAdded"
    ITEM_CHECKED = "ItemChecked"
    ITEM_UNCHECKED = "ItemUnchecked"
    ITEM_REMOVED = "ItemRemoved"


def format_timestamp(value: datetime | int | float | str) -> str:
    """Render a timestamp as ISO-8601 UTC with milliseconds and a Z suffix.

    Integers and floats are epoch milliseconds. Strings pass through.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        value = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SigningKeyHandle(_WireModel):
    """Ed25519 key held by the KMS, resolved fresh for each operation."""

    custody_org_id: str = Field(..., description="Custodial organization holding the key")
    account_address: str = Field(..., description="Base58 encoding of the public key")
    curve: KeyCurve = Field(default=KeyCurve.ED25519)
    verification_method_id: str = Field(..., description="did:key verification method id")


class _Subject(_WireModel):
    kind: ClassVar[CredentialKind]

    @property
    def credential_kind(self) -> CredentialKind:
        return self.kind

    def to_claims(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ItemCreatedSubject(_Subject):
    """Proof of authorship for a new list item."""

    kind: ClassVar[CredentialKind] = CredentialKind.ITEM_CREATED

    id: str = Field(..., description="Subject DID (the creator)")
    item_id: str
    list_id: str
    item_name: str
    creator_did: str
    created_at: str

    @field_validator("created_at", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> str:
        return format_timestamp(v)


class ItemCompletedSubject(_Subject):
    """Proof of completion for a checked list item."""

    kind: ClassVar[CredentialKind] = CredentialKind.ITEM_COMPLETED

    id: str = Field(..., description="Subject DID (the completer)")
    item_id: str
    list_id: str
    item_name: str
    completer_did: str
    completed_at: str

    @field_validator("completed_at", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> str:
        return format_timestamp(v)


class ListOwnershipSubject(_Subject):
    """Proof of ownership of a list asset."""

    kind: ClassVar[CredentialKind] = CredentialKind.LIST_OWNERSHIP

    id: str = Field(..., description="Subject DID (the owner)")
    list_id: str
    asset_did: str
    owner_did: str
    list_name: str
    role: Literal["owner"] = "owner"


class ItemActionSubject(_Subject):
    """Audit-trail entry for one action on a list item.

    Additions are issued as ``ResourceCreated``; checks, unchecks and
    removals as ``ResourceUpdated``.
    """

    kind: ClassVar[CredentialKind] = CredentialKind.RESOURCE_UPDATED

    id: str = Field(..., description="<listDid>#item-<itemId>")
    action_type: ItemActionType
    list_did: str
    item_id: str
    actor: str = Field(..., description="DID of the user performing the action")
    timestamp: str

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, v: Any) -> str:
        return format_timestamp(v)

    @property
    def credential_kind(self) -> CredentialKind:
        if self.action_type == ItemActionType.ITEM_ADDED:
            return CredentialKind.RESOURCE_CREATED
        return CredentialKind.RESOURCE_UPDATED


def item_action_subject_id(list_did: str, item_id: str) -> str:
    return f"{list_did}#item-{item_id}"


CredentialSubject = Union[ItemCreatedSubject, ItemCompletedSubject, ListOwnershipSubject, ItemActionSubject]

SUBJECT_TYPES: dict[CredentialKind, type[_Subject]] = {
    CredentialKind.ITEM_CREATED: ItemCreatedSubject,
    CredentialKind.ITEM_COMPLETED: ItemCompletedSubject,
    CredentialKind.LIST_OWNERSHIP: ListOwnershipSubject,
    CredentialKind.RESOURCE_CREATED: ItemActionSubject,
    CredentialKind.RESOURCE_UPDATED: ItemActionSubject,
}


def subject_from_fields(kind: CredentialKind, fields: dict[str, Any]) -> CredentialSubject:
    """Build the subject variant for ``kind`` from wire or Python field names."""
    subject = SUBJECT_TYPES[kind].model_validate(fields)
    if subject.credential_kind != kind:
        raise ValueError(f"Subject fields describe a {subject.credential_kind.value} credential, not {kind.value}")
    return subject  # type: ignore[return-value]


class DataIntegrityProof(_WireModel):
    """Proof options, plus the proof value once signed."""

    type: str = Field(default="DataIntegrityProof")
    cryptosuite: str = Field(default="eddsa-jcs-2022")
    created: str = Field(default_factory=utc_now)
    verification_method: str
    proof_purpose: str = Field(default="assertionMethod")
    proof_value: str | None = Field(default=None, description="Multibase base58-btc signature")

    def options(self) -> dict[str, Any]:
        """Wire form without ``proofValue``."""
        return self.model_dump(by_alias=True, exclude={"proof_value"})

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class VerifiableCredential(_WireModel):
    """W3C VC envelope. Immutable; a new fact means a new credential."""

    context: list[str] = Field(
        default_factory=lambda: [VC_CONTEXT_V1, DEFAULT_APP_CONTEXT], alias="@context"
    )
    type: list[str]
    id: str
    issuer: str
    issuance_date: str
    credential_subject: dict[str, Any]
    proof: DataIntegrityProof | None = None

    def unsigned_document(self) -> dict[str, Any]:
        """The document half of the proof digest."""
        return self.model_dump(by_alias=True, exclude={"proof"})

    def to_wire(self) -> dict[str, Any]:
        document = self.unsigned_document()
        if self.proof is not None:
            document["proof"] = self.proof.to_wire()
        return document

    def to_json(self) -> str:
        """Opaque JSON string persisted by the calling layer."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @property
    def kind(self) -> CredentialKind:
        return CredentialKind(self.type[-1])


class DIDCreationResult(_WireModel):
    did: str
    did_document: dict[str, Any]
    did_log: list[dict[str, Any]]


class CredentialRecord(_WireModel):
    """Signed credential as attached to an item by the data store."""

    type: CredentialKind
    credential: str = Field(..., description="Signed credential as a JSON string")
    issued_at: int = Field(..., description="Epoch milliseconds")
    issuer_did: str


class ItemActionResult(_WireModel):
    item_id: str
    credential_issued: bool


class DataSignature(_WireModel):
    signature: str = Field(..., description="Hex-encoded 64-byte Ed25519 signature")
    public_key: str = Field(..., description="Base58 account address")
