"""Data models for the Hide My Email client."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from hme.exceptions import ValidationError


class AliasState(Enum):
    """Lifecycle of a single alias.

    UNREQUESTED is the state before generate() runs; a ProvisionalAlias only
    exists from PROVISIONAL onwards.
    """

    UNREQUESTED = "unrequested"
    PROVISIONAL = "provisional"
    CLAIMED = "claimed"
    ORPHANED = "orphaned"


@dataclass
class Service:
    """One entry of the iCloud web service directory."""

    url: Optional[str] = None
    status: Optional[str] = None


@dataclass
class ProvisionalAlias:
    """A generated alias that has not been claimed yet."""

    address: str
    provisioning_id: Optional[str] = None
    state: AliasState = AliasState.PROVISIONAL


def validate_label(label: str) -> None:
    """Raise ValidationError for a missing or blank label."""
    if not label or not label.strip():
        raise ValidationError()


@dataclass(frozen=True)
class ClaimRequest:
    """Label and note a caller attaches to a provisional alias."""

    alias: ProvisionalAlias
    label: str
    note: str = ""

    @classmethod
    def for_alias(cls, alias: ProvisionalAlias, label: str, note: str = "") -> "ClaimRequest":
        """Build a claim request, rejecting an empty label."""
        validate_label(label)
        return cls(alias=alias, label=label, note=note or "")

    def to_payload(self) -> dict[str, str]:
        payload = {
            "hme": self.alias.address,
            "label": self.label,
            "note": self.note,
        }
        if self.alias.provisioning_id:
            payload["anonymousId"] = self.alias.provisioning_id
        return payload


@dataclass
class AliasRecord:
    """A committed alias as reported by iCloud."""

    address: str
    label: str
    note: str = ""
    anonymous_id: Optional[str] = None
    domain: Optional[str] = None
    origin: Optional[str] = None
    forward_to_email: Optional[str] = None
    create_timestamp: Optional[int] = None
    is_active: bool = False
    recipient_mail_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "AliasRecord":
        return cls(
            address=data.get("hme", ""),
            label=data.get("label", ""),
            note=data.get("note", ""),
            anonymous_id=data.get("anonymousId"),
            domain=data.get("domain"),
            origin=data.get("origin"),
            forward_to_email=data.get("forwardToEmail"),
            create_timestamp=data.get("createTimestamp"),
            is_active=bool(data.get("isActive", False)),
            recipient_mail_id=data.get("recipientMailId"),
        )


@dataclass
class AliasList:
    """All aliases on the account plus forwarding settings."""

    forward_to_emails: list[str] = field(default_factory=list)
    aliases: list[AliasRecord] = field(default_factory=list)
    selected_forward_to: Optional[str] = None


@dataclass
class Config:
    """User configuration for the CLI."""

    cookie: Optional[str]
    timeout: float
    user_agent: str
    default_note: str
