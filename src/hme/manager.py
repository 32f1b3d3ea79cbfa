"""Hide My Email alias manager: generate, claim and list aliases."""

import logging
from typing import Any

import httpx

from hme.client import AUTH_REJECTED_STATUSES, HME_SERVICE, ICloudClient
from hme.exceptions import (
    AliasConsumedError,
    AuthError,
    ClaimError,
    GenerationError,
    ListError,
)
from hme.models import (
    AliasList,
    AliasRecord,
    AliasState,
    ClaimRequest,
    ProvisionalAlias,
    validate_label,
)

logger = logging.getLogger(__name__)


class HideMyEmailManager:
    """Drives the generate-then-claim alias protocol over one validated session.

    The manager takes over the client; only one manager may drive a client.
    Calls must be serialized by the caller.
    """

    def __init__(self, client: ICloudClient) -> None:
        if not client.validated:
            raise AuthError("Session must be validated before managing aliases")
        client.bind_owner(self)
        self._client = client

    @property
    def client(self) -> ICloudClient:
        return self._client

    def _base_url(self) -> str:
        if not self._client.validated:
            raise AuthError("Session must be validated before managing aliases")
        base = self._client.service_url(HME_SERVICE)
        if not base:
            raise AuthError("Hide My Email service URL is unknown")
        return base.rstrip("/")

    def _error_details(self, data: Any) -> tuple[str | None, str | None]:
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            code = error.get("errorCode")
            return (str(code) if code is not None else None), error.get("errorMessage")
        return None, data.get("reason") if isinstance(data, dict) else None

    async def generate(self) -> ProvisionalAlias:
        """Reserve a new alias. Nothing is committed until claim()."""
        url = f"{self._base_url()}/v1/hme/generate"

        try:
            response = await self._client.request("POST", url)
        except httpx.HTTPError as e:
            raise GenerationError(f"Failed to reach Hide My Email: {e}") from e
        except UnicodeEncodeError as e:
            raise GenerationError(f"Session cookie can't be sent: {e}") from e

        if response.status_code in AUTH_REJECTED_STATUSES:
            raise AuthError(status_code=response.status_code)
        if response.is_error:
            raise GenerationError(
                f"Failed to generate alias: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError("Generate returned an invalid response") from e

        if not isinstance(data, dict) or not data.get("success"):
            error_code, error_message = self._error_details(data)
            # A refused generate is how iCloud reports an exhausted alias quota
            raise GenerationError(
                f"Alias generation refused: {error_message or 'no aliases remaining'}",
                error_code=error_code,
            )

        hme = (data.get("result") or {}).get("hme")
        if isinstance(hme, str) and hme:
            address, provisioning_id = hme, None
        elif isinstance(hme, dict) and hme.get("hme"):
            address, provisioning_id = hme["hme"], hme.get("anonymousId")
        else:
            raise GenerationError("Generate response did not include an alias")

        logger.info("Generated alias %s", address)
        return ProvisionalAlias(address=address, provisioning_id=provisioning_id)

    async def claim(self, alias: ProvisionalAlias, label: str, note: str = "") -> AliasRecord:
        """Commit a provisional alias under a label.

        Not idempotent: a second claim of the same alias raises ClaimError.
        Any failure after the request is sent leaves the alias ORPHANED.
        """
        claim_request = ClaimRequest.for_alias(alias, label, note)
        if alias.state is not AliasState.PROVISIONAL:
            raise AliasConsumedError(alias.address, alias.state.value)

        try:
            record = await self._send_claim(claim_request)
        except ClaimError:
            alias.state = AliasState.ORPHANED
            logger.warning("Claim failed, alias %s is orphaned", alias.address)
            raise

        alias.state = AliasState.CLAIMED
        logger.info("Claimed alias %s as %r", alias.address, claim_request.label)
        return record

    async def _send_claim(self, claim_request: ClaimRequest) -> AliasRecord:
        address = claim_request.alias.address
        try:
            url = f"{self._base_url()}/v1/hme/reserve"
        except AuthError as e:
            raise ClaimError(e.message, address=address) from e

        try:
            response = await self._client.request("POST", url, json=claim_request.to_payload())
        except httpx.HTTPError as e:
            raise ClaimError(f"Failed to reach Hide My Email: {e}", address=address) from e
        except UnicodeEncodeError as e:
            raise ClaimError(f"Session cookie can't be sent: {e}", address=address) from e

        if response.status_code in AUTH_REJECTED_STATUSES:
            raise ClaimError(
                f"Session rejected while claiming {address}",
                address=address,
                status_code=response.status_code,
            )
        if response.is_error:
            raise ClaimError(
                f"Failed to claim {address}: HTTP {response.status_code}",
                address=address,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ClaimError("Reserve returned an invalid response", address=address) from e

        if not isinstance(data, dict) or not data.get("success"):
            error_code, error_message = self._error_details(data)
            raise ClaimError(
                f"Claim of {address} rejected: {error_message or 'unknown, expired or already claimed'}",
                address=address,
                error_code=error_code,
            )

        hme = (data.get("result") or {}).get("hme")
        if not isinstance(hme, dict):
            raise ClaimError("Reserve response did not include the alias", address=address)

        record = AliasRecord.from_api(hme)
        if not record.is_active or record.address != address:
            raise ClaimError(
                f"Hide my email for {address} is inactive/invalid, "
                f"Active: {record.is_active}, HME: {record.address}",
                address=address,
            )
        return record

    async def generate_and_claim(self, label: str, note: str = "") -> AliasRecord:
        """Generate an alias and claim it right away.

        A failed claim is not retried; the orphaned alias is left to iCloud.
        """
        validate_label(label)
        alias = await self.generate()
        return await self.claim(alias, label, note)

    async def list_aliases(self) -> AliasList:
        """Fetch every alias on the account."""
        url = f"{self._base_url()}/v2/hme/list"

        try:
            response = await self._client.request("GET", url)
        except httpx.HTTPError as e:
            raise ListError(f"Failed to reach Hide My Email: {e}") from e
        except UnicodeEncodeError as e:
            raise ListError(f"Session cookie can't be sent: {e}") from e

        if response.status_code in AUTH_REJECTED_STATUSES:
            raise AuthError(status_code=response.status_code)
        if response.is_error:
            raise ListError(f"Failed to list aliases: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ListError("List returned an invalid response") from e

        if not isinstance(data, dict) or not data.get("success", True):
            _, error_message = self._error_details(data)
            raise ListError(f"Failed to list aliases: {error_message or 'request refused'}")

        result = data.get("result") or {}
        return AliasList(
            forward_to_emails=list(result.get("forwardToEmails", [])),
            aliases=[AliasRecord.from_api(item) for item in result.get("hmeEmails", [])],
            selected_forward_to=result.get("selectedForwardTo"),
        )
