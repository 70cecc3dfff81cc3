"""
Token metadata upload to the pump.fun IPFS endpoint.

The endpoint accepts a multipart form with the token image and descriptive
fields and answers with the pinned metadata document and its URI, which is
then passed to the create instruction.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import aiohttp

from pumpfun_sdk.core.errors import ExternalServiceError
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_METADATA_ENDPOINT = "https://pump.fun/api/ipfs"


@dataclass(frozen=True)
class CreateTokenMetadata:
    """Descriptive fields and image for a new token."""

    name: str
    symbol: str
    description: str
    file: bytes
    file_name: str = "image.png"
    twitter: str | None = None
    telegram: str | None = None
    website: str | None = None


@dataclass(frozen=True)
class TokenMetadataUpload:
    """Result of a metadata upload."""

    metadata_uri: str
    metadata: dict[str, Any]


class MetadataUploader:
    """Uploads token metadata over HTTP with aiohttp."""

    def __init__(self, endpoint: str = DEFAULT_METADATA_ENDPOINT, timeout: float = 30.0):
        """
        Args:
            endpoint: Metadata upload URL
            timeout: Total request timeout in seconds
        """
        self.endpoint = endpoint
        self.timeout = timeout

    @staticmethod
    def build_form(create: CreateTokenMetadata) -> aiohttp.FormData:
        """Build the multipart form for an upload."""
        form = aiohttp.FormData()
        form.add_field("file", create.file, filename=create.file_name)
        form.add_field("name", create.name)
        form.add_field("symbol", create.symbol)
        form.add_field("description", create.description)
        form.add_field("twitter", create.twitter or "")
        form.add_field("telegram", create.telegram or "")
        form.add_field("website", create.website or "")
        form.add_field("showName", "true")
        return form

    async def _post(self, form: aiohttp.FormData) -> tuple[int, str]:
        """POST the form and return (status, body text)."""
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.post(
                    self.endpoint, data=form, headers={"Accept": "application/json"}
                ) as response:
                    return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ExternalServiceError(
                "metadata", f"Metadata upload request failed: {e!s}"
            ) from e

    async def upload(self, create: CreateTokenMetadata) -> TokenMetadataUpload:
        """Upload token metadata.

        Args:
            create: Token metadata and image

        Returns:
            TokenMetadataUpload with the metadata URI

        Raises:
            ExternalServiceError: On a non-2xx status, an empty body, a non-JSON
                body or a response without a metadata URI
        """
        logger.info(f"Uploading metadata for {create.symbol} to {self.endpoint}")
        status, body = await self._post(self.build_form(create))

        if not 200 <= status < 300:
            raise ExternalServiceError(
                "metadata", f"Metadata upload failed with HTTP {status}", status, body
            )
        if not body:
            raise ExternalServiceError(
                "metadata", "Empty response received from metadata endpoint", status
            )

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise ExternalServiceError(
                "metadata", "Invalid JSON response from metadata endpoint", status, body
            ) from e

        metadata_uri = payload.get("metadataUri") if isinstance(payload, dict) else None
        if not metadata_uri:
            raise ExternalServiceError(
                "metadata", "Response has no metadataUri", status, body
            )

        logger.info(f"Metadata uploaded: {metadata_uri}")
        return TokenMetadataUpload(
            metadata_uri=metadata_uri, metadata=payload.get("metadata") or {}
        )
