"""HTTP client for the station persistence boundary."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from ..config import settings
from .station_codec import StationCodec, codec as default_codec, parse_station_id
from .station_types import Station, StationId

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Network error, please try again"
INVALID_RESPONSE_CODE = "INVALID_RESPONSE"


class StationApiError(Exception):
    """Structured failure reported by (or on the way to) the station API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        self.hint = hint

    @property
    def is_network_error(self) -> bool:
        return self.status_code is None

    @property
    def user_message(self) -> str:
        """Specific when the boundary explained itself, generic otherwise."""
        if self.is_network_error:
            return GENERIC_ERROR_MESSAGE
        if self.code:
            return f"{self.message} ({self.code})"
        return self.message


class StationLoadError(StationApiError):
    """The initial bulk load failed; the screen cannot show any data."""


def _error_from_response(response: httpx.Response) -> StationApiError:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    message = payload.get("error") or payload.get("detail") or response.reason_phrase
    if not isinstance(message, str):
        message = str(message)
    return StationApiError(
        message=message or f"HTTP {response.status_code}",
        status_code=response.status_code,
        code=payload.get("code"),
        details=payload.get("details"),
        hint=payload.get("hint"),
    )


def _json_payload(response: httpx.Response) -> Dict[str, Any]:
    """Decode a successful response body, which must be a JSON object."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise StationApiError(
            f"Unreadable response from {response.request.url.path}",
            status_code=response.status_code,
            code=INVALID_RESPONSE_CODE,
            details=str(exc),
        ) from exc
    if not isinstance(payload, dict):
        raise StationApiError(
            f"Unexpected response from {response.request.url.path}",
            status_code=response.status_code,
            code=INVALID_RESPONSE_CODE,
            details=f"expected an object, got {type(payload).__name__}",
        )
    return payload


def _invalid_content(response: httpx.Response, exc: Exception) -> StationApiError:
    return StationApiError(
        f"Malformed data in response from {response.request.url.path}",
        status_code=response.status_code,
        code=INVALID_RESPONSE_CODE,
        details=repr(exc),
    )


class StationApiClient:
    """Client for the ``/api/stations`` resource collection."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: int = 2,
        backoff_seconds: float = 0.5,
        station_codec: Optional[StationCodec] = None,
    ):
        self.base_url = base_url or settings.api_base_url
        self.api_key = api_key if api_key is not None else settings.system_api_token
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self.codec = station_codec or default_codec
        self._transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        headers = {}
        if self.api_key:
            headers[settings.api_key_header] = self.api_key
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers=headers,
            transport=self._transport,
        )

    async def _fetch_with_retry(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        decode: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> Any:
        """
        GET with retry on network failures and server errors.

        ``decode`` turns the JSON object into domain values; a body it cannot
        read is reported as :data:`INVALID_RESPONSE_CODE`, never retried.
        """
        async with self._http_client() as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.get(path, params=params or {})
                except httpx.RequestError as exc:
                    if attempt == self.max_retries - 1:
                        raise StationApiError(f"Request to {path} failed: {exc}") from exc
                    await asyncio.sleep(self.backoff_seconds * 2 ** attempt)
                    continue

                if response.is_success:
                    payload = _json_payload(response)
                    if decode is None:
                        return payload
                    try:
                        return decode(payload)
                    except (KeyError, TypeError, ValueError) as exc:
                        raise _invalid_content(response, exc) from exc
                if response.status_code < 500 or attempt == self.max_retries - 1:
                    raise _error_from_response(response)
                await asyncio.sleep(self.backoff_seconds * 2 ** attempt)

        raise StationApiError(f"Request to {path} failed")

    async def list_stations(self) -> List[Station]:
        """All stations, ordered by name."""
        return await self._fetch_with_retry(
            "/api/stations",
            decode=lambda payload: [self.codec.from_row(row) for row in payload.get("stations", [])],
        )

    async def get_station(self, station_id: StationId) -> Optional[Station]:
        """Single station, or ``None`` when it does not exist."""
        numeric_id = parse_station_id(station_id)
        try:
            return await self._fetch_with_retry(
                f"/api/stations/{numeric_id}",
                decode=lambda payload: self.codec.from_row(payload["station"]),
            )
        except StationApiError as exc:
            if exc.status_code == 404:
                return None
            raise

    async def patch_station(self, station_id: StationId, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Persist the changed station attributes and return the canonical row.

        Not retried: a second PATCH could overwrite a newer edit made by
        another client in between.

        Raises:
            StationApiError: On a non-success response, a network failure
                (including timeouts) or a success response whose row cannot
                be read.
        """
        numeric_id = parse_station_id(station_id)
        body = self.codec.to_request(changes)
        async with self._http_client() as client:
            try:
                response = await client.patch(f"/api/stations/{numeric_id}", json=body)
            except httpx.RequestError as exc:
                raise StationApiError(f"Network error updating station {numeric_id}: {exc}") from exc

        if not response.is_success:
            raise _error_from_response(response)

        data = _json_payload(response).get("data")
        if not data:
            raise StationApiError(
                f"Station {numeric_id} update returned no data",
                status_code=response.status_code,
                code=INVALID_RESPONSE_CODE,
            )
        if not isinstance(data, dict):
            raise _invalid_content(response, TypeError(f"row is {type(data).__name__}"))
        try:
            self.codec.canonical_fields(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise _invalid_content(response, exc) from exc
        return data

    async def recently_changed(self, since_seconds: int) -> List[Dict[str, Any]]:
        """Decoded attribute changes for stations edited in the recent window."""
        return await self._fetch_with_retry(
            "/api/stations/recent",
            params={"seconds": since_seconds},
            decode=lambda payload: [
                self.codec.from_recent_entry(entry) for entry in payload.get("updated", [])
            ],
        )

    async def filter_options(self) -> Dict[str, List[Any]]:
        return await self._fetch_with_retry("/api/stations/options")
