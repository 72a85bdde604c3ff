"""
HeadSpin capture session client.

Mediates every call to the HeadSpin API for one test run: lock the device,
start a capture session, stop it, unlock the device, and attach labels.
None of the calls retry; failures are logged with the response body and raised.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

import httpx
from pydantic import BaseModel, Field

from .exceptions import (
    DeviceLockError,
    DeviceUnlockError,
    HeadspinAPIError,
    InvalidStateError,
    LabelSubmitError,
    SessionStartError,
    SessionStopError,
)
from .labels import Clock, Label, now_ms
from .logging_config import render

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "api-dev.headspin.io"
DEFAULT_UI_HOST = "ui-dev.headspin.io"
DEFAULT_LABEL_NAME = "Auto-created label"

# Options consumed by the payload itself; everything else is sent as label data
RESERVED_LABEL_OPTIONS = ("name", "category", "maxLowContent", "maxLoader")


class LabelPayload(BaseModel):
    """Body of a label/add request."""

    name: str = Field(..., description="Label name")
    label_type: str = Field(..., description="HeadSpin label type")
    start_time: float = Field(..., description="Seconds from session start")
    end_time: float = Field(..., description="Seconds from session start")
    category: Optional[str] = Field(None, description="Label category")
    data: Optional[Dict[str, Any]] = Field(None, description="Custom label data")


class HeadspinSession:
    """
    Client for a single HeadSpin capture session.

    Lifecycle: lock_device() -> start() -> [tests run] -> stop() -> unlock_device().
    Labels are pushed after the session is stopped, with times relative to the
    moment start() succeeded.
    """

    def __init__(
        self,
        token: str,
        device_id: str,
        *,
        api_host: str = DEFAULT_API_HOST,
        ui_host: str = DEFAULT_UI_HOST,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._token = token
        self._device_id = device_id
        self._base_url = f"https://{api_host}/v0"
        self._ui_host = ui_host
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._clock = clock
        self._client: Optional[httpx.AsyncClient] = None

        self._device_hostname: Optional[str] = None
        self._session_id: Optional[str] = None
        self._is_running = False
        self._start_time: Optional[int] = None

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def device_hostname(self) -> Optional[str]:
        return self._device_hostname

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def start_time(self) -> Optional[int]:
        """Wall-clock ms at which the session started; origin for label times."""
        return self._start_time

    @property
    def session_url(self) -> Optional[str]:
        if not self._session_id:
            return None
        return f"https://{self._ui_host}/sessions/{self._session_id}/waterfall"

    async def lock_device(self) -> None:
        """Lock the device so that it can be used for performance testing."""
        payload = {"device_id": self._device_id}
        response = await self._send("POST", "/devices/lock?automation", payload, DeviceLockError)

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Failed to parse JSON: {response.status_code} - {response.reason_phrase}")
            logger.error(str(response.request.url))
            logger.error(render(response.text))
            raise self._api_error(DeviceLockError, response, response.text)

        if not response.is_success or not isinstance(data, dict) or data.get("status_code") != 200:
            logger.error(render(data))
            raise self._api_error(DeviceLockError, response, data)

        self._device_hostname = _field(data, "hostname")
        logger.info("Locked the device...")

    async def unlock_device(self) -> None:
        """Release the device lock.

        The request is sent even when this client never locked the device, so
        a lock left behind by an aborted run can still be released.
        """
        if self._device_hostname is None:
            logger.warning(f"Unlocking device {self._device_id} without a lock held by this run")

        payload = {"device_id": self._device_id}
        response = await self._send("POST", "/devices/unlock?automation", payload, DeviceUnlockError)
        data = _parse_body(response)

        if not response.is_success:
            logger.error(render(data if data is not None else response.text))
            raise self._api_error(DeviceUnlockError, response, data)

        self._device_hostname = None
        logger.info("Unlocked the device...")

    async def start(self) -> None:
        """Start the recording session."""
        if self._is_running:
            raise InvalidStateError("Session is already running")
        if not self._device_hostname:
            raise InvalidStateError("Missing device hostname. Did you forget to lock the device?")

        payload = {
            "session_type": "capture",
            "capture_network": False,
            "device_address": f"{self._device_id}@{self._device_hostname}",
            "device_id": self._device_id,
        }
        response = await self._send("POST", "/sessions", payload, SessionStartError)
        data = _parse_body(response)

        session_id = _field(data, "session_id") if isinstance(data, dict) else None
        if not response.is_success or not session_id:
            logger.error(render(data if data is not None else response.text))
            raise self._api_error(SessionStartError, response, data)

        self._session_id = str(session_id)
        self._is_running = True
        # Origin for the relative label timeframes
        self._start_time = self._clock()
        logger.info(f"Performance session started: {self._session_id}")

    async def stop(self) -> None:
        """Stop the recording session."""
        if not self._session_id:
            raise InvalidStateError("There is no active session")

        response = await self._send("PATCH", f"/sessions/{self._session_id}", {"active": False}, SessionStopError)
        data = _parse_body(response)

        if not response.is_success:
            logger.error(render(data if data is not None else response.text))
            raise self._api_error(SessionStopError, response, data)

        self._is_running = False
        logger.info("Performance session is stopped")
        if isinstance(data, dict) and data.get("msg"):
            logger.info(data["msg"])
        logger.info(f"View this session online: {self.session_url}")

    def build_label_payload(self, label: Label) -> Dict[str, Any]:
        """Translate a label into a label/add request body."""
        if not self._session_id or self._start_time is None:
            raise InvalidStateError("There is no active session")
        if not label.is_complete:
            raise InvalidStateError(f"Label {label.name!r} was never started or never ended")

        name = label.options.get("name")
        category = label.options.get("category")
        if category is None:
            category = label.kind.default_category
        extra = {key: value for key, value in label.options.items() if key not in RESERVED_LABEL_OPTIONS}

        payload = LabelPayload(
            name=DEFAULT_LABEL_NAME if name is None else name,
            label_type=label.kind.label_type,
            start_time=(label.start_time - self._start_time) / 1000,
            end_time=(label.end_time - self._start_time) / 1000,
            category=category or None,
            data=extra or None,
        )
        return payload.model_dump(exclude_none=True)

    async def push_label(self, label: Label) -> Optional[str]:
        """
        Attach a label to the session.

        Args:
            label: A label with both start and end stamped

        Returns:
            The label id assigned by HeadSpin, if the response carried one
        """
        request_body = self.build_label_payload(label)
        response = await self._send(
            "POST", f"/sessions/{self._session_id}/label/add", request_body, LabelSubmitError
        )
        data = _parse_body(response) or {}

        if not response.is_success:
            logger.error(render(data))
            logger.error(render(request_body))
            raise self._api_error(LabelSubmitError, response, data)

        label_id = data.get("label_id") if isinstance(data, dict) else None
        logger.info(f"Pushed {request_body['name']} label to HeadSpin: {label_id}")
        return label_id

    async def aclose(self) -> None:
        """Close the HTTP client; a new one is created on the next request."""
        client, self._client = self._client, None
        if client:
            await client.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=httpx.BasicAuth(self._token, ""),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def _send(
        self,
        method: str,
        path: str,
        payload: Dict[str, Any],
        error_cls: Type[HeadspinAPIError],
    ) -> httpx.Response:
        client = self._get_client()
        try:
            return await client.request(method, path, json=payload)
        except httpx.RequestError as exc:
            logger.error(f"HeadSpin {method} {path} request error: {exc}")
            raise error_cls(reason=str(exc), url=f"{self._base_url}{path}") from exc

    @staticmethod
    def _api_error(error_cls: Type[HeadspinAPIError], response: httpx.Response, body: Any) -> HeadspinAPIError:
        return error_cls(
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=body,
            url=str(response.request.url),
        )


def _parse_body(response: httpx.Response) -> Any:
    """Best-effort JSON decoding; an empty or malformed body yields None."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _field(data: Dict[str, Any], key: str) -> Any:
    """Read a field from the ``data`` envelope, falling back to the top level."""
    inner = data.get("data")
    if isinstance(inner, dict) and key in inner:
        return inner[key]
    return data.get(key)


__all__ = ["DEFAULT_LABEL_NAME", "HeadspinSession", "LabelPayload", "RESERVED_LABEL_OPTIONS"]
