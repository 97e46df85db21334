from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests


class ApiError(RuntimeError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


class ApiUnauthorized(ApiError):
    pass


def _error_message(resp: Any) -> str:
    """
    Server message for a failed response: JSON `message` when the body is JSON,
    otherwise the body text, otherwise the reason phrase.
    """
    content_type = (resp.headers.get("Content-Type") or "").lower()
    reason = getattr(resp, "reason", None) or f"HTTP {resp.status_code}"
    if "application/json" in content_type:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        if body is not None:
            return reason
    text = (resp.text or "").strip()
    return text[:500] if text else reason


@dataclass(frozen=True)
class ApiClient:
    """
    Thin client for the platform REST API. No retries: a failed read renders an error
    page and a failed mutation surfaces a toast.
    """

    base_url: str
    token: str | None = None
    timeout_seconds: int = 30
    session: Any = None

    def _http(self) -> Any:
        return self.session if self.session is not None else requests

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _headers(self, *, has_body: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if has_body:
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, path: str, *, params: dict[str, Any] | None, json_body: Any) -> Any:
        clean_params = {k: v for k, v in (params or {}).items() if v is not None} or None
        try:
            resp = self._http().request(
                method.upper(),
                self._url(path),
                params=clean_params,
                json=json_body,
                headers=self._headers(has_body=json_body is not None),
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise ApiError(f"Platform API unreachable ({method.upper()} {path}): {e}") from e

        if resp.status_code == 401:
            raise ApiUnauthorized("Unauthorized", status=401)
        if resp.status_code >= 400:
            raise ApiError(_error_message(resp), status=resp.status_code)
        return resp

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        resp = self._send(method, path, params=params, json_body=json_body)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from platform API ({path})", status=resp.status_code) from e

    def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json_body: Any = None) -> Any:
        return self.request("POST", path, json_body=json_body)

    def put(self, path: str, json_body: Any = None) -> Any:
        return self.request("PUT", path, json_body=json_body)

    def patch(self, path: str, json_body: Any = None) -> Any:
        return self.request("PATCH", path, json_body=json_body)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def get_raw(self, path: str, *, params: dict[str, Any] | None = None) -> tuple[bytes, str]:
        """Fetch a non-JSON body (CSV report exports)."""
        resp = self._send("GET", path, params=params, json_body=None)
        content_type = resp.headers.get("Content-Type") or "application/octet-stream"
        return resp.content or b"", content_type


def api_client_from_config(config: dict, *, token: str | None = None, session: Any = None) -> ApiClient:
    return ApiClient(
        base_url=(config.get("API_BASE_URL") or "").strip(),
        token=token or None,
        timeout_seconds=int(config.get("API_TIMEOUT_SECONDS") or 30),
        session=session,
    )
