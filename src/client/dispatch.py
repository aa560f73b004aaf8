from __future__ import annotations

import json
import urllib.parse
from typing import Any, Dict, Optional

import requests
from loguru import logger

from config import Configuration
from models import API_VERSIONS
from client.errors import ClassifiedError, ErrorCode, decode_error_code
from client.notices import notice_for

MULTIPART_PLACEHOLDER = "[multipart/form-data]"


class ApiClient:
    """Authenticated, versioned calls to the backend.

    ``session`` is owned by the auth layer and only read here: its
    ``access_token`` is looked up once per dispatch. ``notices`` is the UI dialog
    surface; it needs a ``show(notice)`` method. ``platform`` picks the store
    link offered on an unsupported-version notice ("ios" or "android").

    Every dispatch is single-shot: no retry, no backoff, no in-flight dedupe.
    """

    def __init__(
        self,
        cfg: Configuration,
        session: Any,
        notices: Any,
        platform: Optional[str] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.cfg = cfg
        self.session = session
        self.notices = notices
        self.platform = platform
        self.http = http or requests.Session()
        self.base = cfg.backend_base_url.rstrip("/")

    def _access_token(self) -> Optional[str]:
        if self.session is None:
            return None
        return getattr(self.session, "access_token", None) or None

    def build_url(
        self,
        endpoint_name: str,
        version: str,
        method: str = "POST",
        payload: Any = None,
        is_multipart: bool = False,
    ) -> str:
        url = f"{self.base}/{version}/{endpoint_name}"
        if method == "GET" and not is_multipart and payload:
            url = f"{url}?{urllib.parse.urlencode(payload, doseq=True)}"
        return url

    def dispatch(
        self,
        endpoint_name: str,
        version: str,
        *,
        method: str = "POST",
        payload: Any = None,
        is_multipart: bool = False,
    ) -> Any:
        """Call ``{base}/{version}/{endpoint_name}`` and return the decoded JSON body.

        Raises ClassifiedError for a missing token or a non-2xx response.
        Transport exceptions from requests propagate unchanged.
        """
        if version not in API_VERSIONS:
            raise ValueError(f"unknown api version: {version}")
        method = method.upper()

        token = self._access_token()
        if not token:
            logger.warning("api call {} blocked: no access token", endpoint_name)
            raise ClassifiedError(
                ErrorCode.UNAUTHENTICATED,
                "User is not authenticated: access token is missing.",
            )

        url = self.build_url(endpoint_name, version, method, payload, is_multipart)
        headers: Dict[str, str] = {
            "x-app-version": self.cfg.app_version,
            "Authorization": f"Bearer {token}",
        }
        if not is_multipart:
            headers["Content-Type"] = "application/json"

        kwargs: Dict[str, Any] = {"headers": headers, "timeout": self.cfg.client_timeout}
        if method == "POST":
            if is_multipart:
                # requests writes the boundary Content-Type itself
                kwargs["files"] = payload
            else:
                kwargs["data"] = json.dumps(payload if payload is not None else {})

        resp = self.http.request(method, url, **kwargs)
        request_id = resp.headers.get("x-request-id")

        if not resp.ok:
            raise self._classify(endpoint_name, resp, request_id)

        logger.bind(
            event=f"api_call_{endpoint_name}",
            payload={
                "requestPayload": MULTIPART_PLACEHOLDER if is_multipart else payload,
                "endpoint": url,
                "method": method,
                "version": version,
                "requestId": request_id,
            },
        ).info("api call {} {} ok (requestId: {})", method, endpoint_name, request_id)

        return resp.json()

    def _classify(
        self, endpoint_name: str, resp: requests.Response, request_id: Optional[str]
    ) -> ClassifiedError:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        status = resp.status_code
        code = decode_error_code(status, body)
        if code is ErrorCode.HTTP_ERROR:
            message = f"API call to {endpoint_name} failed with status {status}"
        else:
            message = body.get("message") or (
                f"API call to {endpoint_name} failed with status {status} (requestId: {request_id})"
            )

        notice = notice_for(code, self.cfg, self.platform)
        if notice is not None:
            self.notices.show(notice)

        logger.warning(
            "api call {} failed code={} status={} requestId={}",
            endpoint_name, code.value, status, request_id,
        )
        return ClassifiedError(code, message, request_id=request_id, status=status)
