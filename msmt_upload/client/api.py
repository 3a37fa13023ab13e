from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

from ..models.lookup_result import LookupResult
from ..models.payload import MeasurementPayload
from .errors import MAX_RAW_MESSAGE_LENGTH, SubmissionError, extract_error_message

logger = logging.getLogger(__name__)

"""HTTP client for the measuring point lookup and measurement document services.

Creation flow per payload:
1. GET on the document collection with ``X-CSRF-Token: Fetch`` -> token header
2. POST the JSON payload with the token (session cookies carry the CSRF session)

Nothing here retries; the caller decides what a failure means.
"""

__all__ = [
    "DEFAULT_DOCUMENT_PATH",
    "DEFAULT_LOOKUP_PATH",
    "CreationResponse",
    "MeasurementDocumentClient",
]

DEFAULT_DOCUMENT_PATH = (
    "/sap/opu/odata4/sap/api_measurementdocument/srvd_a2x/sap/MeasurementDocument/0001/MeasurementDocument"
)
DEFAULT_LOOKUP_PATH = "/sap/opu/odata/sap/ZC_MEASURINGPOINTDATA_CDS/zc_measuringpointdata"
DEFAULT_TIMEOUT = 30.0

CSRF_HEADER = "X-CSRF-Token"


@dataclass(frozen=True)
class CreationResponse:
    """Successful creation result."""
    status_code: int
    document: str | None  # 採番された測定文書番号 (返却時のみ)
    body: Any = None

    @property
    def message(self) -> str:
        if self.document:
            return f"SUCCESS - Doc: {self.document}"
        return "SUCCESS"


def _parse_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _truncate(text: str) -> str:
    if len(text) > MAX_RAW_MESSAGE_LENGTH:
        return text[:MAX_RAW_MESSAGE_LENGTH] + "..."
    return text


class MeasurementDocumentClient:
    """Thin wrapper around a ``requests.Session`` bound to one backend."""

    def __init__(
        self,
        base_url: str,
        *,
        bearer_token: str | None = None,
        document_path: str = DEFAULT_DOCUMENT_PATH,
        lookup_path: str = DEFAULT_LOOKUP_PATH,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.document_url = self.base_url + document_path
        self.lookup_url = self.base_url + lookup_path
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.verify = verify
        self.session.headers.update({"Accept": "application/json"})
        if bearer_token:
            self.session.headers["Authorization"] = f"Bearer {bearer_token}"

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> MeasurementDocumentClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # --- creation service -------------------------------------------------

    def fetch_csrf_token(self) -> str | None:
        """Fetch the anti-forgery token; ``None`` when the service sends none.

        Raises:
            SubmissionError: non-2xx response
            requests.RequestException: transport failure
        """
        resp = self.session.get(
            self.document_url,
            headers={CSRF_HEADER: "Fetch"},
            timeout=self.timeout,
        )
        if not resp.ok:
            raise SubmissionError(
                f"CSRF GET failed HTTP {resp.status_code} {_truncate(resp.text or '')}".rstrip(),
                status_code=resp.status_code,
            )
        return resp.headers.get(CSRF_HEADER)

    def create_document(self, payload: MeasurementPayload | dict[str, Any]) -> CreationResponse:
        """Create one measurement document.

        Raises:
            SubmissionError: for every failure (token fetch, HTTP error, transport);
                the message is ready for the outcome log
        """
        wire = payload.to_wire() if isinstance(payload, MeasurementPayload) else dict(payload)
        try:
            token = self.fetch_csrf_token()
            headers = {"Content-Type": "application/json"}
            if token:
                headers[CSRF_HEADER] = token
            resp = self.session.post(
                self.document_url,
                data=json.dumps(wire),
                headers=headers,
                timeout=self.timeout,
            )
        except SubmissionError as e:
            raise SubmissionError(f"ERROR: {e}", status_code=e.status_code) from e
        except requests.RequestException as e:
            raise SubmissionError(f"ERROR: {e}") from e

        text = resp.text or ""
        body = _parse_body(text)
        if resp.ok:
            document = body.get("MeasurementDocument") if isinstance(body, dict) else None
            logger.debug("created document mp=%s doc=%s", wire.get("MeasuringPoint"), document)
            return CreationResponse(status_code=resp.status_code, document=document, body=body)

        message = extract_error_message(body, text)
        raise SubmissionError(f"HTTP {resp.status_code} - {message}", status_code=resp.status_code)

    def latest_reading(self, measuring_point: str) -> float | None:
        """Newest recorded counter reading (or reading) for a measuring point.

        Returns ``None`` when there is no document or the query fails.
        """
        if not measuring_point:
            return None
        params = {
            "$filter": f"MeasuringPoint eq '{measuring_point}'",
            "$orderby": "MsmtRdngDate desc,MsmtRdngTime desc",
            "$top": "1",
            "$select": "MeasurementCounterReading,MeasurementReading,MsmtRdngDate,MsmtRdngTime",
        }
        try:
            resp = self.session.get(self.document_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("latest reading query failed mp=%s: %s", measuring_point, e)
            return None
        if not resp.ok:
            logger.warning("latest reading query failed mp=%s HTTP %s", measuring_point, resp.status_code)
            return None
        body = _parse_body(resp.text or "")
        records = body.get("value") if isinstance(body, dict) else None
        if not isinstance(records, list) or not records:
            return None
        rec = records[0]
        for key in ("MeasurementCounterReading", "MeasurementReading"):
            value = rec.get(key)
            if value is None:
                continue
            try:
                return float(value)
            except (TypeError, ValueError):
                return None
        return None

    # --- lookup service ---------------------------------------------------

    def lookup_measuring_point(self, measuring_point: str) -> LookupResult:
        """Read description / position / unit of a measuring point.

        Transport and HTTP errors are reported as ``found=False`` with ``error`` set.
        """
        url = f"{self.lookup_url}('{quote(str(measuring_point), safe='')}')"
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            return LookupResult(found=False, error=str(e))
        if not resp.ok:
            return LookupResult(found=False, error=f"HTTP {resp.status_code}")
        body = _parse_body(resp.text or "")
        if not isinstance(body, dict):
            return LookupResult(found=False, error="unexpected response body")
        # OData v2 は {"d": {...}} で包む
        data = body.get("d", body)
        if not isinstance(data, dict):
            return LookupResult(found=False, error="unexpected response body")
        return LookupResult(
            found=True,
            description=str(data.get("MeasuringPointDescription") or ""),
            position_number=str(data.get("MeasuringPointPositionNumber") or ""),
            unit_of_measure=data.get("MeasurementRangeUnit") or data.get("MeasuringPointUoM") or None,
        )
