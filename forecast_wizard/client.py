"""
HTTP client for the series validation boundary.

Transport failures (connection errors, timeouts, 5xx, a success answer
whose body is not a JSON object) are retried and then
raised as ValidationTransportError, which callers must keep apart from a
successful report that happens to contain critical breaks. A 4xx answer
is the service rejecting the request and is raised immediately as
ValidationRejectedError.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx

from forecast_wizard.config import ForecastConfig
from forecast_wizard.exceptions import ValidationRejectedError, ValidationTransportError
from forecast_wizard.settings import get_settings
from forecast_wizard.utils.logging_utils import log_io
from forecast_wizard.validation.integrity import IntegrityReport

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/validate/analyze"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, Mapping) and body.get('error'):
        return str(body['error'])
    return f"HTTP {response.status_code}"


class ValidationClient:
    """Posts rows + config to the validation service and returns its report."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.validation_url).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.validation_timeout
        self.retries = retries if retries is not None else settings.validation_retries
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(base_url=self.base_url, timeout=self.timeout)
        return self._client

    def close(self):
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> 'ValidationClient':
        return self

    def __exit__(self, *exc_info):
        self.close()

    @log_io(log_result=False)
    def analyze(self, rows: Sequence[Mapping[str, Any]], config: ForecastConfig) -> IntegrityReport:
        payload = {"data": [dict(r) for r in rows], "config": config.to_wire()}
        body = self._post(ANALYZE_PATH, payload)
        if not body.get('success'):
            raise ValidationRejectedError(body.get('error') or "Validation service returned no result")
        return IntegrityReport.from_dict(body, config)

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        attempts = self.retries + 1
        last_error = None
        for attempt in range(1, attempts + 1):
            try:
                response = self.client.post(path, json=payload, timeout=self.timeout)
            except httpx.TimeoutException as e:
                last_error = ValidationTransportError(f"Validation request timed out: {e}")
            except httpx.TransportError as e:
                last_error = ValidationTransportError(f"Could not reach validation service: {e}")
            else:
                if response.status_code >= 500:
                    last_error = ValidationTransportError(
                        _error_message(response), status_code=response.status_code
                    )
                elif response.status_code >= 400:
                    raise ValidationRejectedError(_error_message(response), status_code=response.status_code)
                else:
                    try:
                        body = response.json()
                    except ValueError as e:
                        last_error = ValidationTransportError(
                            f"Validation service returned invalid JSON: {e}", status_code=response.status_code
                        )
                    else:
                        if isinstance(body, dict):
                            return body
                        last_error = ValidationTransportError(
                            "Validation service returned a non-object body", status_code=response.status_code
                        )

            logger.warning(f"Validation attempt {attempt}/{attempts} failed: {last_error}")

        raise last_error
