"""Active alert lookups against the Alerta API."""

from __future__ import annotations

import logging

import httpx
from pydantic import SecretStr

from xana_assist.types import AlertResult

logger = logging.getLogger(__name__)


class AlertFetcher:
    """Lists alerts for one resource; network failures yield no alerts."""

    def __init__(
        self,
        client: httpx.Client,
        *,
        api_url: str | None,
        api_key: SecretStr | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    def fetch(self, asset_urn: str) -> AlertResult:
        if not self.api_url:
            logger.warning("Alert API URL is not configured; returning no alerts for %s", asset_urn)
            return AlertResult(alerts=[], asset_urn=asset_urn)

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key is not None:
            headers["Authorization"] = f"Key {self.api_key.get_secret_value()}"

        alerts: list[dict] = []
        try:
            response = self.client.get(
                self.api_url,
                params={"resource": asset_urn},
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
            if isinstance(payload, dict) and isinstance(payload.get("alerts"), list):
                alerts = payload["alerts"]
        except (httpx.HTTPError, ValueError):
            logger.exception("Error fetching alerts for %s", asset_urn)

        logger.info("Fetched %d alerts for %s", len(alerts), asset_urn)
        return AlertResult(alerts=alerts, asset_urn=asset_urn)
