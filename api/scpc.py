"""
Client for the SCPC "promoção comercial" export API.

The export endpoint accepts year, state, CNPJ, organization name, modality,
certificate number and campaign name. Date range and status are not
supported upstream, so they are applied locally after the fetch
(``apply_local_filters``). When those local filters are present and the
general query comes back small, ``fetch_with_strategy`` widens the net by
querying each modality separately and merging by campaign number.

``fetch_via_proxy`` requests the same URL through a CORS proxy
(allorigins-style: ``{"contents": "<json text>"}``) and is the last remote
fallback before sample data.
"""

import json
import logging
import re
from datetime import date, datetime, time, timezone
from typing import Any
from urllib.parse import quote, urlencode

import requests

from utils.config import AppConfig, KnownValues
from utils.http import SessionManager
from utils.query import CampaignFilters, build_pagination, pagination_info

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)")

STRATEGY_MIN_RESULTS = 100
STRATEGY_MAX_RESULTS = 5000


class ScpcError(RuntimeError):
    """Transport or payload failure talking to the SCPC API (or its proxy)."""


def normalize_payload(data: Any) -> list[dict[str, Any]]:
    """Extract the campaign list from whatever envelope the API returned.

    Accepts a bare list, ``{"promocoes": [...]}``, ``{"data": [...]}``, or
    any object with a list-valued property (the first one wins). Entries
    that are not objects (error strings, nulls) are dropped.
    """
    return [r for r in _payload_list(data) if isinstance(r, dict)]


def _payload_list(data: Any) -> list:
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []
    for key in ("promocoes", "data"):
        if isinstance(data.get(key), list):
            return data[key]
    for value in data.values():
        if isinstance(value, list):
            return value
    return []


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    text = str(value).strip().replace("Z", "+00:00")
    # fromisoformat on 3.10 only takes 3 or 6 fractional digits
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("unparseable record date %r, keeping record", value)
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_day(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        logger.warning("ignoring unparseable date filter %r", value)
        return None


def apply_local_filters(
    records: list[dict[str, Any]], filters: CampaignFilters
) -> list[dict[str, Any]]:
    """Apply date range and status filters to SCPC records.

    A record is dropped when it starts before ``dataInicio`` (00:00:00),
    ends after ``dataFim`` (end of day) or has a different status. Records
    lacking the compared field are kept.
    """
    start_day = _parse_day(filters.data_inicio)
    end_day = _parse_day(filters.data_fim)
    start_bound = datetime.combine(start_day, time.min) if start_day else None
    end_bound = datetime.combine(end_day, time.max) if end_day else None

    kept = []
    for record in records:
        if start_bound is not None:
            inicio = _parse_datetime(record.get("dataInicio"))
            if inicio is not None and inicio < start_bound:
                continue
        if end_bound is not None:
            fim = _parse_datetime(record.get("dataFim"))
            if fim is not None and fim > end_bound:
                continue
        if filters.situacao and record.get("situacao"):
            if record["situacao"] != filters.situacao:
                continue
        kept.append(record)
    return kept


def paginate(records: list[dict[str, Any]], page: int, limit: int) -> dict[str, Any]:
    """Slice *records* into one page with the shared pagination block."""
    limit, offset = build_pagination(page, limit)
    return {
        "promocoes": records[offset:offset + limit],
        "pagination": pagination_info(page, limit, len(records)),
    }


class ScpcClient:
    """Thin wrapper over the SCPC export endpoint."""

    def __init__(
        self,
        base_url: str = AppConfig.DEFAULT_SCPC_URL,
        proxy_url: str = AppConfig.DEFAULT_PROXY_URL,
        timeout: float = 30.0,
        session_manager: SessionManager | None = None,
    ) -> None:
        self.base_url = base_url
        self.proxy_url = proxy_url
        self.timeout = timeout
        self._sessions = session_manager or SessionManager()

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "ScpcClient":
        return cls(
            base_url=cfg.scpc_api_url,
            proxy_url=cfg.scpc_proxy_url,
            timeout=cfg.scpc_timeout,
        )

    def close(self) -> None:
        self._sessions.close()

    def _params(self, filters: CampaignFilters, modalidade: str | None) -> dict[str, str]:
        params = filters.to_remote_params()
        if modalidade:
            params["modalidade"] = modalidade
        return params

    def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        try:
            response = self._sessions.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise ScpcError(f"SCPC request failed: {exc}") from exc

    def fetch(
        self, filters: CampaignFilters, modalidade: str | None = None
    ) -> list[dict[str, Any]]:
        """Fetch campaigns for the remote-supported filters."""
        params = self._params(filters, modalidade)
        logger.info("scpc: GET %s params=%s", self.base_url, params)
        return normalize_payload(self._get_json(self.base_url, params))

    def fetch_with_strategy(self, filters: CampaignFilters) -> list[dict[str, Any]]:
        """General fetch, widened per modality when local filters need more rows.

        Raises ScpcError only when no request at all succeeded.
        """
        records: list[dict[str, Any]] = []
        succeeded = False
        try:
            records = self.fetch(filters)
            succeeded = True
            logger.info("scpc strategy: general query returned %d", len(records))
        except ScpcError as exc:
            logger.warning("scpc strategy: general query failed: %s", exc)

        widen = (
            filters.has_local_filters
            and not filters.modalidade
            and len(records) < STRATEGY_MIN_RESULTS
        )
        if widen:
            seen = {r.get("numeroPromocao") for r in records}
            for modalidade in KnownValues.MODALIDADES:
                try:
                    extra = self.fetch(filters, modalidade)
                except ScpcError as exc:
                    logger.warning("scpc strategy: modality %s failed: %s", modalidade, exc)
                    continue
                succeeded = True
                new = [r for r in extra if r.get("numeroPromocao") not in seen]
                seen.update(r.get("numeroPromocao") for r in new)
                records.extend(new)
                logger.info("scpc strategy: %s +%d (total %d)", modalidade, len(new), len(records))
                if len(records) > STRATEGY_MAX_RESULTS:
                    break

        if not succeeded:
            raise ScpcError("SCPC API unavailable")
        return records

    def fetch_via_proxy(self, filters: CampaignFilters) -> list[dict[str, Any]]:
        """Fetch the export URL through the CORS proxy."""
        params = self._params(filters, None)
        target = f"{self.base_url}?{urlencode(params)}" if params else self.base_url
        url = f"{self.proxy_url}{quote(target, safe='')}"
        logger.info("scpc proxy: GET %s", url)
        envelope = self._get_json(url)
        contents = envelope.get("contents") if isinstance(envelope, dict) else None
        if not contents:
            raise ScpcError("Proxy retornou dados vazios")
        try:
            payload = json.loads(contents)
        except ValueError as exc:
            raise ScpcError(f"Proxy returned invalid JSON: {exc}") from exc
        return normalize_payload(payload)
