# providers/services/provider_client.py

"""
UPSTREAM PROVIDER CLIENT

One endpoint per provider, one form-encoded POST per action:

    key=<secret>&action=add&service=<id>&link=<url>&quantity=<n>
    key=<secret>&action=status&order=<provider order id>
    key=<secret>&action=balance
    key=<secret>&action=services

GUARANTEES:
- Public methods NEVER raise for ordinary upstream failure (HTTP error,
  timeout, non-JSON body, provider `error` payload). They return a result
  object with `error` set; the caller owns retry policy.
- Provider status vocabulary is normalized into exactly five canonical
  states (see map_provider_status).
- Every call is bounded by a per-action timeout (settings.PROVIDERS["TIMEOUTS"]).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from django.conf import settings

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")


# ============================================================
# ACTIONS + CANONICAL STATUS
# ============================================================


class ProviderAction(str, Enum):
    ADD = "add"
    STATUS = "status"
    BALANCE = "balance"
    SERVICES = "services"


class CanonicalStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PARTIAL = "partial"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_STATUS_ALIASES = {
    "completed": CanonicalStatus.COMPLETED,
    "complete": CanonicalStatus.COMPLETED,
    "processing": CanonicalStatus.PROCESSING,
    "in progress": CanonicalStatus.PROCESSING,
    "partial": CanonicalStatus.PARTIAL,
    "cancelled": CanonicalStatus.CANCELLED,
    "canceled": CanonicalStatus.CANCELLED,
}

DEFAULT_TIMEOUTS = {
    ProviderAction.STATUS: 15.0,
    ProviderAction.BALANCE: 15.0,
    ProviderAction.ADD: 30.0,
    ProviderAction.SERVICES: 30.0,
}


def map_provider_status(raw) -> CanonicalStatus:
    """
    Case-insensitive provider status → canonical status.
    Anything unrecognized (including None/blank) is PENDING.
    """
    key = str(raw or "").strip().lower()
    return _STATUS_ALIASES.get(key, CanonicalStatus.PENDING)


# ============================================================
# RESULTS (one typed result per action)
# ============================================================


@dataclass(frozen=True)
class PlaceOrderResult:
    provider_order_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return bool(self.provider_order_id) and not self.error


@dataclass(frozen=True)
class StatusResult:
    status: CanonicalStatus = CanonicalStatus.PENDING
    raw_status: str = ""
    start_count: int = 0
    remains: int = 0
    delivered_count: int = 0
    completion_percentage: Decimal = Decimal("0.00")
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.error


@dataclass(frozen=True)
class BalanceResult:
    balance: Decimal = Decimal("0.00")
    currency: str = "USD"
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.error


@dataclass(frozen=True)
class ProviderServiceItem:
    service: str
    name: str
    category: str
    rate: Decimal
    min: int
    max: int
    type: str = ""
    description: str = ""


@dataclass(frozen=True)
class CatalogResult:
    services: list[ProviderServiceItem] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.error


# ============================================================
# PARSING HELPERS
# ============================================================


class ProviderRequestError(Exception):
    """Transport or payload failure. Never escapes the public client methods."""


def _to_int(value, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, TypeError):
        return default


def _to_decimal(value, default: Decimal = Decimal("0.00")) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return default


def _safe_preview(text: str, limit: int = 300) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "...(truncated)"


def derive_progress(payload: dict) -> dict:
    """
    Progress fields from a status payload.

    - start_count, remains: ints, default 0
    - current (or current_count) defaults to start_count
    - delivered_count = max(0, current - start_count)
    - total quantity = charge, else start_count + remains
    - completion_percentage = 100 * delivered / total, 2dp, clamped to [0, 100]
    """
    start_count = max(0, _to_int(payload.get("start_count")))
    remains = max(0, _to_int(payload.get("remains")))

    current_raw = payload.get("current")
    if current_raw in (None, ""):
        current_raw = payload.get("current_count")
    current = _to_int(current_raw, default=start_count)

    delivered = max(0, current - start_count)

    total = _to_int(payload.get("charge"))
    if total <= 0:
        total = start_count + remains

    percentage = Decimal("0.00")
    if total > 0:
        percentage = (Decimal(delivered) * HUNDRED / Decimal(total)).quantize(
            TWOPLACES, rounding=ROUND_HALF_UP
        )
        percentage = min(max(percentage, Decimal("0.00")), HUNDRED.quantize(TWOPLACES))

    return {
        "start_count": start_count,
        "remains": remains,
        "delivered_count": delivered,
        "completion_percentage": percentage,
    }


def _payload_error(payload) -> str | None:
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return None


# ============================================================
# CLIENT
# ============================================================


class ProviderClient:
    """
    Stateless HTTP client; one instance can serve every provider.

    `timeouts` overrides the per-action defaults (keys: ProviderAction or its value).
    """

    def __init__(self, timeouts: dict | None = None):
        configured = dict(getattr(settings, "PROVIDERS", {}).get("TIMEOUTS", {}) or {})
        configured.update(timeouts or {})

        self.timeouts = dict(DEFAULT_TIMEOUTS)
        for key, value in configured.items():
            self.timeouts[ProviderAction(getattr(key, "value", key))] = float(value)

    # --------------------------------------------------
    # TRANSPORT
    # --------------------------------------------------

    def _post(self, provider, action: ProviderAction, **fields) -> Any:
        form = {"key": provider.api_key, "action": action.value}
        form.update({k: str(v) for k, v in fields.items() if v is not None})

        req = Request(
            provider.api_url,
            data=urlencode(form).encode("utf-8"),
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
                "User-Agent": "smm-panel-backend/1.0",
            },
            method="POST",
        )

        try:
            with urlopen(req, timeout=self.timeouts[action]) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            body = ""
            try:
                body = e.read().decode("utf-8", errors="replace")
            except OSError:
                body = ""
            raise ProviderRequestError(
                f"HTTP {e.code} from provider: {_safe_preview(body) or e.reason}"
            ) from e
        except URLError as e:
            raise ProviderRequestError(f"Provider unreachable: {e.reason}") from e
        except (TimeoutError, OSError, HTTPException) as e:
            raise ProviderRequestError(f"Provider request failed: {e}") from e

        try:
            return json.loads(raw)
        except ValueError as e:
            raise ProviderRequestError(
                f"Provider returned non-JSON: {_safe_preview(raw)}"
            ) from e

    def _call(self, provider, action: ProviderAction, **fields):
        """_post + logging; returns (payload, error)."""
        try:
            payload = self._post(provider, action, **fields)
        except ProviderRequestError as exc:
            logger.warning(
                "Provider %s call failed: %s",
                action.value,
                exc,
                extra={"provider_id": getattr(provider, "pk", None)},
            )
            return None, str(exc)
        return payload, None

    # --------------------------------------------------
    # ACTIONS
    # --------------------------------------------------

    def place_order(self, provider, provider_service_id, target_url, quantity) -> PlaceOrderResult:
        payload, error = self._call(
            provider,
            ProviderAction.ADD,
            service=provider_service_id,
            link=target_url,
            quantity=int(quantity),
        )
        if error:
            return PlaceOrderResult(error=f"API Error: {error}")

        if isinstance(payload, dict) and payload.get("order") not in (None, ""):
            return PlaceOrderResult(provider_order_id=str(payload["order"]))

        return PlaceOrderResult(error=_payload_error(payload) or "Unknown error occurred")

    def check_status(self, provider, provider_order_id) -> StatusResult:
        payload, error = self._call(provider, ProviderAction.STATUS, order=provider_order_id)
        if error:
            return StatusResult(error=f"API Error: {error}")

        if not isinstance(payload, dict) or not payload:
            return StatusResult(error="No data received")

        payload_error = _payload_error(payload)
        if payload_error:
            return StatusResult(error=payload_error)

        raw_status = str(payload.get("status") or "")
        return StatusResult(
            status=map_provider_status(raw_status),
            raw_status=raw_status,
            **derive_progress(payload),
        )

    def fetch_balance(self, provider) -> BalanceResult:
        payload, error = self._call(provider, ProviderAction.BALANCE)
        if error:
            return BalanceResult(error=f"API Error: {error}")

        if not isinstance(payload, dict) or payload.get("balance") in (None, ""):
            return BalanceResult(error=_payload_error(payload) or "No balance in response")

        return BalanceResult(
            balance=_to_decimal(payload.get("balance")).quantize(TWOPLACES, rounding=ROUND_HALF_UP),
            currency=str(payload.get("currency") or "USD"),
        )

    def fetch_catalog(self, provider) -> CatalogResult:
        payload, error = self._call(provider, ProviderAction.SERVICES)
        if error:
            return CatalogResult(error=f"API Error: {error}")

        if not isinstance(payload, list):
            return CatalogResult(
                error=_payload_error(payload) or "Invalid response format from provider"
            )

        items = []
        for row in payload:
            if not isinstance(row, dict) or row.get("service") in (None, ""):
                continue
            items.append(
                ProviderServiceItem(
                    service=str(row["service"]),
                    name=str(row.get("name") or "").strip(),
                    category=str(row.get("category") or "other").strip(),
                    rate=_to_decimal(row.get("rate")),
                    min=_to_int(row.get("min"), default=1),
                    max=_to_int(row.get("max"), default=1),
                    type=str(row.get("type") or ""),
                    description=str(row.get("description") or ""),
                )
            )

        return CatalogResult(services=items)
