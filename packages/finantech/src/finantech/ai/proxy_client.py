"""Async client for the ``POST /api/gemini`` proxy route."""

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import httpx
import structlog

from finantech.config import get_settings
from finantech.errors import ProxyClientError
from finantech.models import (
    BankTransaction,
    CashFlowData,
    DebtorCustomer,
    MatchSuggestion,
    SystemTransaction,
    Transaction,
    to_wire_list,
)

logger = structlog.get_logger(__name__)

PROXY_PATH = "/api/gemini"


class ProxyClient:
    """Typed calls to the AI proxy.

    Also serves as a reconciliation advisor through :meth:`reconcile`.
    Requests are not retried.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.proxy_url).rstrip("/")
        self._timeout = timeout or settings.proxy_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProxyClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def call(self, endpoint: str, **params: Any) -> dict[str, Any]:
        """Post ``{endpoint, ...params}`` and return the decoded body."""
        client = await self._get_client()

        try:
            response = await client.post(PROXY_PATH, json={"endpoint": endpoint, **params})
        except httpx.RequestError as e:
            logger.error("proxy_request_failed", endpoint=endpoint, error=str(e))
            raise ProxyClientError(f"Request failed: {e}") from e

        if response.status_code != 200:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            logger.warning(
                "proxy_error_response",
                endpoint=endpoint,
                status_code=response.status_code,
                details=error_detail,
            )
            message = (
                error_detail.get("error") if isinstance(error_detail, dict) else None
            ) or f"API error: {response.status_code}"
            raise ProxyClientError(message, status_code=response.status_code, details=error_detail)

        data = response.json()
        if not isinstance(data, dict):
            raise ProxyClientError("Invalid proxy response format", status_code=200, details=data)
        return data

    # === Endpoints ===

    async def dashboard_insight(
        self, payables: Sequence[Transaction], receivables: Sequence[Transaction]
    ) -> str:
        data = await self.call(
            "dashboardInsight",
            payables=to_wire_list(list(payables)),
            receivables=to_wire_list(list(receivables)),
        )
        return data.get("text") or ""

    async def financial_analysis(
        self,
        cash_flow: Sequence[CashFlowData],
        receivables: Sequence[Transaction],
        payables: Sequence[Transaction],
    ) -> str:
        data = await self.call(
            "financialAnalysis",
            cashFlow=to_wire_list(list(cash_flow)),
            receivables=to_wire_list(list(receivables)),
            payables=to_wire_list(list(payables)),
        )
        return data.get("text") or ""

    async def cost_cutting(self, payables: Sequence[Transaction]) -> str:
        data = await self.call("costCutting", payables=to_wire_list(list(payables)))
        return data.get("text") or ""

    async def tax_regime(
        self, monthly_revenue: Decimal | float, business_activity: str = ""
    ) -> str:
        data = await self.call(
            "taxRegime",
            monthlyRevenue=float(monthly_revenue),
            businessActivity=business_activity,
        )
        return data.get("text") or ""

    async def collection_strategy(self, debtor: DebtorCustomer) -> str:
        data = await self.call("collectionStrategy", debtor=debtor.to_wire())
        return data.get("text") or ""

    async def reconcile(
        self,
        bank_transactions: list[BankTransaction],
        system_transactions: list[SystemTransaction],
    ) -> list[MatchSuggestion]:
        data = await self.call(
            "reconcile",
            bankTxs=to_wire_list(list(bank_transactions)),
            systemTxs=to_wire_list(list(system_transactions)),
        )
        return [MatchSuggestion.model_validate(m) for m in data.get("matches", [])]

    async def schema(self, current_schema: str, user_prompt: str, dialect: str = "postgres") -> str:
        data = await self.call(
            "schema", currentSchema=current_schema, userPrompt=user_prompt, dialect=dialect
        )
        return data.get("schema") or ""
