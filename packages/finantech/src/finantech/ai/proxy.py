"""Endpoint dispatcher for the generative-AI proxy route."""

from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any

import structlog

from finantech.ai import prompts
from finantech.ai.client import GeminiClient
from finantech.errors import ProxyError
from finantech.models import (
    BankTransaction,
    CashFlowData,
    DebtorCustomer,
    MatchSuggestion,
    SystemTransaction,
    Transaction,
    from_wire_list,
)

logger = structlog.get_logger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class GeminiProxy:
    """Turns ``{endpoint, ...params}`` payloads into model calls.

    Text endpoints answer ``{"text": ...}``, ``reconcile`` answers
    ``{"matches": [...]}`` and ``schema`` answers ``{"schema": ...}``.
    """

    def __init__(self, client: GeminiClient | None = None):
        self._client = client
        self._handlers: dict[str, Handler] = {
            "dashboardInsight": self._dashboard_insight,
            "financialAnalysis": self._financial_analysis,
            "costCutting": self._cost_cutting,
            "taxRegime": self._tax_regime,
            "collectionStrategy": self._collection_strategy,
            "reconcile": self._reconcile,
            "schema": self._schema,
        }

    @property
    def endpoints(self) -> list[str]:
        return list(self._handlers)

    @property
    def client(self) -> GeminiClient:
        if self._client is None:
            self._client = GeminiClient()
        return self._client

    async def handle(self, payload: Any) -> dict[str, Any]:
        """Dispatch a request body to its endpoint handler.

        Raises:
            ProxyError: 400 for an unknown endpoint, 500 for any other failure.
        """
        if not isinstance(payload, dict):
            raise ProxyError(
                "Internal Server Error",
                status_code=500,
                details="Request body must be a JSON object",
            )

        params = dict(payload)
        endpoint = params.pop("endpoint", None)
        handler = self._handlers.get(endpoint) if isinstance(endpoint, str) else None
        if handler is None:
            logger.warning("invalid_endpoint", endpoint=endpoint)
            raise ProxyError("Invalid endpoint", status_code=400)

        logger.info("proxy_request", endpoint=endpoint)

        try:
            result = await handler(params)
        except ProxyError:
            raise
        except Exception as e:
            logger.exception("proxy_error", endpoint=endpoint)
            raise ProxyError("Internal Server Error", status_code=500, details=str(e)) from e

        logger.info("proxy_response", endpoint=endpoint)
        return result

    async def _text(self, prompt: str, options: prompts.GenerationOptions) -> dict[str, Any]:
        text = await self.client.generate_text(
            prompt,
            temperature=options.temperature,
            max_output_tokens=options.max_output_tokens,
            thinking_budget=options.thinking_budget,
        )
        return {"text": text}

    # === Handlers ===

    async def _dashboard_insight(self, params: dict[str, Any]) -> dict[str, Any]:
        payables = from_wire_list(Transaction, params["payables"])
        receivables = from_wire_list(Transaction, params["receivables"])
        return await self._text(
            prompts.dashboard_insight(payables, receivables), prompts.DASHBOARD_INSIGHT
        )

    async def _financial_analysis(self, params: dict[str, Any]) -> dict[str, Any]:
        cash_flow = from_wire_list(CashFlowData, params["cashFlow"])
        receivables = from_wire_list(Transaction, params["receivables"])
        payables = from_wire_list(Transaction, params["payables"])
        return await self._text(
            prompts.financial_analysis(cash_flow, receivables, payables),
            prompts.FINANCIAL_ANALYSIS,
        )

    async def _cost_cutting(self, params: dict[str, Any]) -> dict[str, Any]:
        payables = from_wire_list(Transaction, params["payables"])
        return await self._text(prompts.cost_cutting(payables), prompts.COST_CUTTING)

    async def _tax_regime(self, params: dict[str, Any]) -> dict[str, Any]:
        revenue = Decimal(str(params["monthlyRevenue"]))
        return await self._text(
            prompts.tax_regime(revenue, params.get("businessActivity")), prompts.TAX_REGIME
        )

    async def _collection_strategy(self, params: dict[str, Any]) -> dict[str, Any]:
        debtor = DebtorCustomer.model_validate(params["debtor"])
        return await self._text(
            prompts.collection_strategy(debtor), prompts.COLLECTION_STRATEGY
        )

    async def _reconcile(self, params: dict[str, Any]) -> dict[str, Any]:
        bank = from_wire_list(BankTransaction, params["bankTxs"])
        system = from_wire_list(SystemTransaction, params["systemTxs"])
        raw = await self.client.generate_json(
            prompts.reconcile(bank, system),
            prompts.RECONCILE_SCHEMA,
            temperature=prompts.RECONCILE.temperature,
        )
        matches = [MatchSuggestion.model_validate(item) for item in raw]
        return {"matches": [m.to_wire() for m in matches]}

    async def _schema(self, params: dict[str, Any]) -> dict[str, Any]:
        prompt = prompts.schema(
            params["currentSchema"], params["userPrompt"], params.get("dialect", "postgres")
        )
        text = await self.client.generate_text(prompt, temperature=prompts.SCHEMA.temperature)
        return {"schema": prompts.strip_sql_fences(text)}
