"""Prompt builders for the AI proxy endpoints.

Prompts are written in Portuguese, the language of the dashboard. Each
builder takes validated records and returns the complete prompt text.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from finantech.dates import parse_date
from finantech.models import (
    BankTransaction,
    CashFlowData,
    DebtorCustomer,
    SystemTransaction,
    Transaction,
    TransactionStatus,
    to_wire_list,
)


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling settings used for one endpoint."""

    temperature: float
    max_output_tokens: int | None = None
    thinking_budget: int | None = None


DASHBOARD_INSIGHT = GenerationOptions(temperature=0.8, max_output_tokens=100, thinking_budget=50)
FINANCIAL_ANALYSIS = GenerationOptions(temperature=0.5)
COST_CUTTING = GenerationOptions(temperature=0.7)
TAX_REGIME = GenerationOptions(temperature=0.4)
COLLECTION_STRATEGY = GenerationOptions(temperature=0.7)
RECONCILE = GenerationOptions(temperature=0.1)
SCHEMA = GenerationOptions(temperature=0.1)

RECONCILE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "bankTxId": {"type": "STRING"},
            "systemTxId": {"type": "STRING"},
            "reason": {"type": "STRING"},
        },
        "required": ["bankTxId", "systemTxId", "reason"],
    },
}


def _brl(value: Decimal | float) -> str:
    return f"R$ {Decimal(str(value)):.2f}"


def _total(transactions: Sequence[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions), Decimal("0"))


def dashboard_summary(
    payables: Sequence[Transaction],
    receivables: Sequence[Transaction],
    today: date | None = None,
) -> str:
    """Summarize overdue items and payables due within the next seven days."""
    today = today or date.today()
    next_week = today + timedelta(days=7)

    overdue_payables = [p for p in payables if p.status == TransactionStatus.OVERDUE]
    due_soon_payables = []
    for p in payables:
        if p.status != TransactionStatus.PENDING:
            continue
        due_date = parse_date(p.due_date)
        if due_date is not None and today < due_date <= next_week:
            due_soon_payables.append(p)
    overdue_receivables = [r for r in receivables if r.status == TransactionStatus.OVERDUE]

    return "\n".join(
        [
            f"- Contas a pagar vencidas: {len(overdue_payables)} "
            f"(Total: {_brl(_total(overdue_payables))})",
            f"- Contas a pagar vencendo nos próximos 7 dias: {len(due_soon_payables)} "
            f"(Total: {_brl(_total(due_soon_payables))})",
            f"- Contas a receber vencidas: {len(overdue_receivables)} "
            f"(Total: {_brl(_total(overdue_receivables))})",
        ]
    )


def dashboard_insight(
    payables: Sequence[Transaction],
    receivables: Sequence[Transaction],
    today: date | None = None,
) -> str:
    summary = dashboard_summary(payables, receivables, today)
    return (
        "Você é um assistente financeiro proativo para uma pequena empresa.\n"
        "Com base no resumo de dados a seguir, forneça UM insight acionável, útil e "
        "muito conciso (máximo 2 frases).\n"
        "Comece a resposta com um emoji relevante (ex: 💡, ⚠️, ✅, 📈).\n"
        "O tom deve ser direto e prestativo. Foque no que é mais urgente ou importante.\n"
        f"Dados:\n{summary}"
    )


def financial_analysis(
    cash_flow: Sequence[CashFlowData],
    receivables: Sequence[Transaction],
    payables: Sequence[Transaction],
) -> str:
    if not cash_flow:
        raise ValueError("cashFlow must contain at least one month")

    total_income = sum((item.receitas for item in cash_flow), Decimal("0"))
    total_expenses = sum((item.despesas for item in cash_flow), Decimal("0"))
    final_balance = cash_flow[-1].saldo
    pending_receivables = _total(
        [t for t in receivables if t.status == TransactionStatus.PENDING]
    )
    pending_payables = _total([t for t in payables if t.status == TransactionStatus.PENDING])

    summary = (
        "## Resumo Financeiro da Empresa (últimos 6 meses)\n"
        f"- Receita Total: {_brl(total_income)}\n"
        f"- Despesa Total: {_brl(total_expenses)}\n"
        f"- Saldo Atual: {_brl(final_balance)}\n"
        f"- Contas a Receber (Pendente): {_brl(pending_receivables)}\n"
        f"- Contas a Pagar (Pendente): {_brl(pending_payables)}"
    )
    return (
        "Você é um consultor financeiro especialista. Com base no resumo a seguir, "
        "forneça uma análise preditiva do fluxo de caixa para os próximos 3 meses, "
        "identificando tendências, riscos e oportunidades. Forneça recomendações "
        "práticas em bullet points.\n"
        f"{summary}"
    )


def cost_cutting(payables: Sequence[Transaction]) -> str:
    expenses = "\n".join(
        f"- {p.category}: {p.description} - {_brl(p.amount)}" for p in payables
    )
    return (
        "Você é um especialista em otimização de custos. Com base na lista de despesas "
        "a seguir, sugira áreas para cortar custos sem impactar a operação. Categorize "
        "as sugestões e estime o potencial de economia.\n"
        f"Lista de Despesas:\n{expenses}"
    )


def tax_regime(monthly_revenue: Decimal | float, business_activity: str | None) -> str:
    return (
        "Você é um contador e consultor tributário brasileiro qualificado.\n"
        "Com base nos dados a seguir, gere uma análise comparativa detalhada entre os "
        "regimes tributários: Simples Nacional, Lucro Presumido e Lucro Real.\n"
        "Dados da Empresa:\n"
        f"- Faturamento Mensal Estimado: {_brl(monthly_revenue)}\n"
        f"- Atividade Principal: {business_activity or 'Serviços em geral'}\n"
        "Sua análise deve ser estruturada e clara, usando markdown. Para cada regime, inclua:\n"
        "1.  **Estimativa de Impostos:** Calcule uma estimativa dos impostos mensais. "
        "Para o Simples Nacional, considere o Anexo III (serviços). Para o Lucro "
        "Presumido, use a presunção de 32% para serviços. Para o Lucro Real, apresente "
        "cenários para margens de lucro de 10%, 20% e 30%.\n"
        "2.  **Prós e Contras.**\n"
        "3.  **Alíquota Efetiva.**\n"
        "Ao final, forneça uma **Recomendação Final** bem fundamentada."
    )


def collection_strategy(debtor: DebtorCustomer) -> str:
    history = "\n".join(
        f"- {h.date}: {h.type.upper()} - {h.summary}" for h in debtor.communication_history
    )
    return (
        'Você é um especialista em cobranças. Crie uma "Régua de Cobrança Inteligente" '
        "para o devedor a seguir.\n"
        f"- Nome: {debtor.name}\n"
        f"- Dívida Total: {_brl(debtor.total_debt)}\n"
        f"- Status Atual: {debtor.status.value}\n"
        f"- Histórico: {history or 'Nenhum.'}\n"
        "Crie um plano de ação passo a passo para os próximos 30 dias, sugerindo canais "
        "e conteúdo/roteiro. Formate usando markdown."
    )


def reconcile(
    bank_transactions: Sequence[BankTransaction],
    system_transactions: Sequence[SystemTransaction],
) -> str:
    bank_json = json.dumps(to_wire_list(list(bank_transactions)), indent=2, ensure_ascii=False)
    system_json = json.dumps(
        to_wire_list(list(system_transactions)), indent=2, ensure_ascii=False
    )
    return (
        "Você é um assistente de conciliação bancária. Encontre correspondências entre "
        "transações de extrato e lançamentos do sistema com base em valor, data próxima "
        "e descrição similar.\n"
        "Retorne um array JSON com os pares de alta confiança.\n"
        f"Extrato Bancário: {bank_json}\n"
        f"Lançamentos do Sistema: {system_json}"
    )


def schema(current_schema: str, user_prompt: str, dialect: str) -> str:
    return (
        "Você é um arquiteto de banco de dados SQL. Modifique o schema SQL a seguir no "
        f"dialeto '{dialect}' com base na solicitação do usuário.\n"
        "Retorne APENAS o script SQL completo e atualizado, sem explicações ou markdown.\n"
        f"SCHEMA ATUAL:\n---\n{current_schema}\n---\n"
        f"SOLICITAÇÃO DO USUÁRIO:\n---\n{user_prompt}\n---"
    )


def strip_sql_fences(text: str) -> str:
    """Remove markdown code fences the model may wrap around SQL."""
    return text.replace("```sql", "").replace("```", "").strip()
