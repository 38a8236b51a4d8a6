"""Finantech - financial-management backend for small businesses."""

__version__ = "0.1.0"

from finantech.ai import GeminiClient, GeminiProxy, ProxyClient
from finantech.charges import Charges, calculate_charges
from finantech.config import configure_logging, get_settings
from finantech.documents import format_document, is_valid_document
from finantech.events import EventPublisher, get_publisher
from finantech.reconciliation import ReconciliationSession
from finantech.rent import generate_and_adjust_rent_receivables, recalculate_for_index
from finantech.store import AppState, JsonStore

__all__ = [
    # Version
    "__version__",
    # State
    "AppState",
    "JsonStore",
    # Domain
    "Charges",
    "calculate_charges",
    "format_document",
    "is_valid_document",
    "ReconciliationSession",
    "generate_and_adjust_rent_receivables",
    "recalculate_for_index",
    # AI proxy
    "GeminiClient",
    "GeminiProxy",
    "ProxyClient",
    # Events
    "EventPublisher",
    "get_publisher",
    # Config
    "get_settings",
    "configure_logging",
]
