"""
Pytest fixtures for the procure kernel test suite.

Provides:
- Structured logging configured once, LogContext cleared per test
- Deterministic clock, organisations and party snapshots
- Document factories for every document type
- In-memory repository / service fixtures
- SQLite in-memory database sessions for the SQL repository tests
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from procure_config import get_active_config
from procure_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from procure_kernel.domain.clock import DeterministicClock
from procure_kernel.domain.documents import (
    FinancialAdjustments,
    LineItem,
    PackagingDetails,
    PartySnapshot,
)
from procure_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from procure_modules.billing.models import Invoice
from procure_modules.fulfillment.models import DeliveryNote, PackingList
from procure_modules.purchasing.models import Contract, PurchaseOrder
from procure_modules.sourcing.models import RFQ, Quotation
from procure_services.collaborators import InMemoryFileStore
from procure_services.document_service import DocumentService
from procure_services.repository import InMemoryDocumentRepository
from procure_services.status_machine import DocumentStatusMachine

from tests.support import BUYER_ORG, SELLER_ORG, make_line


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture procure_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, machine):
            machine.transition(rfq, "submit", BUYER_ORG)
            logs = captured_logs()
            assert any(r["message"] == "workflow_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("procure_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Parties and lines
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def buyer_party():
    return PartySnapshot(
        company_name="Acme Steel Works",
        contact_name="Dana Buyer",
        email="purchasing@acme.example",
        city="Pune",
        country="IN",
    )


@pytest.fixture
def seller_party():
    return PartySnapshot(
        company_name="Globex Industrial Supply",
        contact_name="Sam Seller",
        email="sales@globex.example",
        city="Chennai",
        country="IN",
    )


@pytest.fixture
def priced_lines():
    """Two lines totalling 900.00."""
    return (
        make_line("Steel Rod", "5", "100"),
        make_line("Steel Plate", "4", "100"),
    )


@pytest.fixture
def unpriced_lines():
    return (
        make_line("Steel Rod", "5", None),
        make_line("Steel Plate", "4", None),
    )


# =============================================================================
# Document factories
# =============================================================================


@pytest.fixture
def make_document(buyer_party, seller_party, priced_lines, unpriced_lines):
    """
    Build an unsaved document of any type with both parties identified.

    Priced types get ``priced_lines``; the others get ``unpriced_lines``
    (packing lists with packaging details).  Keyword arguments override.
    """

    def _make(model, **overrides):
        if model in (Quotation, Contract, PurchaseOrder, Invoice):
            lines = priced_lines
        elif model is PackingList:
            lines = tuple(
                LineItem(
                    product_name=line.product_name,
                    quantity=line.quantity,
                    packaging=PackagingDetails(
                        package_type="crate",
                        gross_weight="12.5",
                        net_weight="11",
                        no_of_packages=2,
                    ),
                )
                for line in unpriced_lines
            )
        else:
            lines = unpriced_lines
        values = dict(
            buyer_org_id=BUYER_ORG,
            seller_org_id=SELLER_ORG,
            buyer=buyer_party,
            seller=seller_party,
            lines=tuple(line.numbered(n) for n, line in enumerate(lines, start=1)),
        )
        values.update(overrides)
        return model(**values)

    return _make


@pytest.fixture
def rfq(make_document):
    return make_document(RFQ, project_name="Bridge retrofit")


@pytest.fixture
def quotation(make_document):
    return make_document(
        Quotation,
        adjustments=FinancialAdjustments(tax_percentage=Decimal("5")),
        payment_terms="Net 30",
        delivery_terms="FOB Chennai",
    )


@pytest.fixture
def invoice(make_document):
    return make_document(
        Invoice,
        adjustments=FinancialAdjustments(tax_percentage=Decimal("5")),
    )


@pytest.fixture
def all_document_models():
    return (RFQ, Quotation, Contract, PurchaseOrder, DeliveryNote, PackingList, Invoice)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def machine(deterministic_clock):
    return DocumentStatusMachine(clock=deterministic_clock)


@pytest.fixture
def repository():
    return InMemoryDocumentRepository()


@pytest.fixture
def file_store():
    return InMemoryFileStore()


@pytest.fixture
def engine_config():
    return get_active_config()


@pytest.fixture
def service(repository, deterministic_clock, engine_config, file_store):
    return DocumentService(
        repository,
        config=engine_config,
        clock=deterministic_clock,
        file_store=file_store,
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_session():
    """A session on a fresh SQLite in-memory database."""
    init_engine_from_url("sqlite://")
    create_tables()
    session = get_session()
    yield session
    session.close()
    drop_tables()
    reset_engine()
