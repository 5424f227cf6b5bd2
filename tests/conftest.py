"""
Shared pytest fixtures for the report engine test suite.
"""
import pytest

from data_sources import AgencyDataStore
from field_catalog import FieldCatalog
from report_engine import ReportEngine
from report_models import FieldType, SelectedField


# --- Data Fixtures ---

@pytest.fixture
def expense_records():
    """The three expenses used by the end-to-end scenario."""
    return [
        {"id": "exp-1", "agentId": "agent-1", "category": "legal", "amount": 500,
         "date": "2024-01-20", "status": "paid"},
        {"id": "exp-2", "agentId": "agent-1", "category": "maintenance", "amount": 1200,
         "date": "2024-02-11", "status": "paid"},
        {"id": "exp-3", "agentId": "agent-2", "category": "utility", "amount": 300,
         "date": "2024-02-28", "status": "pending"},
    ]


@pytest.fixture
def deal_records():
    return [
        {
            "id": "deal-1",
            "title": "Villa Sale",
            "agents": {"primary": {"id": "agent-1"}, "secondary": {"id": "agent-2"}},
            "financial": {"agreedPrice": 45000000},
            "lifecycle": {"status": "active"},
            "metadata": {"createdAt": "2024-01-15T09:30:00"},
        },
        {
            "id": "deal-2",
            "title": "Apartment Sale",
            "agents": {"primary": {"id": "agent-2"}},
            "financial": {"agreedPrice": 18500000},
            "lifecycle": {"status": "completed"},
            "metadata": {"createdAt": "2024-02-03T14:00:00"},
        },
    ]


@pytest.fixture
def store(expense_records, deal_records):
    """In-memory agency data snapshot."""
    return AgencyDataStore(
        deals=deal_records,
        properties=[
            {"id": "prop-1", "title": "Corner Villa", "price": 45000000, "area": 500, "type": "house",
             "status": "sold", "createdBy": "agent-1", "sharedWith": []},
            {"id": "prop-2", "title": "Garden Apartment", "price": 18500000, "area": 180, "type": "apartment",
             "status": "available", "createdBy": "agent-2", "sharedWith": ["agent-1"]},
            {"id": "prop-3", "title": "Plot", "price": 9200000, "area": 250, "type": "plot",
             "status": "available", "createdBy": "agent-2", "sharedWith": []},
        ],
        expenses=expense_records,
        commissions=[
            {"id": "com-1", "agentId": "agent-1", "category": "sale", "amount": 450000, "status": "approved"},
            {"id": "com-2", "agentId": "agent-2", "category": "sale", "amount": 185000, "status": "pending"},
        ],
    )


# --- Engine Fixtures ---

@pytest.fixture
def catalog():
    return FieldCatalog.default()


@pytest.fixture
def engine(store, catalog):
    """Report engine over the in-memory store."""
    return ReportEngine(store.connector(), catalog=catalog)


@pytest.fixture
def expense_fields():
    """amount (currency) and category (text), in that order."""
    return [
        SelectedField("amount", "expenses", "amount", "Amount", FieldType.CURRENCY),
        SelectedField("category", "expenses", "category", "Category", FieldType.TEXT),
    ]
