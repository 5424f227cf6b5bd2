"""
Tests for the data source connector, the agency data store and the field catalog.
"""
import json

from data_sources import SOURCE_TAG, AgencyDataStore, DataSourceConnector
from field_catalog import FieldCatalog
from report_models import AvailableField, FieldType


class TestDataSourceConnector:
    def test_records_are_tagged_copies(self, expense_records):
        connector = DataSourceConnector({"expenses": lambda user, role: expense_records})
        records = connector.fetch("expenses", "admin", "admin")
        assert [r[SOURCE_TAG] for r in records] == ["expenses"] * 3
        assert SOURCE_TAG not in expense_records[0]

    def test_unknown_source_is_empty_and_logged(self, caplog):
        connector = DataSourceConnector({})
        assert connector.fetch("leads", "admin", "admin") == []
        assert "Unknown data source: leads" in caplog.text

    def test_accessor_receives_acting_user(self):
        calls = []

        def accessor(user, role):
            calls.append((user, role))
            return []

        DataSourceConnector({"deals": accessor}).fetch("deals", "agent-7", "agent")
        assert calls == [("agent-7", "agent")]

    def test_multiple_sources_are_concatenated_in_order(self):
        connector = DataSourceConnector({
            "expenses": lambda user, role: [{"id": "e1", "amount": 1}],
            "commissions": lambda user, role: [{"id": "c1", "amount": 2}, {"id": "c2", "amount": 3}],
        })
        records = connector.fetch_all(["commissions", "unknown", "expenses"], "admin", "admin")
        assert [(r["id"], r[SOURCE_TAG]) for r in records] == [
            ("c1", "commissions"),
            ("c2", "commissions"),
            ("e1", "expenses"),
        ]


class TestAgencyDataStore:
    def test_admin_sees_everything(self, store):
        assert len(store.get_deals("agent-1", "admin")) == 2
        assert len(store.get_properties("agent-1", "admin")) == 3
        assert len(store.get_expenses("agent-1", "admin")) == 3

    def test_agent_sees_deals_as_primary_or_secondary(self, store):
        assert [d["id"] for d in store.get_deals("agent-1", "agent")] == ["deal-1"]
        assert [d["id"] for d in store.get_deals("agent-2", "agent")] == ["deal-1", "deal-2"]

    def test_agent_sees_created_or_shared_properties(self, store):
        assert [p["id"] for p in store.get_properties("agent-1", "agent")] == ["prop-1", "prop-2"]

    def test_agent_sees_own_expenses_and_commissions(self, store):
        assert [e["id"] for e in store.get_expenses("agent-2", "agent")] == ["exp-3"]
        assert [c["id"] for c in store.get_commissions("agent-1", "agent")] == ["com-1"]

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "agency.json"
        path.write_text(json.dumps({"expenses": [{"id": "e1", "agentId": "a", "amount": 5}]}))
        store = AgencyDataStore.from_json_file(str(path))
        assert store.get_expenses("a", "agent") == [{"id": "e1", "agentId": "a", "amount": 5}]
        assert store.get_deals("a", "agent") == []

    def test_connector_wires_every_source(self, store):
        connector = store.connector()
        assert set(connector.accessors) == {"deals", "properties", "expenses", "commissions"}


class TestFieldCatalog:
    def test_default_sources(self, catalog):
        assert catalog.sources() == ["deals", "properties", "expenses", "commissions"]

    def test_list_fields(self, catalog):
        fields = catalog.list_fields("expenses")
        assert [f.id for f in fields] == [
            "expense_id", "expense_amount", "expense_category", "expense_date", "expense_status",
        ]
        assert catalog.get_field("deal_price").path == "financial.agreedPrice"

    def test_unknown_source_is_empty(self, catalog):
        assert catalog.list_fields("leads") == []
        assert not catalog.knows_source("leads")

    def test_grouping_and_aggregation_flags(self, catalog):
        assert [f.id for f in catalog.groupable_fields("properties")] == ["property_type", "property_status"]
        assert [f.id for f in catalog.aggregatable_fields("properties")] == ["property_price", "property_area"]

    def test_custom_catalog(self):
        catalog = FieldCatalog([
            AvailableField("lead_score", "leads", "score", "Score", FieldType.NUMBER, allow_aggregation=True),
        ])
        assert catalog.find_by_path("leads", "score").id == "lead_score"
        assert catalog.find_by_path("leads", "stage") is None
        assert catalog.list_fields("deals") == []
