"""
Data Source Connector and Agency Data Store
Pulls role-scoped raw records for a named data source and tags them
with their origin
"""

import json
import logging
from typing import Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

SOURCE_TAG = '_source'

Accessor = Callable[[Optional[str], Optional[str]], List[Dict]]


class DataSourceConnector:
    """Fetches records for report data sources"""

    def __init__(self, accessors: Dict[str, Accessor]):
        """
        Initialize the connector

        Args:
            accessors: Mapping of source name to a callable taking
                (acting_user_id, acting_role) and returning raw records
        """
        self.accessors = dict(accessors)

    def fetch(self, source: str, acting_user_id: Optional[str], acting_role: Optional[str]) -> List[Dict]:
        """
        Fetch records for one source, tagged with the source name

        Args:
            source: Data source name
            acting_user_id: User the report runs as
            acting_role: 'admin' or 'agent'

        Returns:
            List of record copies carrying a '_source' key; empty for unknown sources
        """
        accessor = self.accessors.get(source)
        if accessor is None:
            logger.warning(f"Unknown data source: {source}")
            return []

        records = accessor(acting_user_id, acting_role) or []
        logger.debug(f"Fetched {len(records)} record(s) from {source}")
        return [{**record, SOURCE_TAG: source} for record in records]

    def fetch_all(self, sources: Iterable[str], acting_user_id: Optional[str],
                  acting_role: Optional[str]) -> List[Dict]:
        """Concatenate tagged records of every source, in source order"""
        all_records: List[Dict] = []
        for source in sources:
            all_records.extend(self.fetch(source, acting_user_id, acting_role))
        return all_records


class AgencyDataStore:
    """
    In-memory snapshot of agency records

    Provides the per-source accessors with role scoping: admins see every
    record, agents only the records they own or that are shared with them.
    """

    def __init__(self,
                 deals: Optional[List[Dict]] = None,
                 properties: Optional[List[Dict]] = None,
                 expenses: Optional[List[Dict]] = None,
                 commissions: Optional[List[Dict]] = None):
        self.deals = list(deals or [])
        self.properties = list(properties or [])
        self.expenses = list(expenses or [])
        self.commissions = list(commissions or [])

    @classmethod
    def from_dict(cls, data: Dict) -> "AgencyDataStore":
        return cls(
            deals=data.get('deals'),
            properties=data.get('properties'),
            expenses=data.get('expenses'),
            commissions=data.get('commissions'),
        )

    @classmethod
    def from_json_file(cls, filename: str) -> "AgencyDataStore":
        """
        Load a snapshot from a JSON file

        Args:
            filename: Path to a JSON object with deals, properties, expenses
                and commissions arrays

        Returns:
            AgencyDataStore instance
        """
        with open(filename, 'r') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Agency data file {filename} must contain a JSON object")

        store = cls.from_dict(data)
        logger.info(
            f"Loaded agency data from {filename}: {len(store.deals)} deals, "
            f"{len(store.properties)} properties, {len(store.expenses)} expenses, "
            f"{len(store.commissions)} commissions"
        )
        return store

    def get_deals(self, user_id: Optional[str] = None, user_role: Optional[str] = None) -> List[Dict]:
        """Deals where the agent is primary or secondary agent"""
        if not user_id or user_role == 'admin':
            return list(self.deals)

        def involves(deal: Dict) -> bool:
            agents = deal.get('agents') or {}
            primary = agents.get('primary') or {}
            secondary = agents.get('secondary') or {}
            return primary.get('id') == user_id or secondary.get('id') == user_id

        return [d for d in self.deals if involves(d)]

    def get_properties(self, user_id: Optional[str] = None, user_role: Optional[str] = None) -> List[Dict]:
        """Properties created by or shared with the agent"""
        if user_role == 'admin' or not user_id:
            return list(self.properties)

        return [
            p for p in self.properties
            if p.get('createdBy') == user_id or user_id in (p.get('sharedWith') or [])
        ]

    def get_expenses(self, user_id: Optional[str] = None, user_role: Optional[str] = None) -> List[Dict]:
        if user_role == 'admin' or not user_id:
            return list(self.expenses)
        return [e for e in self.expenses if e.get('agentId') == user_id]

    def get_commissions(self, user_id: Optional[str] = None, user_role: Optional[str] = None) -> List[Dict]:
        if user_role == 'admin' or not user_id:
            return list(self.commissions)
        return [c for c in self.commissions if c.get('agentId') == user_id]

    def connector(self) -> DataSourceConnector:
        """Connector wired to this store's accessors"""
        return DataSourceConnector({
            'deals': self.get_deals,
            'properties': self.get_properties,
            'expenses': self.get_expenses,
            'commissions': self.get_commissions,
        })
