"""
Database service - read access to flows and triggers
Tabelas com prefixo: zapflow_*
"""
import logging
from typing import Optional, Any, Dict, List

from ..core.exceptions import FlowNotFoundError
from ..core.supabase_client import get_supabase_client
from ..models import Flow, FlowTriggerRecord

logger = logging.getLogger(__name__)

# Prefixo das tabelas
TABLE_PREFIX = "zapflow_"

# Nomes das tabelas
FLOWS_TABLE = f"{TABLE_PREFIX}flows"
NODES_TABLE = f"{TABLE_PREFIX}flow_nodes"
EDGES_TABLE = f"{TABLE_PREFIX}flow_edges"
TRIGGERS_TABLE = f"{TABLE_PREFIX}triggers"


class FlowRepository:
    """Supabase-backed flow storage. Flows are read fresh on every call."""

    def __init__(self, client: Any = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    async def get_flow_by_id(self, flow_id: str) -> Flow:
        """
        Get a flow with all of its nodes and edges.

        Raises:
            FlowNotFoundError: If the flow does not exist
        """
        response = self.client.table(FLOWS_TABLE).select("*").eq("id", flow_id).limit(1).execute()
        if not response.data:
            raise FlowNotFoundError(flow_id)
        return self._load_graph(response.data[0])

    async def find_most_recent_active_flow(self) -> Optional[Flow]:
        """Most recently created active flow, used when no trigger matches"""
        response = (
            self.client.table(FLOWS_TABLE)
            .select("*")
            .eq("active", True)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return self._load_graph(response.data[0])

    async def list_active_triggers(self) -> List[FlowTriggerRecord]:
        """Triggers that belong to active flows, in creation order"""
        flows = self.client.table(FLOWS_TABLE).select("id").eq("active", True).execute()
        active_ids = [row["id"] for row in flows.data or []]
        if not active_ids:
            return []

        response = (
            self.client.table(TRIGGERS_TABLE)
            .select("*")
            .in_("flow_id", active_ids)
            .order("created_at")
            .execute()
        )
        return [FlowTriggerRecord(**row) for row in response.data or []]

    def _load_graph(self, row: Dict[str, Any]) -> Flow:
        flow_id = row["id"]
        nodes = self.client.table(NODES_TABLE).select("*").eq("flow_id", flow_id).execute()
        edges = self.client.table(EDGES_TABLE).select("*").eq("flow_id", flow_id).execute()

        return Flow(
            id=flow_id,
            name=row.get("name") or "",
            active=row.get("active", True),
            description=row.get("description"),
            instance_name=row.get("instance_name"),
            created_at=row.get("created_at"),
            nodes=[
                {
                    "id": node["id"],
                    "type": node["type"],
                    "position": node.get("position"),
                    "data": node.get("data") or {}
                }
                for node in nodes.data or []
            ],
            edges=[
                {
                    "id": edge["id"],
                    "source": edge["source_id"],
                    "target": edge["target_id"],
                    "source_handle": edge.get("source_handle"),
                    "target_handle": edge.get("target_handle")
                }
                for edge in edges.data or []
            ]
        )


class InMemoryFlowRepository:
    """Flow storage kept in process memory, used when Supabase is not configured"""

    def __init__(
        self,
        flows: Optional[List[Flow]] = None,
        triggers: Optional[List[FlowTriggerRecord]] = None
    ):
        self.flows: Dict[str, Flow] = {}
        self.triggers: List[FlowTriggerRecord] = list(triggers or [])
        for flow in flows or []:
            self.save_flow(flow)

    def save_flow(self, flow: Flow) -> None:
        self.flows[flow.id] = flow

    def add_trigger(self, record: FlowTriggerRecord) -> None:
        self.triggers.append(record)

    async def get_flow_by_id(self, flow_id: str) -> Flow:
        flow = self.flows.get(flow_id)
        if flow is None:
            raise FlowNotFoundError(flow_id)
        return flow.model_copy(deep=True)

    async def find_most_recent_active_flow(self) -> Optional[Flow]:
        active = [flow for flow in self.flows.values() if flow.active]
        if not active:
            return None
        # Flows without a creation date count as oldest; ties keep the last saved
        latest = active[-1]
        for flow in active:
            if flow.created_at and (latest.created_at is None or flow.created_at > latest.created_at):
                latest = flow
        return latest.model_copy(deep=True)

    async def list_active_triggers(self) -> List[FlowTriggerRecord]:
        return [
            record for record in self.triggers
            if record.flow_id in self.flows and self.flows[record.flow_id].active
        ]
