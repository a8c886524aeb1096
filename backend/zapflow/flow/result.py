"""
Flow Result - Data class for flow execution results
"""
from dataclasses import dataclass, field
from typing import Optional, Any, Dict
from datetime import datetime


@dataclass
class FlowExecutionResult:
    """
    Result of starting a flow for a contact.

    Returned by the manual execution entry point so callers can report
    where the conversation stopped.
    """

    success: bool
    message: str = ""
    flow_id: Optional[str] = None
    current_node_id: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def is_success(self) -> bool:
        """Check if execution was successful"""
        return self.success and self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "success": self.success,
            "message": self.message,
            "flow_id": self.flow_id,
            "current_node_id": self.current_node_id,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def started(cls, flow_id: str, current_node_id: Optional[str]) -> "FlowExecutionResult":
        return cls(
            success=True,
            message="Fluxo iniciado com sucesso",
            flow_id=flow_id,
            current_node_id=current_node_id
        )

    @classmethod
    def failed(cls, flow_id: Optional[str], error: str, message: str = "") -> "FlowExecutionResult":
        return cls(
            success=False,
            message=message or error,
            flow_id=flow_id,
            error=error
        )
