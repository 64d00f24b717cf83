"""Monetary flows between entity versions."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from .entity import EntityVersion

INFLOW = "inflow"
OUTFLOW = "outflow"
FORWARD = "forward"


class Flow(BaseModel):
    """
    A directed movement of money between two entity versions.

    Validation is eager: an empty id, direction or type, or a negative amount
    fails at construction with ``pydantic.ValidationError``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Flow identifier")
    source: EntityVersion = Field(..., description="Version money moves from")
    target: EntityVersion = Field(..., description="Version money moves to")
    amount: float = Field(..., ge=0, description="Amount moved (never negative)")
    direction: str = Field(..., min_length=1, description="inflow, outflow or forward")
    flow_type: str = Field(..., min_length=1, description="What caused the flow")
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Additional flow metadata"
    )
    is_intra_period: bool = Field(
        default=True, description="Whether both ends lie in the same period"
    )

    @property
    def signed_amount(self) -> float:
        """Amount with outflows negative."""
        return -self.amount if self.direction == OUTFLOW else self.amount

    def to_record(self, period_id: str = "") -> Dict[str, Any]:
        """Flatten into a plain dict for export layers."""
        suffix = f"_{period_id}" if period_id else ""
        return {
            "id": f"{self.id}{suffix}",
            "flow_id": self.id,
            "source": self.source.entity_id,
            "target": self.target.entity_id,
            "source_name": self.source.entity.name,
            "target_name": self.target.entity.name,
            "amount": self.amount,
            "direction": self.direction,
            "type": self.flow_type,
            "is_intra_period": self.is_intra_period,
            "metadata": dict(self.metadata),
        }
