"""
Entities and their immutable version chains.

An ``Entity`` is static configuration (an account, a liability, an income
source). Its state over simulated time is a backward-linked chain of
``EntityVersion`` snapshots: every state change produces a new version whose
``previous`` points at the version it was derived from.
"""

from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field


class Entity(BaseModel):
    """A financial entity taking part in a simulation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique entity identifier")
    name: str = Field(default="", description="Human-readable name")
    primary_category: Optional[str] = Field(
        None, description="Top level category (Asset, Liability, Income, Expense)"
    )
    detailed_category: Optional[str] = Field(
        None, description="Detailed category (e.g. Real Estate)"
    )
    initial_value: float = Field(default=0.0, description="Opening balance")
    base_properties: Dict[str, Any] = Field(
        default_factory=dict, description="Named base properties"
    )
    is_template: bool = Field(
        default=False, description="Whether this entity is a creation template"
    )

    def clone_as_new(self) -> "Entity":
        """Return a non-template copy with its own property bag."""
        return self.model_copy(
            update={"base_properties": dict(self.base_properties), "is_template": False}
        )

    def create_initial_version(self, timestamp: datetime) -> "EntityVersion":
        """Create the sequence-0 version seeded from the initial value."""
        return EntityVersion(
            entity=self,
            timestamp=timestamp,
            sequence=0,
            balance=self.initial_value,
            rate=0.0,
            attributes=dict(self.base_properties),
            previous=None,
        )


class EntityVersion(BaseModel):
    """Immutable snapshot of an entity's state at one point in time."""

    model_config = ConfigDict(frozen=True)

    entity: Entity = Field(..., description="Entity this version belongs to")
    timestamp: datetime = Field(..., description="When this state was reached")
    sequence: int = Field(..., ge=0, description="Position in the derivation chain")
    balance: float = Field(..., description="Balance after this state change")
    rate: float = Field(default=0.0, description="Rate in effect for this state")
    attributes: Dict[str, Any] = Field(
        default_factory=dict, description="Attribute map carried along the chain"
    )
    previous: Optional["EntityVersion"] = Field(
        default=None,
        exclude=True,
        repr=False,
        description="Version this one was derived from",
    )

    @property
    def entity_id(self) -> str:
        return self.entity.id

    def derive(
        self,
        *,
        balance: Optional[float] = None,
        rate: Optional[float] = None,
        timestamp: Optional[datetime] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> "EntityVersion":
        """
        Build the successor version.

        Unspecified fields are carried over; the sequence increases by one and
        the new version links back to this one.
        """
        return EntityVersion(
            entity=self.entity,
            timestamp=timestamp if timestamp is not None else self.timestamp,
            sequence=self.sequence + 1,
            balance=self.balance if balance is None else balance,
            rate=self.rate if rate is None else rate,
            attributes=dict(self.attributes) if attributes is None else attributes,
            previous=self,
        )

    def lineage(self) -> Iterator["EntityVersion"]:
        """Iterate from this version back to the root of its chain."""
        current: Optional[EntityVersion] = self
        while current is not None:
            yield current
            current = current.previous

    def version_at(self, sequence: int) -> Optional["EntityVersion"]:
        """Get the ancestor (or self) with the given sequence number."""
        for version in self.lineage():
            if version.sequence == sequence:
                return version
            if version.sequence < sequence:
                break
        return None

    def root(self) -> "EntityVersion":
        """Get the first version of this chain."""
        version = self
        while version.previous is not None:
            version = version.previous
        return version
