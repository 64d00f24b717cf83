"""
Scenario configuration for a simulation run.

A ``Scenario`` is static input: the initial entities, event templates bound
to entities, named entity templates, latent events waiting to be bound to a
period, and the shape of the timeline. It round-trips through JSON with
``model_dump_json`` / ``model_validate_json``; events keep their concrete
variant through the ``variant`` discriminator.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from deepdiff import DeepDiff
from pydantic import BaseModel, Field

from .entity import Entity
from .errors import ScenarioValidationError
from .events import BaseEvent, Event
from .period import TimePeriod, Timeline

logger = logging.getLogger(__name__)


class AssetGroup(BaseModel):
    """Hierarchical grouping of asset and liability entities."""

    name: str = Field(..., min_length=1, description="Group name")
    description: Optional[str] = Field(None, description="Free text description")
    category: Optional[str] = Field(None, description="Group category label")
    assets: List[Entity] = Field(default_factory=list, description="Asset entities")
    liabilities: List[Entity] = Field(
        default_factory=list, description="Liability entities"
    )
    sub_groups: List["AssetGroup"] = Field(
        default_factory=list, description="Nested groups"
    )

    def total_asset_value(self) -> float:
        total = sum(entity.initial_value for entity in self.assets)
        return total + sum(group.total_asset_value() for group in self.sub_groups)

    def total_liability_value(self) -> float:
        """Total owed, as a positive number whatever sign liabilities carry."""
        total = sum(abs(entity.initial_value) for entity in self.liabilities)
        return total + sum(group.total_liability_value() for group in self.sub_groups)

    def net_worth(self) -> float:
        return self.total_asset_value() - self.total_liability_value()

    def all_entities(self) -> List[Entity]:
        entities = list(self.assets) + list(self.liabilities)
        for group in self.sub_groups:
            entities.extend(group.all_entities())
        return entities

    def balance_in(self, period: TimePeriod) -> float:
        """Sum the final balances of the group's entities in a period."""
        total = 0.0
        for entity in self.all_entities():
            version = period.get_final_version(entity)
            if version is not None:
                total += version.balance
        return total


class Scenario(BaseModel):
    """Static configuration of a simulation."""

    name: str = Field(default="Scenario", description="Scenario name")
    initial_entities: List[Entity] = Field(
        default_factory=list, description="Entities present from the start"
    )
    event_templates: Dict[str, List[Event]] = Field(
        default_factory=dict, description="Events bound to an entity id"
    )
    entity_templates: Dict[str, Entity] = Field(
        default_factory=dict, description="Named entity templates"
    )
    latent_events: List[Event] = Field(
        default_factory=list, description="Events waiting to be bound to a period"
    )
    num_periods: int = Field(default=12, ge=0, description="Number of periods to simulate")
    start_date: datetime = Field(
        default=datetime(2024, 1, 1), description="Start of the first period"
    )
    period_months: int = Field(default=1, ge=1, le=12, description="Months per period")
    risk_free_rate: float = Field(default=3.5, description="Risk-free rate (%)")
    inflation: float = Field(default=2.0, description="Inflation (%)")
    asset_groups: List[AssetGroup] = Field(
        default_factory=list, description="Reporting groups"
    )

    @property
    def periods_per_year(self) -> int:
        return 12 // self.period_months

    @property
    def entity_count(self) -> int:
        return len(self.initial_entities)

    @property
    def event_count(self) -> int:
        templated = sum(len(events) for events in self.event_templates.values())
        return templated + len(self.latent_events)

    def initialize(self, timeline: Timeline) -> Timeline:
        """Append ``num_periods`` contiguous periods to the timeline."""
        for _ in range(self.num_periods):
            timeline.advance_period(
                start=self.start_date,
                period_months=self.period_months,
                risk_free_rate=self.risk_free_rate,
                inflation=self.inflation,
            )
        logger.debug(
            f"Initialized timeline with {len(timeline)} periods from {self.start_date}"
        )
        return timeline

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        for entity in self.initial_entities:
            if entity.id == entity_id:
                return entity
        return None

    def add_entity(self, entity: Entity) -> bool:
        """
        Add an entity unless one with the same id is already present.

        Returns:
            True if the entity was added
        """
        if self.get_entity(entity.id) is not None:
            return False
        self.initial_entities.append(entity)
        return True

    def get_template(self, name: str) -> Entity:
        try:
            return self.entity_templates[name]
        except KeyError:
            raise ScenarioValidationError(f"Unknown entity template: {name}") from None

    def add_event_template(self, entity_id: str, event: BaseEvent) -> None:
        self.event_templates.setdefault(entity_id, []).append(event)

    def register_latent_event(self, event: BaseEvent) -> None:
        if any(existing.id == event.id for existing in self.latent_events):
            raise ScenarioValidationError(f"Latent event {event.id} already registered")
        self.latent_events.append(event)

    def bind_latent_event(self, event_id: str, period_index: int) -> BaseEvent:
        """
        Bind a latent event to the period it should fire in.

        Args:
            event_id: Identifier of the latent event
            period_index: Index of the period to bind it to

        Returns:
            The bound copy, which replaces the latent event

        Raises:
            ScenarioValidationError: If no latent event has that id or the
                index lies outside the scenario
        """
        if not 0 <= period_index < self.num_periods:
            raise ScenarioValidationError(
                f"Period index {period_index} outside 0..{self.num_periods - 1}"
            )
        for i, event in enumerate(self.latent_events):
            if event.id == event_id:
                bound = event.bind(trigger_period=period_index)
                self.latent_events[i] = bound
                return bound
        raise ScenarioValidationError(f"Unknown latent event: {event_id}")

    def events_for_period(self, period_index: int) -> List[BaseEvent]:
        """Events the schedule places on a period, in application order."""
        scheduled: List[BaseEvent] = []
        for entity_id, events in self.event_templates.items():
            for event in events:
                if event.fires_in(period_index, default_start=0):
                    scheduled.append(event.bind(target_entity_id=entity_id))
        for event in self.latent_events:
            if event.fires_in(period_index, default_start=None):
                scheduled.append(event)
        return scheduled

    def incorporate(self, component: Any) -> None:
        """
        Add a component's entities and event bindings.

        Raises:
            ScenarioValidationError: If an entity id is already taken
        """
        for entity in component.get_entities():
            if not self.add_entity(entity):
                raise ScenarioValidationError(
                    f"Entity id {entity.id} from {component.id} already in scenario"
                )
        for entity_id, events in component.get_events().items():
            for event in events:
                self.add_event_template(entity_id, event)
        logger.info(f"Incorporated component {component.display_name}")

    def validate_references(self) -> None:
        """
        Check that the scenario is internally consistent.

        Raises:
            ScenarioValidationError: On duplicate entity ids, or event
                templates and targets that name unknown entities
        """
        seen = set()
        for entity in self.initial_entities:
            if entity.id in seen:
                raise ScenarioValidationError(f"Duplicate entity id: {entity.id}")
            seen.add(entity.id)

        creatable = {
            entity.id
            for events in list(self.event_templates.values()) + [self.latent_events]
            for event in events
            for entity in event.create_entities()
        }
        known = seen | creatable

        for entity_id, events in self.event_templates.items():
            if entity_id not in known:
                raise ScenarioValidationError(
                    f"Event templates reference unknown entity: {entity_id}"
                )
        for event in self.latent_events:
            if event.target_entity_id is not None and event.target_entity_id not in known:
                raise ScenarioValidationError(
                    f"Latent event {event.id} targets unknown entity: "
                    f"{event.target_entity_id}"
                )

    def diff(self, other: "Scenario") -> Dict[str, Any]:
        """Compare two scenario configurations using DeepDiff."""
        changes = DeepDiff(
            self.model_dump(mode="json"),
            other.model_dump(mode="json"),
            ignore_order=True,
        )
        return {"changes": changes, "has_changes": bool(changes)}
