"""
Period-by-period simulation of a scenario.

For every period in timeline order the simulator schedules the scenario's
events onto the period, threads each entity's carried-in version through
those events in list order, records the final version and the flows each
application produced, and only then merges entities created during the
period. Created entities take part from the next period on.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from finmodel.config import get_global_settings
from finmodel.models.audit import AuditLog, AuditRecord
from finmodel.models.entity import Entity, EntityVersion
from finmodel.models.errors import SimulationError
from finmodel.models.flow import FORWARD, Flow
from finmodel.models.period import TimePeriod, Timeline
from finmodel.models.scenario import Scenario

from .processor import DefaultEventProcessor, EventProcessor

logger = logging.getLogger(__name__)

CARRY_FORWARD = "carry_forward"


class Simulator:
    """
    Drives a scenario through a timeline.

    A simulator is single use: ``play_out`` mutates the timeline's periods
    and the scenario's entity list, so running it twice over the same
    timeline without clearing results first applies everything twice.
    """

    def __init__(
        self,
        scenario: Scenario,
        timeline: Timeline,
        processor: Optional[EventProcessor] = None,
        audit_log: Optional[AuditLog] = None,
        strict_carry_forward: Optional[bool] = None,
    ) -> None:
        """
        Initialize the simulator.

        Args:
            scenario: Scenario supplying entities and the event schedule
            timeline: Timeline whose periods are populated
            processor: Event processor (defaults to DefaultEventProcessor)
            audit_log: Sink for audit records (a fresh log when omitted)
            strict_carry_forward: Raise instead of reinitializing when an
                entity has no version to carry forward (defaults to settings)
        """
        self.scenario = scenario
        self.timeline = timeline
        self.processor = processor or DefaultEventProcessor()
        self.audit_log = audit_log if audit_log is not None else AuditLog()
        if strict_carry_forward is None:
            strict_carry_forward = get_global_settings().strict_carry_forward
        self.strict_carry_forward = strict_carry_forward
        self.dynamic_entities: Dict[str, Entity] = {}
        self._introduced: Set[str] = set()

    def play_out(self) -> Timeline:
        """
        Run every period of the timeline.

        Returns:
            The populated timeline

        Raises:
            SimulationError: If a period-level rule is violated; periods
                already processed keep their results
        """
        logger.info(
            f"Starting simulation: {len(self.timeline)} periods, "
            f"{self.scenario.entity_count} entities"
        )
        for index, period in enumerate(self.timeline.periods):
            try:
                self._play_period(index, period)
            except SimulationError as e:
                logger.error(f"Simulation failed in period {index}: {e}")
                raise
        logger.info(
            f"Completed simulation: {len(self.audit_log)} audit records, "
            f"{len(self.dynamic_entities)} dynamic entities"
        )
        return self.timeline

    def _schedule(self, index: int, period: TimePeriod) -> None:
        for event in self.scenario.events_for_period(index):
            period.add_event(event)

    def _play_period(self, index: int, period: TimePeriod) -> None:
        self._schedule(index, period)
        previous = self.timeline.periods[index - 1] if index > 0 else None
        created: List[Entity] = []

        for entity in list(self.scenario.initial_entities):
            carry_in, carried = self._carry_in(entity, index, period, previous)
            current = carry_in
            flows: List[Flow] = []

            for event in period.events:
                if not event.applies_to(entity):
                    continue
                before = current
                current = self.processor.process(event, before, at=period.start)
                flows.extend(self.processor.handle_flows(event, before, current))
                self.audit_log.record(
                    AuditRecord(
                        event_id=event.id,
                        event_type=event.event_type,
                        entity_id=entity.id,
                        amount=event.resolved_amount,
                        timestamp=period.start,
                        period_index=index,
                        changed=current is not before,
                    )
                )
                created.extend(self.processor.handle_creation(event))

            period.record_version(current)
            period.record_flows(entity, flows)
            if carried:
                period.record_flows(
                    entity,
                    [self._forward_flow(entity, index, carry_in, current)],
                    intra_period=False,
                )

        self._merge_created(created, index)

    def _carry_in(
        self,
        entity: Entity,
        index: int,
        period: TimePeriod,
        previous: Optional[TimePeriod],
    ) -> Tuple[EntityVersion, bool]:
        """Starting version for an entity and whether it was carried forward."""
        if previous is None:
            return entity.create_initial_version(period.start), False

        version = previous.get_final_version(entity)
        if version is not None:
            return version, True

        if entity.id not in self._introduced:
            message = (
                f"No version of {entity.id} in period {index - 1} to carry into "
                f"period {index}"
            )
            if self.strict_carry_forward:
                raise SimulationError(message)
            logger.warning(f"{message}; starting from its initial value")
        return entity.create_initial_version(period.start), False

    @staticmethod
    def _forward_flow(
        entity: Entity, index: int, carry_in: EntityVersion, final: EntityVersion
    ) -> Flow:
        return Flow(
            id=f"{CARRY_FORWARD}:{entity.id}:{index}",
            source=carry_in,
            target=final,
            amount=abs(carry_in.balance),
            direction=FORWARD,
            flow_type=CARRY_FORWARD,
            metadata={"carried_balance": carry_in.balance},
            is_intra_period=False,
        )

    def _merge_created(self, created: List[Entity], index: int) -> None:
        introduced: Set[str] = set()
        for template in created:
            entity = template.clone_as_new()
            if entity.id in self.dynamic_entities or not self.scenario.add_entity(entity):
                continue
            self.dynamic_entities[entity.id] = entity
            introduced.add(entity.id)
            logger.info(f"Created entity {entity.id} in period {index}")
        self._introduced = introduced
