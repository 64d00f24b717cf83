"""
Facade over a scenario, its timeline and the simulator.

``FinanceModel`` is the entry point for command and service layers: it
loads a scenario, runs the simulation, dumps a summary of the outcome and
answers balance queries.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

import pandas as pd

from finmodel.config import Settings, get_global_settings
from finmodel.models.audit import AuditLog
from finmodel.models.components import ScenarioComponent
from finmodel.models.entity import Entity, EntityVersion
from finmodel.models.errors import ScenarioValidationError
from finmodel.models.period import PeriodEntityAggregate, Timeline
from finmodel.models.scenario import Scenario
from finmodel.simulation.simulator import Simulator

from .reporting import build_balance_frame, build_flow_frame, summarize_period

logger = logging.getLogger(__name__)


class FinanceModel:
    """Load, run, dump and query a simulation."""

    def __init__(
        self,
        scenario: Optional[Scenario] = None,
        components: Optional[List[ScenarioComponent]] = None,
        settings: Optional[Settings] = None,
        audit_log: Optional[AuditLog] = None,
    ) -> None:
        self.settings = settings or get_global_settings()
        self.scenario = scenario or Scenario()
        self.components: List[ScenarioComponent] = list(components or [])
        self.audit_log = audit_log if audit_log is not None else AuditLog()
        self.timeline = Timeline()
        self.simulator: Optional[Simulator] = None
        self._components_incorporated = False
        self._entity_snapshot: Optional[List[Entity]] = None
        self._has_run = False

    @classmethod
    def from_json(cls, text: Union[str, bytes], **kwargs: Any) -> "FinanceModel":
        """Build a model from a scenario serialized as JSON."""
        return cls(scenario=Scenario.model_validate_json(text), **kwargs)

    def load(self, data: Union[Scenario, Mapping[str, Any]]) -> Scenario:
        """
        Replace the scenario and clear any previous results.

        Raises:
            pydantic.ValidationError: If the mapping is not a valid scenario
        """
        self.scenario = data if isinstance(data, Scenario) else Scenario.model_validate(data)
        self._components_incorporated = False
        self._entity_snapshot = None
        self.reset()
        logger.info(
            f"Loaded scenario {self.scenario.name}: "
            f"{self.scenario.entity_count} entities, {self.scenario.event_count} events"
        )
        return self.scenario

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.scenario.model_dump_json(indent=indent)

    def add_component(self, component: ScenarioComponent) -> None:
        if self._components_incorporated:
            self.scenario.incorporate(component)
            if self._entity_snapshot is not None:
                self._entity_snapshot.extend(component.get_entities())
        self.components.append(component)

    def _incorporate_components(self) -> None:
        if self._components_incorporated:
            return
        for component in self.components:
            self.scenario.incorporate(component)
        self._components_incorporated = True

    def _validate(self) -> None:
        if self.scenario.num_periods > self.settings.max_periods:
            raise ScenarioValidationError(
                f"Scenario has {self.scenario.num_periods} periods, "
                f"more than the allowed {self.settings.max_periods}"
            )
        self.scenario.validate_references()

    def run_simulation(self) -> Timeline:
        """
        Run the scenario over a fresh or existing timeline.

        Returns:
            The populated timeline

        Raises:
            ScenarioValidationError: If the scenario is inconsistent or too long
            SimulationError: If a period-level rule is violated
        """
        if self._has_run:
            logger.warning(
                "run_simulation called again without reset(); results will accumulate"
            )

        self._incorporate_components()
        self._validate()
        if self._entity_snapshot is None:
            self._entity_snapshot = list(self.scenario.initial_entities)
        if not self.timeline.periods:
            self.scenario.initialize(self.timeline)

        self.simulator = Simulator(
            self.scenario,
            self.timeline,
            audit_log=self.audit_log,
            strict_carry_forward=self.settings.strict_carry_forward,
        )
        self._has_run = True
        return self.simulator.play_out()

    def reset(self) -> None:
        """Drop results and dynamic entities so the scenario can be rerun."""
        if self._entity_snapshot is not None:
            self.scenario.initial_entities = list(self._entity_snapshot)
        self.timeline = Timeline()
        self.audit_log.clear()
        self.simulator = None
        self._has_run = False

    @property
    def dynamic_entities(self) -> List[Entity]:
        if self.simulator is None:
            return []
        return list(self.simulator.dynamic_entities.values())

    def query(
        self, entity_id: str, period_index: int = -1
    ) -> Optional[PeriodEntityAggregate]:
        """
        Get an entity's aggregate for a period (the final period by default).

        Raises:
            IndexError: If the timeline has no such period
        """
        return self.timeline.get_period(period_index).get_period_entity_aggregate(entity_id)

    def version(self, entity_id: str, period_index: int = -1) -> Optional[EntityVersion]:
        return self.timeline.get_period(period_index).get_final_version(entity_id)

    def balance_table(self) -> pd.DataFrame:
        return build_balance_frame(self.timeline, self.scenario.initial_entities)

    def flow_table(self) -> pd.DataFrame:
        return build_flow_frame(self.timeline, self.scenario.initial_entities)

    def dump(self) -> str:
        """Text summary of the timeline and the final period."""
        lines = ["Finance Model Dump"]
        final_period = self.timeline.final_period
        if final_period is None:
            lines.append("No data to dump")
            return "\n".join(lines)

        first_period = self.timeline.get_period(0)
        lines.append(f"Timeline: {first_period.start:%Y-%m-%d} to {final_period.end:%Y-%m-%d}")
        lines.append(
            f"Total Entities: {self.scenario.entity_count} | "
            f"Total Events: {self.scenario.event_count} | "
            f"Total Periods: {len(self.timeline)}"
        )

        if self.components:
            lines.append("")
            lines.append("=== COMPONENTS ===")
            lines.extend(component.describe() for component in self.components)

        lines.append("")
        lines.append("=== PERIOD SUMMARY (Final Period) ===")
        lines.append("Entity Details:")
        entities = self.scenario.initial_entities
        summary = summarize_period(final_period, entities, len(self.timeline) - 1)
        for entity in entities:
            if entity.id not in summary.entity_balances:
                continue
            balance = summary.entity_balances[entity.id]
            line = f"  - {entity.id}: ${balance:,.0f}"
            first = first_period.get_final_version(entity)
            if len(self.timeline) > 1 and first is not None:
                line += f" ({balance - first.balance:+,.0f} from initial ${first.balance:,.0f})"
            lines.append(line)

        lines.append(f"Assets: ${summary.assets:,.0f}")
        lines.append(f"Liabilities: ${summary.liabilities:,.0f}")
        lines.append(f"Net Worth: ${summary.net_worth:,.0f}")
        if summary.income > 0 or summary.expenses > 0:
            lines.append("")
            lines.append("Cash Flow Summary:")
            lines.append(f"Income: ${summary.income:,.0f}")
            lines.append(f"Expenses: ${summary.expenses:,.0f}")
            lines.append(f"Net Cash Flow: ${summary.net_cash_flow:,.0f}")
        return "\n".join(lines)
