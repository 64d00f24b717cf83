"""Financial entity simulation with versioned, auditable history."""

from typing import Any, Mapping, Optional, Union

from finmodel.config import Settings, configure_logging, get_global_settings
from finmodel.models.scenario import Scenario
from finmodel.services.finance_model import FinanceModel


def create_model(
    scenario: Optional[Union[Scenario, Mapping[str, Any]]] = None,
    settings: Optional[Settings] = None,
) -> FinanceModel:
    """Create a FinanceModel with logging configured from settings.

    Args:
        scenario: Scenario (or its plain mapping form) to load
        settings: Settings to use instead of the global instance

    Returns:
        FinanceModel: Model ready for ``run_simulation``
    """
    settings = settings or get_global_settings()
    configure_logging(settings)

    model = FinanceModel(settings=settings)
    if scenario is not None:
        model.load(scenario)
    return model


__all__ = ["FinanceModel", "Scenario", "Settings", "create_model"]
