"""
Pytest configuration and shared fixtures for the finmodel tests.
"""

from datetime import datetime

import pytest

from finmodel.config import reset_global_settings
from finmodel.models.entity import Entity
from finmodel.models.events import (
    AmountParams,
    ConditionalEvent,
    RecurringEvent,
)
from finmodel.models.scenario import Scenario

START = datetime(2024, 1, 1)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Make every test read settings from its own environment."""
    reset_global_settings()
    yield
    reset_global_settings()


@pytest.fixture
def start():
    return START


@pytest.fixture
def savings():
    """A savings account starting at 1000."""
    return Entity(
        id="savings",
        name="Savings",
        primary_category="Asset",
        detailed_category="Cash",
        initial_value=1000.0,
    )


@pytest.fixture
def wallet():
    """An empty account."""
    return Entity(id="wallet", name="Wallet", primary_category="Asset")


@pytest.fixture
def savings_version(savings, start):
    return savings.create_initial_version(start)


@pytest.fixture
def deposit():
    """Recurring deposit of 50."""
    return RecurringEvent(id="deposit", is_recurring=True, params=AmountParams(amount=50.0))


@pytest.fixture
def bonus():
    """Pays 20 while the balance is above 50."""
    return ConditionalEvent(
        id="bonus", condition="balance > 50", params=AmountParams(amount=20.0)
    )


@pytest.fixture
def simple_scenario(wallet, deposit):
    """Wallet receiving a deposit in each of three periods."""
    return Scenario(
        name="Simple",
        initial_entities=[wallet],
        event_templates={"wallet": [deposit]},
        num_periods=3,
        start_date=START,
    )
