"""Tests for the event variants and their shared contract."""

import pytest
from pydantic import ValidationError

from finmodel.models.entity import Entity
from finmodel.models.errors import SimulationError
from finmodel.models.events import (
    AmountParams,
    CalculationEvent,
    Condition,
    ConditionalEvent,
    CreationEvent,
    CreationParams,
    InvestmentReturnParams,
    RecurringEvent,
    ThresholdRateParams,
    parse_event,
)
from finmodel.models.flow import INFLOW, OUTFLOW


@pytest.fixture
def account(start):
    entity = Entity(id="acc", name="Account", initial_value=100.0)
    return entity.create_initial_version(start)


def version_with_balance(balance, start):
    return Entity(id="acc", initial_value=balance).create_initial_version(start)


class TestRecurringEvent:
    """Test cases for RecurringEvent."""

    def test_adds_amount(self, account):
        event = RecurringEvent(id="r", params=AmountParams(amount=50.0))
        result = event.apply(account)

        assert result.balance == 150.0
        assert result.sequence == account.sequence + 1
        assert result.previous is account
        assert account.balance == 100.0

    def test_missing_amount_defaults_to_zero(self, account):
        event = RecurringEvent(id="r")
        result = event.apply(account)

        assert result.balance == 100.0
        assert result.sequence == 1

    def test_wrongly_typed_amount_rejected(self):
        with pytest.raises(ValidationError):
            RecurringEvent(id="r", params={"amount": "lots"})

    def test_same_input_same_output(self, account):
        event = RecurringEvent(id="r", params=AmountParams(amount=-30.0))
        first = event.apply(account)
        second = event.apply(account)
        assert (first.balance, first.sequence) == (second.balance, second.sequence)

    def test_debit_beyond_balance_raises(self, account):
        event = RecurringEvent(id="rent", params=AmountParams(amount=-150.0))
        with pytest.raises(SimulationError, match="Insufficient funds"):
            event.apply(account)

    def test_overdraft_allowed_when_enabled(self, account):
        event = RecurringEvent(
            id="rent", params=AmountParams(amount=-150.0, allow_overdraft=True)
        )
        assert event.apply(account).balance == -50.0

    def test_event_type_defaults_to_variant(self):
        event = RecurringEvent(id="r")
        assert event.variant == "recurring"
        assert event.event_type == "recurring"

    def test_is_frozen(self):
        event = RecurringEvent(id="r")
        with pytest.raises(ValidationError):
            event.id = "other"


class TestConditionalEvent:
    """Test cases for ConditionalEvent."""

    def test_predicate_false_returns_same_instance(self, start, bonus):
        version = version_with_balance(30.0, start)
        result = bonus.apply(version)

        assert result is version
        assert result.sequence == 0

    def test_predicate_true_applies_amount(self, start, bonus):
        version = version_with_balance(100.0, start)
        result = bonus.apply(version)

        assert result.balance == 120.0
        assert result.sequence == 1

    def test_condition_parsed_from_string(self, bonus):
        assert bonus.condition == Condition(attribute="balance", operator=">", threshold=50)
        assert str(bonus.condition) == "balance > 50"

    def test_invalid_condition_rejected(self):
        with pytest.raises(ValidationError):
            ConditionalEvent(id="c", condition="balance is large")

    @pytest.mark.parametrize(
        "script,balance,expected",
        [
            ("balance >= 100", 100.0, True),
            ("balance < 0", 10.0, False),
            ("balance != 5", 5.0, False),
            ("rate == 0", 1.0, True),
        ],
    )
    def test_condition_evaluate(self, start, script, balance, expected):
        version = version_with_balance(balance, start)
        assert Condition.parse(script).evaluate(version) is expected


class TestCalculationEvent:
    """Test cases for CalculationEvent."""

    @pytest.mark.parametrize("balance,rate", [(1500.0, 5.0), (500.0, 3.0), (1000.0, 3.0)])
    def test_threshold_rate(self, start, balance, rate):
        event = CalculationEvent(id="calc")
        version = version_with_balance(balance, start)
        result = event.apply(version)

        assert result.rate == rate
        assert result.balance == balance
        assert result.sequence == 1

    def test_custom_threshold(self, start):
        event = CalculationEvent(
            id="calc",
            params=ThresholdRateParams(threshold=10, rate_above=1.0, rate_below=0.5),
        )
        assert event.apply(version_with_balance(11.0, start)).rate == 1.0

    def test_untagged_params_build_threshold_rule(self, start):
        event = CalculationEvent(id="calc", params={"threshold": 2000, "rate_above": 7.0})

        assert isinstance(event.params, ThresholdRateParams)
        assert event.params.threshold == 2000.0
        assert event.params.rate_below == 3.0
        assert event.apply(version_with_balance(2500.0, start)).rate == 7.0

    def test_unknown_method_rejected(self):
        with pytest.raises(ValidationError):
            CalculationEvent(id="calc", params={"method": "lottery"})

    def test_investment_returns_without_shock(self, start):
        event = CalculationEvent(
            id="returns",
            params=InvestmentReturnParams(expected_return=0.1, inflation_rate=0.02),
        )
        result = event.apply(version_with_balance(1000.0, start))

        assert result.balance == pytest.approx(1080.0)
        assert result.rate == pytest.approx(0.08)

    def test_investment_returns_ignores_inflation_when_unaffected(self, start):
        event = CalculationEvent(
            id="returns",
            params=InvestmentReturnParams(
                expected_return=0.1, inflation_rate=0.02, inflation_affected=False
            ),
        )
        assert event.apply(version_with_balance(1000.0, start)).balance == pytest.approx(1100.0)

    def test_seeded_shock_is_repeatable(self, start):
        event = CalculationEvent(
            id="returns",
            params=InvestmentReturnParams(expected_return=0.1, volatility=0.5, seed=7),
        )
        version = version_with_balance(1000.0, start)
        assert event.apply(version).balance == event.apply(version).balance

    def test_zero_balance_gives_zero_rate(self, start):
        event = CalculationEvent(
            id="returns", params=InvestmentReturnParams(expected_return=0.1)
        )
        result = event.apply(version_with_balance(0.0, start))
        assert result.rate == 0.0
        assert result.balance == 0.0


class TestCreationEvent:
    """Test cases for CreationEvent."""

    @pytest.fixture
    def creation(self):
        template = Entity(id="child", name="Child Account", is_template=True)
        return CreationEvent(id="spawn", params=CreationParams(entities=[template]))

    def test_apply_is_identity(self, creation, account):
        assert creation.apply(account) is account

    def test_create_entities_returns_copies(self, creation):
        first = creation.create_entities()
        second = creation.create_entities()

        assert [e.id for e in first] == ["child"]
        assert first[0] is not second[0]
        assert first[0] is not creation.params.entities[0]

    def test_requires_at_least_one_entity(self):
        with pytest.raises(ValidationError):
            CreationEvent(id="spawn", params={"entities": []})

    def test_other_variants_create_nothing(self):
        assert RecurringEvent(id="r").create_entities() == []


class TestGenerateFlows:
    """Test cases for flow generation."""

    def test_inflow(self, account):
        event = RecurringEvent(id="dep", params=AmountParams(amount=50.0))
        after = event.apply(account)
        flows = event.generate_flows(account, after)

        assert len(flows) == 1
        assert flows[0].direction == INFLOW
        assert flows[0].amount == 50.0
        assert flows[0].source is account
        assert flows[0].target is after
        assert flows[0].flow_type == "recurring"
        assert flows[0].id == "dep:acc:1"

    def test_outflow(self, account):
        event = RecurringEvent(id="fee", params=AmountParams(amount=-25.0))
        flows = event.generate_flows(account, event.apply(account))
        assert flows[0].direction == OUTFLOW
        assert flows[0].signed_amount == -25.0

    def test_no_flow_for_no_op(self, start, bonus):
        version = version_with_balance(30.0, start)
        assert bonus.generate_flows(version, bonus.apply(version)) == []

    def test_no_flow_for_rate_change(self, account):
        event = CalculationEvent(id="calc")
        assert event.generate_flows(account, event.apply(account)) == []


class TestScheduling:
    """Test cases for fires_in, bind and applies_to."""

    def test_recurring_fires_from_start(self):
        event = RecurringEvent(id="r", is_recurring=True, trigger_period=2)
        assert [event.fires_in(i) for i in range(4)] == [False, False, True, True]

    def test_one_shot_fires_once(self):
        event = RecurringEvent(id="r", trigger_period=1)
        assert [event.fires_in(i) for i in range(3)] == [False, True, False]

    def test_unbound_event_uses_default_start(self):
        event = RecurringEvent(id="r")
        assert event.fires_in(0) is True
        assert event.fires_in(0, default_start=None) is False

    def test_bind_returns_copy(self):
        event = RecurringEvent(id="r")
        bound = event.bind(trigger_period=3, target_entity_id="acc")

        assert bound.trigger_period == 3
        assert bound.target_entity_id == "acc"
        assert event.trigger_period is None
        assert isinstance(bound, RecurringEvent)

    def test_applies_to(self):
        untargeted = RecurringEvent(id="r")
        targeted = RecurringEvent(id="r", target_entity_id="acc")

        assert untargeted.applies_to(Entity(id="other"))
        assert targeted.applies_to(Entity(id="acc"))
        assert not targeted.applies_to(Entity(id="other"))


class TestParseEvent:
    """Test cases for the tagged union."""

    def test_parses_conditional(self):
        event = parse_event(
            {
                "variant": "conditional",
                "id": "c",
                "condition": "balance > 50",
                "params": {"amount": 20},
            }
        )
        assert isinstance(event, ConditionalEvent)
        assert event.params.amount == 20.0

    def test_parses_calculation_params(self):
        event = parse_event(
            {
                "variant": "calculation",
                "id": "returns",
                "params": {"method": "investment_returns", "expected_return": 0.05},
            }
        )
        assert isinstance(event.params, InvestmentReturnParams)

    def test_parses_untagged_calculation_params(self):
        event = parse_event({"variant": "calculation", "id": "c", "params": {"threshold": 10}})

        assert isinstance(event, CalculationEvent)
        assert isinstance(event.params, ThresholdRateParams)
        assert event.params.threshold == 10.0

    def test_unknown_variant_rejected(self):
        with pytest.raises(ValidationError):
            parse_event({"variant": "lottery", "id": "x"})

    def test_round_trip_preserves_variant(self, bonus):
        restored = parse_event(bonus.model_dump())
        assert restored == bonus
