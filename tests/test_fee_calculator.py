import pytest

from src.integrations.contracts.interfaces import FeeStructure, FeeType, PlacementType
from src.integrations.policy.response_wrappers import ApiError
from src.portal.fee_calculator import FeeCalculatorWidget, calculate_fee, format_currency


def test_percentage_fee_for_permanent_placement(percentage_structure):
    calc = calculate_fee(percentage_structure, PlacementType.PERMANENT, annual_salary=60000)

    assert calc.base_fee == 12000
    assert calc.discount_amount == 0
    assert calc.total_fee == 12000
    assert calc.breakdown == (
        "Annual Salary: €60,000",
        "Fee Percentage: 20%",
        "Base Fee: €12,000.00",
    )


def test_percentage_fee_ignores_interim_contracts(percentage_structure):
    calc = calculate_fee(percentage_structure, PlacementType.INTERIM, annual_salary=60000)

    assert calc.total_fee == 0
    assert calc.breakdown == ()


def test_hourly_markup_for_interim(hourly_structure):
    calc = calculate_fee(hourly_structure, PlacementType.INTERIM, hourly_rate=75, contract_duration=6)

    assert calc.markup == 15
    assert calc.bureau_rate == 90
    assert calc.estimated_hours == 960
    assert calc.base_fee == 14400
    assert calc.total_fee == 14400
    assert "Estimated Duration: 6 months (960 hours)" in calc.breakdown
    assert calc.breakdown[-1] == "Total Markup Fee: €14,400.00"


def test_hourly_markup_requires_positive_rate(hourly_structure):
    calc = calculate_fee(hourly_structure, PlacementType.TEMPORARY, hourly_rate=0)

    assert calc.total_fee == 0
    assert calc.markup is None
    assert calc.estimated_hours is None


def test_fixed_fee_applies_to_any_contract_type():
    structure = FeeStructure(id="fs-fixed", fee_type=FeeType.FIXED_AMOUNT, fixed_placement_fee=5000)

    for contract_type in PlacementType:
        calc = calculate_fee(structure, contract_type)
        assert calc.total_fee == 5000
        assert calc.breakdown == ("Fixed Placement Fee: €5,000.00",)


def test_discount_is_never_applied():
    structure = FeeStructure(id="fs", fee_type=FeeType.PERCENTAGE, placement_fee_percentage=10, discount_percentage=50)

    calc = calculate_fee(structure, PlacementType.PERMANENT, annual_salary=50000)

    assert calc.discount_amount == 0
    assert calc.total_fee == calc.base_fee == 5000


def test_missing_structure_yields_zero_result():
    calc = calculate_fee(None, PlacementType.PERMANENT, annual_salary=60000)

    assert calc.total_fee == 0
    assert calc.breakdown == ()


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_inputs_yield_empty_result(percentage_structure, hourly_structure, value):
    salary_calc = calculate_fee(percentage_structure, PlacementType.PERMANENT, annual_salary=value)
    rate_calc = calculate_fee(hourly_structure, PlacementType.INTERIM, hourly_rate=value)
    broken = FeeStructure(id="fs", fee_type=FeeType.PERCENTAGE, placement_fee_percentage=value)
    structure_calc = calculate_fee(broken, PlacementType.PERMANENT, annual_salary=60000)

    for calc in (salary_calc, rate_calc, structure_calc):
        assert calc.total_fee == 0
        assert calc.breakdown == ()


def test_calculation_is_deterministic(hourly_structure):
    first = calculate_fee(hourly_structure, PlacementType.INTERIM, hourly_rate=82.5, contract_duration=4)
    second = calculate_fee(hourly_structure, PlacementType.INTERIM, hourly_rate=82.5, contract_duration=4)

    assert first == second


def test_to_dict_uses_camel_case(percentage_structure):
    body = calculate_fee(percentage_structure, PlacementType.PERMANENT, annual_salary=60000).to_dict()

    assert body["baseFee"] == 12000
    assert body["totalFee"] == 12000
    assert body["breakdown"][0] == "Annual Salary: €60,000"


def test_format_currency_dutch_notation():
    assert format_currency(1234.5) == "€ 1.234,50"
    assert format_currency(0) == "€ 0,00"
    assert format_currency(-12) == "€ -12,00"


@pytest.mark.asyncio
async def test_widget_fetches_structure_and_notifies(mock_api):
    seen = []
    widget = FeeCalculatorWidget(api=mock_api, bureau_id="bureau-1", on_calculation_change=seen.append)

    await widget.load()
    widget.set_annual_salary(60000)

    assert widget.fee_structure.fee_type == FeeType.PERCENTAGE
    assert widget.calculation.total_fee == 12000
    assert seen[-1].total_fee == 12000
    assert not widget.is_empty


@pytest.mark.asyncio
async def test_widget_skips_fetch_with_default_structure(mock_api, hourly_structure):
    widget = FeeCalculatorWidget(api=mock_api, bureau_id="bureau-1", default_fee_structure=hourly_structure)

    await widget.load()

    assert "fee_structure" not in " ".join(mock_api.calls)
    assert widget.fee_structure is hourly_structure


@pytest.mark.asyncio
async def test_widget_failed_fetch_shows_toast_and_empty_state(mock_api, toasts):
    widget = FeeCalculatorWidget(api=mock_api, bureau_id="unknown-bureau", notify=toasts.append)

    await widget.load()

    assert widget.fee_structure is None
    assert widget.is_empty
    assert toasts[0]["variant"] == "destructive"
    assert toasts[0]["description"] == "Fee structure not found"


@pytest.mark.asyncio
async def test_widget_recalculates_on_every_input(hourly_structure):
    widget = FeeCalculatorWidget(default_fee_structure=hourly_structure)

    widget.set_contract_type("INTERIM")
    widget.set_hourly_rate(75)
    assert widget.calculation.total_fee == 14400

    widget.set_contract_duration(3)
    assert widget.calculation.estimated_hours == 480
    assert widget.calculation.total_fee == 7200


class _FailingApi:
    async def get_fee_structure(self, bureau_id):
        raise ApiError("boom", status=500)


@pytest.mark.asyncio
async def test_widget_server_error_is_not_fatal(toasts):
    widget = FeeCalculatorWidget(api=_FailingApi(), bureau_id="b", notify=toasts.append)

    await widget.load()

    assert widget.loading is False
    assert widget.calculation is None
    assert toasts[0]["kind"] == "network"
