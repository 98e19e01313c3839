"""
Fee calculator - placement fee for a bureau's fee structure

Supports percentage (permanent roles), fixed amount, and hourly markup
(interim/temporary roles). Volume discounts are not applied yet.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, List, Optional

from src.error_handler import ErrorHandler, Notifier, log_notifier
from src.integrations.contracts.interfaces import (
    FeeCalculation,
    FeeStructure,
    FeeType,
    PlacementType,
    VMSApi,
)

logger = logging.getLogger(__name__)

HOURS_PER_MONTH = 160  # 40 hours/week, 4 weeks/month
CENT = Decimal("0.01")


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


def _money(value: Decimal) -> float:
    return float(value.quantize(CENT))


def _empty() -> FeeCalculation:
    return FeeCalculation(base_fee=0.0, discount_amount=0.0, total_fee=0.0)


def _plain(value) -> str:
    """Render a number without trailing zeros, e.g. 60000 -> '60,000', 12.5 -> '12.5'."""
    text = f"{float(value):,.3f}".rstrip("0").rstrip(".")
    return text or "0"


def _two(value) -> str:
    return f"{float(value):,.2f}"


def format_currency(amount: float) -> str:
    """EUR in Dutch notation: 1234.5 -> '€ 1.234,50'."""
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"€ -{text}" if amount < 0 else f"€ {text}"


def calculate_fee(
    fee_structure: Optional[FeeStructure],
    contract_type: PlacementType,
    annual_salary: float = 0,
    hourly_rate: float = 0,
    contract_duration: int = 6,
    hours_per_month: int = HOURS_PER_MONTH,
) -> FeeCalculation:
    """Compute the fee breakdown. Pure: identical inputs give identical output."""
    base_fee = Decimal("0")
    markup = Decimal("0")
    bureau_rate = Decimal("0")
    estimated_hours: Optional[int] = None
    breakdown: List[str] = []

    if fee_structure is None:
        return _empty()

    salary = _dec(annual_salary)
    rate = _dec(hourly_rate)
    inputs = (
        salary,
        rate,
        _dec(contract_duration),
        _dec(fee_structure.placement_fee_percentage),
        _dec(fee_structure.fixed_placement_fee),
        _dec(fee_structure.hourly_markup_percentage),
    )
    if not all(value.is_finite() for value in inputs):
        logger.warning("[FeeCalculator] non-finite input, returning empty calculation")
        return _empty()

    if fee_structure.fee_type == FeeType.PERCENTAGE:
        pct = fee_structure.placement_fee_percentage
        if contract_type == PlacementType.PERMANENT and salary > 0 and pct:
            base_fee = salary * _dec(pct) / 100
            breakdown += [
                f"Annual Salary: €{_plain(salary)}",
                f"Fee Percentage: {_plain(pct)}%",
                f"Base Fee: €{_two(base_fee)}",
            ]

    elif fee_structure.fee_type == FeeType.FIXED_AMOUNT:
        if fee_structure.fixed_placement_fee:
            base_fee = _dec(fee_structure.fixed_placement_fee)
            breakdown.append(f"Fixed Placement Fee: €{_two(base_fee)}")

    elif fee_structure.fee_type == FeeType.HOURLY_MARKUP:
        pct = fee_structure.hourly_markup_percentage
        if contract_type in (PlacementType.INTERIM, PlacementType.TEMPORARY) and rate > 0 and pct:
            markup = rate * _dec(pct) / 100
            bureau_rate = rate + markup
            estimated_hours = int(contract_duration) * hours_per_month
            base_fee = markup * estimated_hours
            breakdown += [
                f"Candidate Hourly Rate: €{rate:.2f}",
                f"Markup Percentage: {_plain(pct)}%",
                f"Hourly Markup: €{markup:.2f}",
                f"Bureau Hourly Rate: €{bureau_rate:.2f}",
                f"Estimated Duration: {contract_duration} months ({estimated_hours} hours)",
                f"Total Markup Fee: €{_two(base_fee)}",
            ]

    # TODO: apply fee_structure.discount_percentage once volume tiers are tracked per bureau
    discount_amount = Decimal("0")
    total_fee = base_fee - discount_amount

    return FeeCalculation(
        base_fee=_money(base_fee),
        discount_amount=_money(discount_amount),
        total_fee=_money(total_fee),
        bureau_rate=_money(bureau_rate) if bureau_rate > 0 else None,
        markup=_money(markup) if markup > 0 else None,
        estimated_hours=estimated_hours,
        breakdown=tuple(breakdown),
    )


class FeeCalculatorWidget:
    """Holds calculator inputs and recomputes the fee on every change."""

    def __init__(
        self,
        api: Optional[VMSApi] = None,
        bureau_id: Optional[str] = None,
        default_fee_structure: Optional[FeeStructure] = None,
        on_calculation_change: Optional[Callable[[FeeCalculation], None]] = None,
        notify: Optional[Notifier] = None,
        hours_per_month: int = HOURS_PER_MONTH,
    ):
        self.api = api
        self.bureau_id = bureau_id
        self.fee_structure = default_fee_structure
        self.on_calculation_change = on_calculation_change
        self.notify = notify or log_notifier
        self.hours_per_month = hours_per_month
        self.error_handler = ErrorHandler()

        self.contract_type = PlacementType.PERMANENT
        self.annual_salary: float = 0
        self.hourly_rate: float = 0
        self.contract_duration: int = 6
        self.loading = False
        self.calculation: Optional[FeeCalculation] = None

        if self.fee_structure is not None:
            self._recalculate()

    async def load(self) -> None:
        """Fetch the bureau's fee structure unless a default was supplied."""
        if not self.bureau_id or self.fee_structure is not None or self.api is None:
            return
        self.loading = True
        try:
            self.fee_structure = await self.api.get_fee_structure(self.bureau_id)
            logger.info("[FeeCalculator] loaded fee structure for bureau_id=%s type=%s", self.bureau_id,
                        self.fee_structure.fee_type.value if self.fee_structure else None)
        except Exception as e:
            self.error_handler.handle_exception(e, self.notify, fallback_message="Failed to load fee structure")
        finally:
            self.loading = False
        if self.fee_structure is not None:
            self._recalculate()

    # --- Inputs ---------------------------------------------------------------

    def set_contract_type(self, contract_type) -> None:
        self.contract_type = PlacementType(contract_type)
        self._recalculate()

    def set_annual_salary(self, value: float) -> None:
        self.annual_salary = float(value or 0)
        self._recalculate()

    def set_hourly_rate(self, value: float) -> None:
        self.hourly_rate = float(value or 0)
        self._recalculate()

    def set_contract_duration(self, months: int) -> None:
        self.contract_duration = int(months or 0)
        self._recalculate()

    def set_fee_structure(self, fee_structure: Optional[FeeStructure]) -> None:
        self.fee_structure = fee_structure
        self._recalculate()

    # --- Output ---------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return self.fee_structure is None or self.calculation is None or not self.calculation.breakdown

    def _recalculate(self) -> None:
        if self.fee_structure is None:
            self.calculation = None
            return
        self.calculation = calculate_fee(
            self.fee_structure,
            self.contract_type,
            annual_salary=self.annual_salary,
            hourly_rate=self.hourly_rate,
            contract_duration=self.contract_duration,
            hours_per_month=self.hours_per_month,
        )
        if self.on_calculation_change:
            self.on_calculation_change(self.calculation)
