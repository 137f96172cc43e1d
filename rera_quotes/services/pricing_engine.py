"""
Dynamic pricing engine for quotations.

Turns a selection (developer type, region, plot-area bracket, services,
manual overrides) into a QuotationPricing aggregate. Everything here is a
pure function over an immutable ReferenceData snapshot; loading that
snapshot and persisting the result are handled by
reference_data_service and quotation_service.

Money is exact: amounts are Decimal and line prices are whole currency
units (integral Decimals).
"""
import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rera_quotes.exceptions import BusinessLogicError, ReferenceDataError
from rera_quotes.models.quotation_approval import ApprovalLevel
from rera_quotes.services.approval_gate import required_approval_level
from rera_quotes.utils.formatters import money_in
from rera_quotes.utils.number_format import ZERO, json_number, to_decimal

logger = logging.getLogger(__name__)

NEUTRAL_MULTIPLIER = Decimal('1')
HUNDRED = Decimal('100')
WHOLE_UNIT = Decimal('1')

MAX_LINE_DISCOUNT_PERCENTAGE = Decimal('50')
MIN_QUOTATION_TOTAL = Decimal('1000')
# Upper bound of a negotiated line price
MAX_SERVICE_PRICE = Decimal('999999999')

# (inclusive lower bound, rounding granularity), highest tier first
ROUNDING_TIERS = (
    (Decimal('200000'), Decimal('1000')),
    (Decimal('50000'), Decimal('100')),
)
DEFAULT_ROUNDING_STEP = Decimal('10')


# ---------------------------------------------------------------------------
# Reference data snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MultiplierRecord:
    """One row of a multiplier axis (developer type, region, plot area, category)."""
    id: int
    name: str
    multiplier: Decimal = NEUTRAL_MULTIPLIER


@dataclass(frozen=True)
class DeveloperTypeRecord(MultiplierRecord):
    """
    Developer type row. Agent registrations are priced at the catalog base
    price: no multipliers apply and lines cannot be negotiated.
    """
    is_agent_registration: bool = False


@dataclass(frozen=True)
class ServiceRecord:
    id: int
    name: str
    category_id: Optional[int]
    base_price: Decimal
    is_mandatory: bool = False
    category_name: Optional[str] = None


@dataclass(frozen=True)
class ReferenceData:
    """Read-only catalog snapshot used for one calculation."""
    developer_types: Tuple[DeveloperTypeRecord, ...] = ()
    regions: Tuple[MultiplierRecord, ...] = ()
    plot_area_ranges: Tuple[MultiplierRecord, ...] = ()
    service_categories: Tuple[MultiplierRecord, ...] = ()
    services: Tuple[ServiceRecord, ...] = ()

    def mandatory_service_ids(self) -> List[int]:
        return [service.id for service in self.services if service.is_mandatory]


def find_record(records: Iterable[Any], record_id) -> Optional[Any]:
    if record_id is None:
        return None
    for record in records:
        if record.id == record_id:
            return record
    return None


def lookup_multiplier(records: Iterable[MultiplierRecord], record_id) -> Decimal:
    """
    Multiplier of the record with `record_id`.

    Returns 1 (neutral) when the id is None, nothing matches, or the stored
    value is missing or not strictly positive. Never raises: pricing must
    stay computable while a region or plot area is still unselected.
    """
    record = find_record(records, record_id)
    if record is None or record.multiplier is None:
        return NEUTRAL_MULTIPLIER
    multiplier = to_decimal(record.multiplier)
    if multiplier <= 0:
        return NEUTRAL_MULTIPLIER
    return multiplier


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PricingFactors:
    developer_type_multiplier: Decimal = NEUTRAL_MULTIPLIER
    regional_multiplier: Decimal = NEUTRAL_MULTIPLIER
    plot_area_multiplier: Decimal = NEUTRAL_MULTIPLIER
    service_complexity_factor: Decimal = NEUTRAL_MULTIPLIER

    @property
    def combined(self) -> Decimal:
        return (
            to_decimal(self.developer_type_multiplier)
            * to_decimal(self.regional_multiplier)
            * to_decimal(self.plot_area_multiplier)
            * to_decimal(self.service_complexity_factor)
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            'developer_type_multiplier': float(self.developer_type_multiplier),
            'regional_multiplier': float(self.regional_multiplier),
            'plot_area_multiplier': float(self.plot_area_multiplier),
            'service_complexity_factor': float(self.service_complexity_factor),
        }


@dataclass(frozen=True)
class ServiceOverride:
    """Manually negotiated price for one service, remembered across recomputes."""
    modified_price: Decimal
    discount_reason: str = ''


@dataclass(frozen=True)
class ServicePricingLine:
    service_id: int
    service_name: str
    base_price: Decimal
    calculated_price: Decimal
    final_price: Decimal
    discount_amount: Decimal
    discount_percentage: Decimal
    discount_reason: str = ''
    pricing_factors: PricingFactors = field(default_factory=PricingFactors)
    category_name: Optional[str] = None

    @property
    def has_discount(self) -> bool:
        return self.discount_amount > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service_id': self.service_id,
            'service_name': self.service_name,
            'category_name': self.category_name,
            'base_price': json_number(self.base_price),
            'calculated_price': json_number(self.calculated_price),
            'final_price': json_number(self.final_price),
            'discount_amount': json_number(self.discount_amount),
            'discount_percentage': float(self.discount_percentage),
            'discount_reason': self.discount_reason,
            'pricing_factors': self.pricing_factors.to_dict(),
        }


@dataclass(frozen=True)
class QuotationPricing:
    services: Tuple[ServicePricingLine, ...]
    subtotal: Decimal
    total_original_amount: Decimal
    total_discount_amount: Decimal
    total_discount_percentage: Decimal
    final_total: Decimal
    rounded_total: Decimal
    approval_level: ApprovalLevel
    needs_approval: bool
    is_agent_registration: bool = False

    def line_for(self, service_id) -> Optional[ServicePricingLine]:
        for line in self.services:
            if line.service_id == service_id:
                return line
        return None

    def overrides(self) -> Dict[int, ServiceOverride]:
        """Overrides that reproduce this aggregate on the next recompute."""
        return {
            line.service_id: ServiceOverride(line.final_price, line.discount_reason)
            for line in self.services
            if line.final_price != line.calculated_price or line.discount_reason
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'services': [line.to_dict() for line in self.services],
            'subtotal': json_number(self.subtotal),
            'total_original_amount': json_number(self.total_original_amount),
            'total_discount_amount': json_number(self.total_discount_amount),
            'total_discount_percentage': float(self.total_discount_percentage),
            'final_total': json_number(self.final_total),
            'rounded_total': json_number(self.rounded_total),
            'approval_level': self.approval_level.value,
            'needs_approval': self.needs_approval,
            'is_agent_registration': self.is_agent_registration,
        }


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {'is_valid': self.is_valid, 'errors': list(self.errors)}


# ---------------------------------------------------------------------------
# Calculator and rounding policy
# ---------------------------------------------------------------------------

def calculate_service_price(base_price, factors: PricingFactors) -> Decimal:
    """
    base_price x all four multipliers, rounded half-up to a whole unit.

    Raises:
        ValueError: if base_price is negative.
    """
    base = to_decimal(base_price)
    if base < 0:
        raise ValueError(f'base_price cannot be negative: {base}')
    return (base * factors.combined).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def apply_rounding(amount) -> Decimal:
    """
    Display rounding of a total.

    >= 200,000 -> nearest 1,000; >= 50,000 -> nearest 100; else nearest 10.
    Ties round half away from zero.

    Examples:
        apply_rounding(215400) -> 215000
        apply_rounding(63250) -> 63300
        apply_rounding(1234) -> 1230
    """
    value = to_decimal(amount)
    step = DEFAULT_ROUNDING_STEP
    for threshold, granularity in ROUNDING_TIERS:
        if value >= threshold:
            step = granularity
            break
    return (value / step).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP) * step


def percentage_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole x 100, or 0 when whole is not positive."""
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

def _priced_line(line: ServicePricingLine, final_price, discount_reason: str) -> ServicePricingLine:
    """Line with a negotiated final price, rounded half-up to a whole unit."""
    final = to_decimal(final_price).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)
    if final > MAX_SERVICE_PRICE:
        raise BusinessLogicError(
            f'Price for service "{line.service_name}" cannot exceed {money_in(MAX_SERVICE_PRICE)}.'
        )
    discount = line.calculated_price - final
    return replace(
        line,
        final_price=final,
        discount_amount=discount,
        discount_percentage=percentage_of(discount, line.calculated_price),
        discount_reason=discount_reason or '',
    )


def build_service_line(
    service: ServiceRecord,
    factors: PricingFactors,
    override: Optional[ServiceOverride] = None,
) -> ServicePricingLine:
    """Price one service; an override only changes the final/discount fields."""
    calculated = calculate_service_price(service.base_price, factors)
    line = ServicePricingLine(
        service_id=service.id,
        service_name=service.name,
        base_price=to_decimal(service.base_price),
        calculated_price=calculated,
        final_price=calculated,
        discount_amount=ZERO,
        discount_percentage=ZERO,
        pricing_factors=factors,
        category_name=service.category_name,
    )
    if override is None:
        return line
    modified = calculated if override.modified_price is None else override.modified_price
    return _priced_line(line, modified, override.discount_reason)


def summarize_lines(lines: Sequence[ServicePricingLine], is_agent_registration: bool = False) -> QuotationPricing:
    """Derive every aggregate total and the approval level from the lines."""
    lines = tuple(lines)
    subtotal = sum((line.final_price for line in lines), ZERO)
    total_original = sum((line.calculated_price for line in lines), ZERO)
    total_discount = total_original - subtotal
    discount_percentage = percentage_of(total_discount, total_original)
    approval_level = required_approval_level(discount_percentage)

    return QuotationPricing(
        services=lines,
        subtotal=subtotal,
        total_original_amount=total_original,
        total_discount_amount=total_discount,
        total_discount_percentage=discount_percentage,
        final_total=subtotal,
        rounded_total=apply_rounding(subtotal),
        approval_level=approval_level,
        needs_approval=approval_level != ApprovalLevel.AUTO_APPROVED,
        is_agent_registration=is_agent_registration,
    )


def calculate_quotation_pricing(
    reference: ReferenceData,
    developer_type_id,
    region_id=None,
    plot_area_range_id=None,
    selected_service_ids: Sequence = (),
    overrides: Optional[Mapping[int, ServiceOverride]] = None,
) -> QuotationPricing:
    """
    Price a full selection.

    Unknown service ids are skipped (the catalog may change while a
    selection is being edited); a repeated id is priced once, at its first
    position. Region and plot area are optional and neutral when absent.

    Agent registrations ignore every multiplier and refuse price overrides.

    Raises:
        ReferenceDataError: if the developer type does not exist.
        BusinessLogicError: on an override for an agent registration, or an
            override above MAX_SERVICE_PRICE.
    """
    developer_type = find_record(reference.developer_types, developer_type_id)
    if developer_type is None:
        raise ReferenceDataError('developer type', developer_type_id)
    is_agent = bool(getattr(developer_type, 'is_agent_registration', False))
    overrides = overrides or {}

    if is_agent:
        developer_multiplier = regional_multiplier = plot_area_multiplier = NEUTRAL_MULTIPLIER
        if any(overrides.get(service_id) and overrides[service_id].modified_price is not None
               for service_id in selected_service_ids):
            raise BusinessLogicError('Agent registrations use fixed pricing; price overrides are not allowed.')
        overrides = {}
    else:
        developer_multiplier = lookup_multiplier(reference.developer_types, developer_type_id)
        regional_multiplier = lookup_multiplier(reference.regions, region_id)
        plot_area_multiplier = lookup_multiplier(reference.plot_area_ranges, plot_area_range_id)

    lines: List[ServicePricingLine] = []
    seen = set()
    for service_id in selected_service_ids:
        if service_id in seen:
            continue
        service = find_record(reference.services, service_id)
        if service is None:
            logger.info(f"[PRICING] Skipping unknown service id {service_id}")
            continue
        seen.add(service_id)

        factors = PricingFactors(
            developer_type_multiplier=developer_multiplier,
            regional_multiplier=regional_multiplier,
            plot_area_multiplier=plot_area_multiplier,
            service_complexity_factor=(
                NEUTRAL_MULTIPLIER if is_agent
                else lookup_multiplier(reference.service_categories, service.category_id)
            ),
        )
        lines.append(build_service_line(service, factors, overrides.get(service_id)))

    return summarize_lines(lines, is_agent_registration=is_agent)


def update_service_price(
    pricing: QuotationPricing,
    service_id,
    new_price,
    discount_reason: str = '',
) -> QuotationPricing:
    """
    New aggregate with one line's final price replaced.

    The line's calculated price is untouched; totals and approval level are
    recomputed from the full line set. Unknown service ids return the
    aggregate unchanged.
    """
    if pricing.line_for(service_id) is None:
        return pricing
    if pricing.is_agent_registration:
        raise BusinessLogicError('Agent registrations use fixed pricing; price overrides are not allowed.')

    lines = tuple(
        _priced_line(line, new_price, discount_reason) if line.service_id == service_id else line
        for line in pricing.services
    )
    return summarize_lines(lines, is_agent_registration=pricing.is_agent_registration)


def pricing_breakdown(line: ServicePricingLine) -> Dict[str, Any]:
    """
    Stepwise adjustments from base price to final price, for display.

    Each adjustment is applied on top of the previous ones, so they add up
    to the unrounded calculated price.
    """
    factors = line.pricing_factors
    base = to_decimal(line.base_price)
    developer = to_decimal(factors.developer_type_multiplier)
    regional = to_decimal(factors.regional_multiplier)
    plot_area = to_decimal(factors.plot_area_multiplier)
    complexity = to_decimal(factors.service_complexity_factor)

    return {
        'base_price': json_number(base),
        'developer_type_adjustment': json_number(base * (developer - 1)),
        'regional_adjustment': json_number(base * developer * (regional - 1)),
        'plot_area_adjustment': json_number(base * developer * regional * (plot_area - 1)),
        'complexity_adjustment': json_number(base * developer * regional * plot_area * (complexity - 1)),
        'calculated_price': json_number(line.calculated_price),
        'discount': json_number(line.discount_amount),
        'final_price': json_number(line.final_price),
    }


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

def validate_pricing(pricing: QuotationPricing) -> ValidationResult:
    """
    Business-rule check of an aggregate. Collects every violation.

    Advisory only: callers decide whether a failure blocks submission.
    """
    errors: List[str] = []

    for line in pricing.services:
        if line.final_price < 0:
            errors.append(f'Service "{line.service_name}" cannot have negative price')

    for line in pricing.services:
        if line.discount_percentage > MAX_LINE_DISCOUNT_PERCENTAGE:
            errors.append(
                f'Service "{line.service_name}" has excessive discount '
                f'({float(line.discount_percentage):.1f}%)'
            )

    if pricing.final_total < MIN_QUOTATION_TOTAL:
        errors.append(f'Quotation total is below minimum threshold of {money_in(MIN_QUOTATION_TOTAL)}')

    return ValidationResult(is_valid=not errors, errors=tuple(errors))
