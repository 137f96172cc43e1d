"""
Unit tests for the pricing validator.
"""

from decimal import Decimal

from rera_quotes.services.pricing_engine import (
    ServicePricingLine,
    summarize_lines,
    validate_pricing,
)


def _line(service_id, calculated, final, name=None):
    calculated = Decimal(calculated)
    final = Decimal(final)
    discount = calculated - final
    return ServicePricingLine(
        service_id=service_id,
        service_name=name or f'Service {service_id}',
        base_price=calculated,
        calculated_price=calculated,
        final_price=final,
        discount_amount=discount,
        discount_percentage=(discount / calculated * 100) if calculated else Decimal('0'),
    )


class TestValidatePricing:

    def test_valid_pricing(self):
        result = validate_pricing(summarize_lines([_line(1, 5000, 4500)]))

        assert result.is_valid is True
        assert result.errors == ()

    def test_minimum_total_boundary(self):
        below = validate_pricing(summarize_lines([_line(1, 999, 999)]))
        at = validate_pricing(summarize_lines([_line(1, 1000, 1000)]))

        assert below.is_valid is False
        assert below.errors == ('Quotation total is below minimum threshold of ₹1,000',)
        assert at.is_valid is True

    def test_excessive_line_discount(self):
        result = validate_pricing(summarize_lines([
            _line(1, 10000, 4000, name='Title Report'),
            _line(2, 10000, 5000, name='Audit'),
        ]))

        assert result.errors == ('Service "Title Report" has excessive discount (60.0%)',)

    def test_negative_price(self):
        result = validate_pricing(summarize_lines([
            _line(1, 10000, -100, name='Refund'),
            _line(2, 5000, 5000),
        ]))

        assert 'Service "Refund" cannot have negative price' in result.errors

    def test_collects_every_violation(self):
        result = validate_pricing(summarize_lines([_line(1, 1000, 100, name='Tiny')]))

        assert result.is_valid is False
        assert result.errors == (
            'Service "Tiny" has excessive discount (90.0%)',
            'Quotation total is below minimum threshold of ₹1,000',
        )
        assert result.to_dict() == {'is_valid': False, 'errors': list(result.errors)}
