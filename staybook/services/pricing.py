"""Stay pricing: nights x nightly rate plus taxes and service fee."""

from decimal import ROUND_HALF_UP, Decimal

from staybook.models.booking import DateRange, PricingBreakdown

TAX_RATE = Decimal("0.12")
SERVICE_FEE_RATE = Decimal("0.05")

# Currency minor unit (centavos / cents)
MINOR_UNIT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Round a monetary amount to the currency minor unit."""
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def _as_decimal(value: Decimal | int | str | float) -> Decimal:
    # str() keeps floats from dragging binary noise into the amount
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quote_nights(nightly_rate: Decimal | int | str | float, nights: int) -> PricingBreakdown:
    """
    Price a stay of a given number of nights.

    Args:
        nightly_rate: Positive nightly rate
        nights: Number of nights (at least 1)

    Returns:
        PricingBreakdown

    Raises:
        ValueError: If the rate is not positive or nights < 1
    """
    rate = _as_decimal(nightly_rate)
    if rate <= 0:
        raise ValueError(f"Nightly rate must be positive, got {rate}")
    if nights < 1:
        raise ValueError(f"A stay needs at least one night, got {nights}")

    subtotal = to_money(rate * nights)
    taxes = to_money(subtotal * TAX_RATE)
    service_fee = to_money(subtotal * SERVICE_FEE_RATE)

    return PricingBreakdown(
        nights=nights,
        subtotal=subtotal,
        taxes=taxes,
        service_fee=service_fee,
        total=subtotal + taxes + service_fee,
    )


def compute_pricing(
    nightly_rate: Decimal | int | str | float,
    date_range: DateRange,
) -> PricingBreakdown:
    """Price a stay over a validated date range."""
    return quote_nights(nightly_rate, date_range.nights)
