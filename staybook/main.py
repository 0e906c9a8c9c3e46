"""Command line entry point for the StayBook booking engine."""

import argparse
import asyncio
import sys
from datetime import date
from decimal import Decimal, InvalidOperation

from staybook.config import get_settings
from staybook.models.booking import RoomTypeContext
from staybook.services.booking_flow import BookingFlow, BookingStep
from staybook.services.pricing import quote_nights
from staybook.services.reservation_service import (
    ReservationService,
    create_booking_client,
    create_reconciler,
    create_tracker,
)
from staybook.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


# =============================================================================
# Argument Types
# =============================================================================


def _date_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD") from e


def _money_arg(value: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"Invalid amount '{value}'") from e
    if amount <= 0:
        raise argparse.ArgumentTypeError("Amount must be positive")
    return amount


# =============================================================================
# Commands
# =============================================================================


def cmd_quote(args: argparse.Namespace) -> int:
    """Print the price of a stay."""
    currency = args.currency or get_settings().app.default_currency
    nights = (args.check_out - args.check_in).days
    if nights < 1:
        print("❌ Check-out date must be after check-in date")
        return 1

    pricing = quote_nights(args.rate, nights)

    print(f"\n💰 {nights} night{'s' if nights != 1 else ''} x {currency} {args.rate:,.2f}")
    print(f"   Subtotal:     {currency} {pricing.subtotal:>12,.2f}")
    print(f"   Taxes (12%):  {currency} {pricing.taxes:>12,.2f}")
    print(f"   Service (5%): {currency} {pricing.service_fee:>12,.2f}")
    print(f"   Total:        {currency} {pricing.total:>12,.2f}\n")
    return 0


def _print_errors(title: str, errors: dict[str, str]) -> None:
    print(f"❌ {title}")
    for name, message in errors.items():
        print(f"   {name}: {message}")


async def cmd_book(args: argparse.Namespace) -> int:
    """Drive the whole booking flow from options and submit it."""
    settings = get_settings()

    room_type = RoomTypeContext(
        property_id=args.property_id,
        room_type_id=args.room_type_id,
        name=args.room_name,
        max_occupancy=args.max_occupancy,
        max_adults=args.max_adults,
        max_children=args.max_children,
        base_rate=args.rate,
        currency=args.currency or settings.app.default_currency,
    )
    flow = BookingFlow(room_type)

    flow.select_check_in(args.check_in)
    flow.select_check_out(args.check_out)
    flow.set_guests(args.adults, args.children)
    flow.set_guest_details(
        args.first_name,
        args.last_name,
        args.email,
        phone=args.phone,
        special_requests=args.special_requests,
    )

    while flow.step is not BookingStep.IDENTITY:
        step = flow.step
        result = flow.advance()
        if not result.advanced:
            _print_errors(f"{step.value.capitalize()} step failed", result.validation.errors)
            return 1
        if result.notice:
            print(f"✅ {result.notice}")

    pricing = flow.draft.pricing
    if room_type.name:
        print(f"🛏️  {room_type.name}")
    print(f"🧾 Total: {room_type.currency} {pricing.total:,.2f} for {pricing.nights} nights")

    tracker = create_tracker(settings, persistent=True)

    async with create_booking_client(settings) as client:
        service = ReservationService(client, tracker)
        outcome = await service.submit(flow)

    if not outcome.ok:
        error = outcome.error
        if error.field_errors:
            _print_errors(error.message, error.field_errors)
        else:
            print(f"❌ Booking failed: {error.message}")
            if error.details:
                print(f"   {error.details}")
        return 1

    print(f"✅ Reservation {outcome.result.reservation_id} created")
    if outcome.result.confirmation_number:
        print(f"   Confirmation: {outcome.result.confirmation_number}")
    print(f"🔗 Complete payment at: {outcome.checkout_url}")
    if outcome.warning:
        print(f"⚠️  {outcome.warning}")
    return 0


def cmd_pending(args: argparse.Namespace) -> int:
    """Show the pending reservation of this shell session."""
    marker = create_tracker(persistent=True).peek()
    if marker is None:
        print("No pending reservation in this session.")
        return 0

    print(f"⏳ Reservation:     {marker.reservation_id}")
    print(f"   Payment session: {marker.payment_session_id}")
    print(f"   Submitted at:    {marker.timestamp}")
    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    """Wait for the pending reservation's payment to settle."""
    settings = get_settings()
    tracker = create_tracker(settings, persistent=True)

    async with create_booking_client(settings) as client:
        reconciler = create_reconciler(client, tracker, settings)
        if args.once:
            reconciler.max_attempts = 1
        result = await reconciler.reconcile_pending()

    if result is None:
        print("No pending reservation in this session.")
        return 0

    if result.paid:
        print(f"✅ Reservation {result.reservation_id} is paid and confirmed")
        tracker.clear()
        return 0
    if result.failed:
        print(f"❌ Payment for reservation {result.reservation_id} was declined or cancelled")
        return 1
    if result.status:
        print(
            f"⏳ Reservation {result.reservation_id}: "
            f"{result.status.status} / {result.status.payment_status}"
        )
    else:
        print(f"⏳ Could not fetch status: {result.error}")
    return 2


# =============================================================================
# Parser & Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staybook",
        description="Guest reservation booking engine",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Price a stay")
    quote.add_argument("--rate", type=_money_arg, required=True, help="Nightly rate")
    quote.add_argument("--check-in", type=_date_arg, required=True)
    quote.add_argument("--check-out", type=_date_arg, required=True)
    quote.add_argument("--currency")

    book = sub.add_parser("book", help="Create a reservation and checkout session")
    book.add_argument("--property-id", required=True)
    book.add_argument("--room-type-id", required=True)
    book.add_argument("--room-name", default="")
    book.add_argument("--rate", type=_money_arg, required=True, help="Nightly rate")
    book.add_argument("--max-occupancy", type=int, required=True)
    book.add_argument("--max-adults", type=int, required=True)
    book.add_argument("--max-children", type=int, default=0)
    book.add_argument("--currency")
    book.add_argument("--check-in", type=_date_arg)
    book.add_argument("--check-out", type=_date_arg)
    book.add_argument("--adults", type=int, default=2)
    book.add_argument("--children", type=int, default=0)
    book.add_argument("--first-name", default="")
    book.add_argument("--last-name", default="")
    book.add_argument("--email", default="")
    book.add_argument("--phone")
    book.add_argument("--special-requests")

    sub.add_parser("pending", help="Show this session's pending reservation")

    status = sub.add_parser("status", help="Reconcile the pending reservation's payment")
    status.add_argument("--once", action="store_true", help="Check once instead of polling")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    app = get_settings().app
    setup_logging(app.log_level, app.log_format)

    args = build_parser().parse_args(argv)
    logger.debug("cli_command", command=args.command)

    if args.command == "quote":
        return cmd_quote(args)
    if args.command == "book":
        return asyncio.run(cmd_book(args))
    if args.command == "pending":
        return cmd_pending(args)
    return asyncio.run(cmd_status(args))


if __name__ == "__main__":
    sys.exit(main())
