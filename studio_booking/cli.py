#!/usr/bin/env python3
"""
Command line front-end for the studio booking client.

Usage:
    studio-booking login --email jane@example.com
    studio-booking book --service "Wedding Shoot" --package "Silver Package" \
        --date 2025-06-01 --location Dehradun
    studio-booking bookings
    studio-booking admin-list --status pending
    studio-booking admin-status <booking_id> approved --notes "Confirmed slot"
"""

import argparse
import getpass
import sys
from typing import Callable, Dict, List, Optional

from studio_booking.app import StudioApp, build_app
from studio_booking.bookings.form import Outcome
from studio_booking.domain.booking import Booking, BookingStatus
from studio_booking.exceptions import StudioBookingError


def _print_bookings(bookings: List[Booking]) -> None:
    if not bookings:
        print("No bookings found.")
        return
    print(f"{'ID':<26} {'STATUS':<10} {'DATE':<12} {'PRICE':>8}  SERVICE / PACKAGE")
    print("-" * 80)
    for booking in bookings:
        print(
            f"{booking.id:<26} {booking.status.value:<10} {booking.date[:10]:<12} "
            f"{booking.price:>8}  {booking.service_type} / {booking.package_type}"
        )
        if booking.admin_notes:
            print(f"{'':<26} note: {booking.admin_notes}")


def _password(args: argparse.Namespace) -> str:
    return args.password or getpass.getpass("Password: ")


def cmd_login(app: StudioApp, args: argparse.Namespace) -> int:
    session = app.auth.login({"email": args.email, "password": _password(args)})
    print(f"Logged in as {session.display_name or session.email} ({session.role.value})")
    return 0


def cmd_register(app: StudioApp, args: argparse.Namespace) -> int:
    session = app.auth.register(
        {"name": args.name, "email": args.email, "password": _password(args)}
    )
    print(f"Registered and logged in as {session.display_name or session.email}")
    return 0


def cmd_logout(app: StudioApp, args: argparse.Namespace) -> int:
    app.auth.logout()
    print("Logged out")
    return 0


def cmd_whoami(app: StudioApp, args: argparse.Namespace) -> int:
    session = app.auth.current
    if not session.is_authenticated:
        print("Not logged in")
        return 0
    print(f"{session.display_name} <{session.email}> role={session.role.value}")
    return 0


def cmd_admin_otp(app: StudioApp, args: argparse.Namespace) -> int:
    print(app.auth.request_admin_otp(args.email))
    return 0


def cmd_admin_verify(app: StudioApp, args: argparse.Namespace) -> int:
    session = app.auth.verify_admin_otp(args.email, args.otp)
    print(f"Admin session started for {session.email}")
    return 0


def cmd_catalog(app: StudioApp, args: argparse.Namespace) -> int:
    print("Services:")
    for entry in app.catalog.services:
        print(f"  - {entry.value}")
    print("Packages:")
    for entry in app.catalog.packages:
        print(f"  - {entry.value}: {entry.price}")
    return 0


def cmd_book(app: StudioApp, args: argparse.Namespace) -> int:
    def prompt_login() -> None:
        print("You need to log in to book.")
        email = args.email or input("Email: ")
        try:
            app.auth.login({"email": email, "password": _password(args)})
        except StudioBookingError as e:
            print(f"Login failed: {e.user_message}", file=sys.stderr)

    form = app.booking_form(open_auth_prompt=prompt_login)
    form.select_service(args.service)
    form.select_package(args.package)
    form.set_field("date", args.date)
    form.set_field("location", args.location)
    form.set_field("additional_requirements", args.notes or "")

    result = form.submit()
    if result.outcome == Outcome.AWAITING_AUTH:
        result = form.on_auth_prompt_closed()
    form.close()

    if result is None or result.outcome == Outcome.AWAITING_AUTH:
        print("Booking not submitted: not logged in.", file=sys.stderr)
        return 1
    if result.outcome == Outcome.FAILED:
        print(result.message.text if result.message else "Booking failed", file=sys.stderr)
        return 1

    booking = result.booking
    print(result.message.text)
    print(f"Booking {booking.id}: {booking.status.value}, price {booking.price}")
    return 0


def cmd_bookings(app: StudioApp, args: argparse.Namespace) -> int:
    bookings = app.store.fetch_user_bookings()
    if bookings is None:
        bookings = app.store.user_bookings
    if app.store.error:
        print(app.store.error.message, file=sys.stderr)
        return 1
    _print_bookings(bookings)
    return 0


def cmd_cancel(app: StudioApp, args: argparse.Namespace) -> int:
    result = app.store.cancel_booking(args.booking_id)
    print(result.get("message", "Booking cancelled"))
    return 0


def cmd_admin_list(app: StudioApp, args: argparse.Namespace) -> int:
    review = app.admin_review()
    bookings = review.set_filter(args.status)
    if review.error:
        print(review.error.message, file=sys.stderr)
        return 1
    _print_bookings(bookings)
    return 0


def cmd_admin_status(app: StudioApp, args: argparse.Namespace) -> int:
    result = app.admin_review().transition(args.booking_id, args.status, args.notes or "")
    if not result.ok:
        print(result.error.message if result.error else "Update failed", file=sys.stderr)
        return 1
    print(f"Booking {result.booking.id} is now {result.booking.status.value}")
    if result.stale:
        print("Warning: booking list could not be refreshed and may be out of date.")
    return 0


COMMANDS: Dict[str, Callable[[StudioApp, argparse.Namespace], int]] = {
    "login": cmd_login,
    "register": cmd_register,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "admin-otp": cmd_admin_otp,
    "admin-verify": cmd_admin_verify,
    "catalog": cmd_catalog,
    "book": cmd_book,
    "bookings": cmd_bookings,
    "cancel": cmd_cancel,
    "admin-list": cmd_admin_list,
    "admin-status": cmd_admin_status,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="studio-booking", description="Photography studio booking client"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Log in with email and password")
    login.add_argument("--email", required=True)
    login.add_argument("--password")

    register = sub.add_parser("register", help="Create an account")
    register.add_argument("--name", required=True)
    register.add_argument("--email", required=True)
    register.add_argument("--password")

    sub.add_parser("logout", help="Forget the stored session")
    sub.add_parser("whoami", help="Show the current session")
    sub.add_parser("catalog", help="List services and package prices")

    otp = sub.add_parser("admin-otp", help="Email an admin verification code")
    otp.add_argument("--email", required=True)

    verify = sub.add_parser("admin-verify", help="Log in as admin with a verification code")
    verify.add_argument("--email", required=True)
    verify.add_argument("--otp", required=True)

    book = sub.add_parser("book", help="Request a booking")
    book.add_argument("--service", required=True)
    book.add_argument("--package", required=True)
    book.add_argument("--date", required=True, help="YYYY-MM-DD")
    book.add_argument("--location", required=True)
    book.add_argument("--notes", help="Additional requirements")
    book.add_argument("--email", help="Login email if not logged in")
    book.add_argument("--password", help="Login password if not logged in")

    sub.add_parser("bookings", help="List your bookings")

    cancel = sub.add_parser("cancel", help="Cancel a pending booking")
    cancel.add_argument("booking_id")

    admin_list = sub.add_parser("admin-list", help="List all bookings (admin)")
    admin_list.add_argument("--status", choices=[s.value for s in BookingStatus])

    admin_status = sub.add_parser("admin-status", help="Change a booking's status (admin)")
    admin_status.add_argument("booking_id")
    admin_status.add_argument("status", choices=[s.value for s in BookingStatus])
    admin_status.add_argument("--notes")

    return parser


def main(argv: Optional[List[str]] = None, app: Optional[StudioApp] = None) -> int:
    args = build_parser().parse_args(argv)
    app = app or build_app(auto_load=False)

    try:
        return COMMANDS[args.command](app, args)
    except StudioBookingError as e:
        print(e.user_message, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
