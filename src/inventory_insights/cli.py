"""
Command-line interface for the Inventory Insights client.

Sign in, register a company, ship audit events and browse the audit trail
from a terminal. The session is kept in the session file between runs.
"""

import argparse
import getpass
import json
import sys
from typing import Optional

from inventory_insights.core.models import Plan, TrailFilter
from inventory_insights.core.validator import RegistrationRequest
from inventory_insights.services.audit_trail import action_color, format_timestamp
from inventory_insights.services.factory import ClientServices, create_services
from inventory_insights.utils.config import get_config, validate_configuration
from inventory_insights.utils.exceptions import (
    APIError, AuthenticationError, InventoryInsightsError, RegistrationError, ValidationError
)
from inventory_insights.utils.logger import get_logger, setup_logging


cli_logger = get_logger(__name__)


class InventoryInsightsCLI:
    """Command-line interface for Inventory Insights operations."""

    def __init__(self, services: Optional[ClientServices] = None):
        self.services = services

    def _init_services(self) -> ClientServices:
        """Initialize services (lazy loading)."""
        if self.services is None:
            self.services = create_services(get_config())
            cli_logger.debug("Services initialized successfully")
        return self.services

    def cmd_config(self, args) -> int:
        """Handle configuration commands."""
        result = validate_configuration()

        if args.config_action == "validate":
            if result["valid"]:
                print("✅ Configuration is valid")
                return 0
            print(f"❌ Configuration validation failed: {result['error']}")
            return 1

        if not result["valid"]:
            print(f"❌ Configuration validation failed: {result['error']}")
            return 1
        print("📋 Current configuration:")
        print(json.dumps(result["summary"], indent=2))
        return 0

    def cmd_login(self, args) -> int:
        services = self._init_services()
        password = args.password or getpass.getpass("Password: ")

        print("🔐 Signing in...")
        try:
            result = services.auth.sign_in(args.email, password)
        except AuthenticationError as e:
            print(f"❌ {e.user_message}")
            return 1

        if not result.persisted:
            print("⚠️  Signed in, but the session could not be saved")
        print(f"✅ Welcome back, {result.user.name}! ({result.user.company_name}, plan: {result.user.plan})")
        return 0

    def cmd_signup(self, args) -> int:
        services = self._init_services()
        password = args.password or getpass.getpass("Password: ")

        try:
            result = services.auth.sign_up(args.email, password, args.name)
        except (ValidationError, AuthenticationError) as e:
            print(f"❌ {e}")
            return 1

        if result.confirmation_required:
            print("📧 Please check your email and confirm your account, then sign in.")
        else:
            print("✅ Account created successfully! Your profile will be set up automatically when you sign in.")
        return 0

    def cmd_register(self, args) -> int:
        services = self._init_services()
        password = args.password or getpass.getpass("Password: ")
        confirm = args.password or getpass.getpass("Confirm password: ")

        request = RegistrationRequest(
            company_name=args.company,
            name=args.name,
            email=args.email,
            password=password,
            confirm_password=confirm,
            plan=args.plan,
        )

        try:
            result = services.registration.register(request)
        except ValidationError as e:
            print(f"❌ {e}")
            return 1
        except RegistrationError as e:
            print(f"❌ {e.user_message}")
            if e.has_orphans:
                print(f"⚠️  Partially created: {', '.join(e.completed_steps)} (failed at {e.step})")
            return 1

        print("✅ Welcome to Inventory Insights!")
        print(f"   Company: {result.tenant.company_name}")
        print(f"   Plan:    {result.plan}")
        print(f"   Email:   {args.email}")
        print("📧 Please check your email to verify your account, then sign in.")
        return 0

    def cmd_logout(self, args) -> int:
        services = self._init_services()
        if services.auth.sign_out():
            print("👋 Signed out")
            return 0
        print("❌ Could not clear the stored session")
        return 1

    def cmd_whoami(self, args) -> int:
        services = self._init_services()
        user = services.auth.current_user()
        if user is None or not services.auth.is_authenticated():
            print("Not signed in")
            return 1
        print(json.dumps(user.to_dict(), indent=2))
        return 0

    def cmd_audit(self, args) -> int:
        services = self._init_services()
        shipper = services.shipper

        if args.audit_action == "status":
            print(json.dumps(shipper.debug_info(), indent=2))
            return 0

        if args.audit_action == "log-scan":
            ok = shipper.log_inventory_scan(args.sku, args.quantity, args.location, source=args.source)
        elif args.audit_action == "log-count":
            ok = shipper.log_count_action(args.location, args.action, is_complete=args.complete)
        elif args.audit_action == "log-config":
            ok = shipper.log_configuration_change(args.config_type, args.old_value, args.new_value)
        else:
            ok = shipper.test_logging()

        print("✅ Audit event logged" if ok else "❌ Audit event was not logged (see log for details)")
        return 0 if ok else 1

    def cmd_trail(self, args) -> int:
        services = self._init_services()
        viewer = services.trail

        try:
            viewer.fetch(args.location)
        except AuthenticationError as e:
            print(f"❌ {e.user_message}")
            return 1
        except APIError as e:
            print(f"❌ {e.message}")
            return 1

        viewer.set_filter(TrailFilter(
            action=args.action or "",
            sku=args.sku or "",
            start_date=args.start_date or "",
            end_date=args.end_date or "",
        ))

        try:
            page = viewer.go_to_page(args.page)
        except ValueError as e:
            print(f"❌ {e}")
            return 1

        print(f"📋 Activity for {args.location}")
        if page.is_empty:
            print("No activity found")
            return 0

        for entry in page.items:
            when = format_timestamp(entry.timestamp, viewer.tz_name)
            if args.json:
                print(json.dumps({
                    "id": entry.id, "timestamp": entry.timestamp, "action": entry.action,
                    "sku": entry.sku, "details": entry.details, "user": entry.user,
                    "color": action_color(entry.action_type),
                }))
            else:
                print(f"{entry.icon} {when:>11}  {entry.action:<14} {entry.details:<32} {entry.user}")

        print(f"Page {page.page} of {page.total_pages} ({page.total_count} entries)")
        return 0

    def cmd_stats(self, args) -> int:
        services = self._init_services()
        try:
            stats = services.trail.stats(args.location)
        except (AuthenticationError, APIError) as e:
            print(f"❌ {e}")
            return 1
        print(json.dumps(stats, indent=2))
        return 0


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="inventory-insights",
        description="Inventory Insights CLI - sign-in, registration and audit trail",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  inventory-insights login --email me@example.com
  inventory-insights register --company "Acme" --name "Jo" --email jo@acme.io
  inventory-insights audit log-scan WIDGET-1 12 PRIMARY
  inventory-insights trail PRIMARY --action count --from 2026-10-01
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument("config_action", choices=["show", "validate"], help="Configuration action")

    login_parser = subparsers.add_parser("login", help="Sign in")
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--password", help="Prompted when omitted")

    signup_parser = subparsers.add_parser("signup", help="Create an account without a company")
    signup_parser.add_argument("--email", required=True)
    signup_parser.add_argument("--name", required=True)
    signup_parser.add_argument("--password", help="Prompted when omitted")

    register_parser = subparsers.add_parser("register", help="Register a company and admin account")
    register_parser.add_argument("--company", required=True)
    register_parser.add_argument("--name", required=True)
    register_parser.add_argument("--email", required=True)
    register_parser.add_argument("--password", help="Prompted (twice) when omitted")
    register_parser.add_argument(
        "--plan", choices=[plan.value for plan in Plan], default=Plan.STARTER.value
    )

    subparsers.add_parser("logout", help="Sign out and clear the stored session")
    subparsers.add_parser("whoami", help="Show the signed-in user")

    audit_parser = subparsers.add_parser("audit", help="Ship audit events")
    audit_subparsers = audit_parser.add_subparsers(dest="audit_action", required=True)

    scan_parser = audit_subparsers.add_parser("log-scan", help="Log an item count")
    scan_parser.add_argument("sku")
    scan_parser.add_argument("quantity")
    scan_parser.add_argument("location")
    scan_parser.add_argument("--source", default="mobile_count")

    count_parser = audit_subparsers.add_parser("log-count", help="Log a count session action")
    count_parser.add_argument("location")
    count_parser.add_argument("action", help="e.g. start, reset, complete")
    count_parser.add_argument("--complete", action="store_true")

    config_change_parser = audit_subparsers.add_parser("log-config", help="Log a configuration change")
    config_change_parser.add_argument("config_type")
    config_change_parser.add_argument("old_value")
    config_change_parser.add_argument("new_value")

    audit_subparsers.add_parser("test", help="Send a test event")
    audit_subparsers.add_parser("status", help="Show shipper status")

    trail_parser = subparsers.add_parser("trail", help="Browse the audit trail")
    trail_parser.add_argument("location")
    trail_parser.add_argument("--action", help="Action name contains")
    trail_parser.add_argument("--sku", help="SKU contains")
    trail_parser.add_argument("--from", dest="start_date", help="YYYY-MM-DD, inclusive")
    trail_parser.add_argument("--to", dest="end_date", help="YYYY-MM-DD, inclusive")
    trail_parser.add_argument("--page", type=int, default=1)
    trail_parser.add_argument("--json", action="store_true", help="One JSON object per line")

    stats_parser = subparsers.add_parser("stats", help="Audit statistics")
    stats_parser.add_argument("location", nargs="?")

    return parser


COMMANDS = {
    "config": InventoryInsightsCLI.cmd_config,
    "login": InventoryInsightsCLI.cmd_login,
    "signup": InventoryInsightsCLI.cmd_signup,
    "register": InventoryInsightsCLI.cmd_register,
    "logout": InventoryInsightsCLI.cmd_logout,
    "whoami": InventoryInsightsCLI.cmd_whoami,
    "audit": InventoryInsightsCLI.cmd_audit,
    "trail": InventoryInsightsCLI.cmd_trail,
    "stats": InventoryInsightsCLI.cmd_stats,
}


def main(argv=None, cli: Optional[InventoryInsightsCLI] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging()

    if not args.command:
        parser.print_help()
        return 1

    cli = cli or InventoryInsightsCLI()

    try:
        return COMMANDS[args.command](cli, args)
    except KeyboardInterrupt:
        print("\n⏹️  Operation cancelled by user")
        return 130
    except InventoryInsightsError as e:
        cli_logger.error(f"CLI operation failed: {e}", exc_info=True)
        print(f"❌ Operation failed: {e.message}")
        return 1


def cli_entry_point():
    """Entry point for console script."""
    sys.exit(main())


if __name__ == "__main__":
    cli_entry_point()
