# app/cli/archives.py
"""
CLI commands for yearly archives and GDPR retention.

Usage:
    python -m app.cli.archives status
    python -m app.cli.archives list
    python -m app.cli.archives create --year 2024
    python -m app.cli.archives check-expiration
    python -m app.cli.archives reset --confirm SUPPRIMER --archive-first
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()


def get_db_session():
    """Get a database session."""
    from app.database import SessionLocal

    return SessionLocal()


def _print_counts(counts):
    print(f"  Teams: {counts.teams}")
    print(f"  Members: {counts.members}")
    print(f"  Payment events: {counts.payments}")


def cmd_status(args):
    """Show event year, live data and archive overview."""
    from app.services.archives import check_reset_safety, list_archives
    from app.services.archives.archive_service import get_retention_years

    db = get_db_session()
    try:
        report = check_reset_safety(db)
        archives = list_archives(db)

        print("\n=== Archive Status ===\n")

        print(f"Event year: {report.year}")
        print(f"Retention: {get_retention_years(db)} years")

        print("\nLive data:")
        _print_counts(report.counts)

        print(f"\nArchive for {report.year}: {'yes' if report.archive_exists else 'no'}")
        print(f"Archives stored: {len(archives)}")
        print(f"  Expired: {sum(1 for a in archives if a.is_expired)}")

        print(f"\n{report.message}")
        print()
    finally:
        db.close()


def cmd_list(args):
    """List all archives."""
    from app.services.archives import list_archives

    db = get_db_session()
    try:
        archives = list_archives(db)

        print("\n=== Archives ===\n")
        if not archives:
            print("No archives.")
        for archive in archives:
            status = "[EXPIRED]" if archive.is_expired else ""
            print(f"{archive.event_year} {status}")
            print(f"  Archived at: {archive.archived_at.isoformat()}")
            print(f"  Retention deadline: {archive.expiration_date.date().isoformat()}")
            print(f"  Teams: {archive.total_teams}")
            print(f"  Participants: {archive.total_participants}")
            print(f"  Revenue: {archive.total_revenue / 100:.2f} EUR")
            print()
    finally:
        db.close()


def cmd_event_year(args):
    """Print the current event year."""
    from app.services.archives import detect_event_year

    db = get_db_session()
    try:
        print(detect_event_year(db))
    finally:
        db.close()


def cmd_create(args):
    """Archive the live registration data."""
    from app.services.archives import ArchiveError, archive_event_year

    db = get_db_session()
    try:
        try:
            archive = archive_event_year(db, year=args.year)
        except ArchiveError as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(f"Created archive for {archive.event_year}")
        print(f"  Teams: {archive.total_teams}")
        print(f"  Participants: {archive.total_participants}")
        print(f"  Revenue: {archive.total_revenue / 100:.2f} EUR")
        print(f"  Retention deadline: {archive.expiration_date.date().isoformat()}")
        print(f"  Data hash: {archive.data_hash}")
    finally:
        db.close()


def cmd_export(args):
    """Write an archive export bundle to disk."""
    import json

    from app.services.archives import ArchiveError, export_archive, parse_event_year

    db = get_db_session()
    try:
        try:
            bundle = export_archive(db, parse_event_year(args.year))
        except ArchiveError as e:
            print(f"Error: {e}")
            sys.exit(1)

        if args.format == "zip":
            path = args.output or f"{bundle.basename}.zip"
            with open(path, "wb") as f:
                f.write(bundle.to_zip_bytes())
        else:
            path = args.output or f"{bundle.basename}.json"
            with open(path, "w", encoding="utf-8") as f:
                json.dump(bundle.to_json_payload()["export"], f, indent=2, ensure_ascii=False)

        print(f"Exported archive {bundle.event_year} to {path}")
        if bundle.is_expired:
            print("  (anonymized: names and emails omitted)")
    finally:
        db.close()


def cmd_check_expiration(args):
    """Anonymize archives past their retention deadline."""
    from app.services.archives import ArchiveStorageError, check_all_expirations

    db = get_db_session()
    try:
        try:
            results = check_all_expirations(db)
        except ArchiveStorageError as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(f"Checked: {len(results)}")
        print(f"Expired: {sum(1 for r in results if r.expired)}")
        print(f"Anonymized now: {sum(1 for r in results if r.updated)}")
        for result in results:
            if result.updated:
                print(f"  - {result.year}")
    finally:
        db.close()


def cmd_reset_check(args):
    """Report whether resetting would lose unarchived data."""
    from app.services.archives import check_reset_safety

    db = get_db_session()
    try:
        report = check_reset_safety(db)

        print(f"\nEvent year: {report.year}")
        print(f"Archive exists: {'yes' if report.archive_exists else 'no'}")
        _print_counts(report.counts)
        print(f"\n{report.message}")

        if not report.safe:
            sys.exit(2)
    finally:
        db.close()


def cmd_reset(args):
    """Wipe live registration data."""
    from app.services.archives import ArchiveError, reset_data

    db = get_db_session()
    try:
        try:
            result = reset_data(
                db,
                confirmation=args.confirm,
                force=args.force,
                create_archive_first=args.archive_first,
            )
        except ArchiveError as e:
            print(f"Error: {e}")
            sys.exit(1)

        if not result.success:
            print(f"Warning: {result.message}")
            _print_counts(result.counts)
            print("\nRe-run with --archive-first --force to archive then reset, or --force alone to reset anyway.")
            sys.exit(2)

        if result.archive_created:
            print(f"Created archive for {result.year}")
        print("Deleted:")
        _print_counts(result.deleted)
    finally:
        db.close()


def cmd_set_setting(args):
    """Set an admin setting."""
    from app.models import SettingKey
    from app.services.archives import InvalidEventYearError, parse_event_year
    from app.services.settings_service import set_setting

    value = args.value.strip()
    if args.key == SettingKey.EVENT_YEAR.value and value:
        try:
            value = str(parse_event_year(value))
        except InvalidEventYearError as e:
            print(f"Error: {e}")
            sys.exit(1)
    elif args.key == SettingKey.GDPR_RETENTION_YEARS.value:
        if not value.isdigit():
            print("Error: gdpr_retention_years must be a non-negative integer")
            sys.exit(1)

    db = get_db_session()
    try:
        set_setting(db, args.key, value)
        print(f"{args.key} = {value or '(cleared)'}")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(
        description="NDI Archive Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Overview of live data and archives
  python -m app.cli.archives status

  # Archive the detected event year
  python -m app.cli.archives create

  # Daily cron: anonymize archives past retention
  python -m app.cli.archives check-expiration

  # Archive then wipe for the next edition
  python -m app.cli.archives reset --confirm SUPPRIMER --archive-first --force

  # Pin the event year
  python -m app.cli.archives set-setting event_year 2024
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # status command
    status_parser = subparsers.add_parser("status", help="Show archive status")
    status_parser.set_defaults(func=cmd_status)

    # list command
    list_parser = subparsers.add_parser("list", help="List all archives")
    list_parser.set_defaults(func=cmd_list)

    # event-year command
    year_parser = subparsers.add_parser("event-year", help="Print the current event year")
    year_parser.set_defaults(func=cmd_event_year)

    # create command
    create_parser = subparsers.add_parser("create", help="Archive live registration data")
    create_parser.add_argument("--year", default=None, help="Event year (default: detected)")
    create_parser.set_defaults(func=cmd_create)

    # export command
    export_parser = subparsers.add_parser("export", help="Export an archive bundle")
    export_parser.add_argument("year", help="Event year")
    export_parser.add_argument("--format", choices=["json", "zip"], default="zip", help="Bundle format (default: zip)")
    export_parser.add_argument("--output", default=None, help="Output path (default: <prefix>-<year>-archive.<format>)")
    export_parser.set_defaults(func=cmd_export)

    # check-expiration command
    expire_parser = subparsers.add_parser("check-expiration", help="Anonymize expired archives")
    expire_parser.set_defaults(func=cmd_check_expiration)

    # reset-check command
    check_parser = subparsers.add_parser("reset-check", help="Check whether a reset is safe")
    check_parser.set_defaults(func=cmd_reset_check)

    # reset command
    reset_parser = subparsers.add_parser("reset", help="Wipe live registration data")
    reset_parser.add_argument("--confirm", required=True, metavar="TOKEN", help="Confirmation token")
    reset_parser.add_argument("--force", action="store_true", help="Reset even without an archive")
    reset_parser.add_argument("--archive-first", action="store_true", help="Archive the current year first")
    reset_parser.set_defaults(func=cmd_reset)

    # set-setting command
    setting_parser = subparsers.add_parser("set-setting", help="Set an admin setting")
    setting_parser.add_argument("key", choices=["event_year", "gdpr_retention_years"], help="Setting key")
    setting_parser.add_argument("value", help="Setting value (empty string clears)")
    setting_parser.set_defaults(func=cmd_set_setting)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
