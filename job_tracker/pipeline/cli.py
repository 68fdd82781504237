#!/usr/bin/env python3
"""Command-line interface for the scan pipeline."""

import argparse
import json
import logging
import sys

from ..config import DATABASE_FILE, TOKEN_FILE
from ..errors import PipelineError
from ..factory import create_application_store, create_pipeline, load_access_credentials
from .config import PipelineConfig
from .events import CompleteEvent, ErrorEvent, format_sse


def setup_logging(verbosity: int):
    """Set up logging based on verbosity level."""
    levels = [logging.WARNING, logging.INFO, logging.DEBUG]
    level = levels[min(verbosity, len(levels) - 1)]

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Job application email tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a date window and print the event stream
  %(prog)s scan --start 2024-01-01 --end 2024-02-01

  # Scan with a JSON request body and save the results
  %(prog)s scan --request request.json --save

  # Exclude a sender domain
  %(prog)s exclude add @linkedin.com

  # Generate sample configuration
  %(prog)s generate-config --output my_config.yaml
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="Scan the mailbox for application emails")
    scan_parser.add_argument("--config", "-c", type=str, help="Path to configuration YAML file")
    scan_parser.add_argument("--request", type=str, help="JSON request body file")
    scan_parser.add_argument("--start", type=str, help="Start of the date window (ISO-8601)")
    scan_parser.add_argument("--end", type=str, help="End of the date window (ISO-8601)")
    scan_parser.add_argument(
        "--exclude", action="append", default=[], help="Exclusion rule (repeatable)"
    )
    scan_parser.add_argument("--threshold", type=float, help="Minimum classification score")
    scan_parser.add_argument("--labels", type=str, help="Comma-separated labels to keep")
    scan_parser.add_argument(
        "--token-file", type=str, default=TOKEN_FILE, help="Authorized-user token file"
    )
    scan_parser.add_argument("--output", "-o", type=str, help="Write the event stream to a file")
    scan_parser.add_argument(
        "--save", action="store_true", help="Merge results into the application store"
    )
    scan_parser.add_argument("--database", type=str, help="Application store database file")
    scan_parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    )

    # Show applications command
    show_parser = subparsers.add_parser("show-applications", help="List stored applications")
    show_parser.add_argument("--database", type=str, help="Application store database file")
    show_parser.add_argument("--json", action="store_true", help="Print as JSON")

    # Exclusion commands
    exclude_parser = subparsers.add_parser("exclude", help="Manage excluded senders")
    exclude_parser.add_argument("--database", type=str, help="Application store database file")
    exclude_parser.add_argument("action", choices=["add", "remove", "list", "clear"])
    exclude_parser.add_argument("rules", nargs="*", help="Exclusion rules")

    # Generate config command
    config_parser = subparsers.add_parser(
        "generate-config", help="Generate a sample configuration file"
    )
    config_parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="pipeline_config.yaml",
        help="Output path for configuration file",
    )

    # Validate config command
    validate_parser = subparsers.add_parser("validate-config", help="Validate a configuration file")
    validate_parser.add_argument("config", type=str, help="Path to configuration file to validate")

    return parser


def load_config(path: str = None) -> PipelineConfig:
    if path:
        config = PipelineConfig.from_yaml(path)
        logging.info(f"Loaded configuration from {path}")
    else:
        config = PipelineConfig.from_env()
        logging.info("Using configuration from environment")
    return config


def build_request(args, config: PipelineConfig, stored_exclusions=None) -> dict:
    """Build the JSON request body from a file or command-line options."""
    if args.request:
        with open(args.request) as f:
            request = json.load(f)
    else:
        request = {"startDate": args.start, "endDate": args.end}

    excluded = list(request.get("excludedEmails") or []) + list(args.exclude)
    excluded += list(stored_exclusions or [])
    request["excludedEmails"] = excluded

    if args.threshold is not None:
        request["classificationThreshold"] = args.threshold
    request.setdefault("classificationThreshold", config.classify.threshold)

    if args.labels:
        request["jobLabels"] = [label.strip() for label in args.labels.split(",") if label.strip()]
    request.setdefault("jobLabels", config.classify.job_labels)

    return request


def _database_file(args, config: PipelineConfig = None) -> str:
    if getattr(args, "database", None):
        return args.database
    if config is not None and config.store.database_path:
        return config.store.database_path
    return DATABASE_FILE


def run_scan(args):
    """Run one scan and write the event stream."""
    config = load_config(args.config)

    store = None
    if args.save:
        store = create_application_store(database_file=_database_file(args, config))

    out = open(args.output, "w") if args.output else sys.stdout
    exit_code = 1
    try:
        request = build_request(
            args, config, store.get_excluded_emails() if store is not None else None
        )
        try:
            pipeline = create_pipeline(config)
        except PipelineError as e:
            out.write(format_sse(ErrorEvent(message=str(e))))
            return exit_code

        credentials = load_access_credentials(args.token_file)
        for event in pipeline.run(request, credentials):
            out.write(format_sse(event))
            out.flush()
            if isinstance(event, CompleteEvent):
                exit_code = 0
                if store is not None:
                    added = store.apply_event(event.to_dict())
                    store.set_date_range(request["startDate"], request["endDate"])
                    logging.info(f"Saved {len(added)} new applications")
    finally:
        if args.output:
            out.close()
        if store is not None:
            store.close()

    return exit_code


def show_applications(args):
    """Print stored applications."""
    store = create_application_store(database_file=_database_file(args))
    try:
        applications = store.get_applications()
    finally:
        store.close()

    if args.json:
        print(json.dumps([app.to_dict() for app in applications], indent=2))
        return 0

    print("=" * 60)
    print(f"APPLICATIONS ({len(applications)})")
    print("=" * 60)
    for app in applications:
        print(f"{app.date[:10]}  {app.status:<11} {app.company} - {app.role}")
        print(f"            {app.email}: {app.subject}")
    print("=" * 60)
    return 0


def manage_exclusions(args):
    """Add, remove, list or clear exclusion rules."""
    store = create_application_store(database_file=_database_file(args))
    try:
        if args.action == "add":
            for rule in args.rules:
                if store.add_excluded_email(rule):
                    print(f"Excluded: {rule.strip().lower()}")
                else:
                    print(f"Already excluded or blank: {rule}")
        elif args.action == "remove":
            for rule in args.rules:
                store.remove_excluded_email(rule)
                print(f"Removed: {rule}")
        elif args.action == "clear":
            store.clear_excluded_emails()
            print("Cleared all exclusion rules")
        else:
            for rule in store.get_excluded_emails():
                print(rule)
    finally:
        store.close()
    return 0


def generate_config(args):
    """Generate a sample configuration file."""
    config = PipelineConfig()

    config.to_yaml(args.output)
    print(f"Generated configuration file: {args.output}")

    print("\nEdit the configuration file to customize:")
    print("  - Gmail query prefix and page size")
    print("  - Detail batch size and delay between batches")
    print("  - Content types used for body text")
    print("  - Default classification threshold and labels")
    print("  - Classification rules file")

    return 0


def validate_config(args):
    """Validate a configuration file."""
    try:
        config = PipelineConfig.from_yaml(args.config)
        if config.classify.rules_file:
            from ..classifier import ClassificationRules

            ClassificationRules.from_yaml(config.classify.rules_file)
        print(f"✓ Configuration file is valid: {args.config}")

        print("\nConfiguration summary:")
        print(f"  Query prefix: {config.fetch.query_prefix}")
        print(f"  Detail batch size: {config.fetch.detail_batch_size}")
        print(f"  Batch delay: {config.fetch.batch_delay}s")
        print(f"  Threshold: {config.classify.threshold}")
        print(f"  Labels: {', '.join(config.classify.job_labels)}")
        missing = config.oauth.missing()
        if missing:
            print(f"  Missing OAuth settings: {', '.join(missing)}")

        return 0

    except Exception as e:
        print(f"✗ Configuration file is invalid: {e}", file=sys.stderr)
        return 1


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Set up logging
    if hasattr(args, "verbose"):
        setup_logging(args.verbose)

    # Execute command
    if args.command == "scan":
        return run_scan(args)
    elif args.command == "show-applications":
        return show_applications(args)
    elif args.command == "exclude":
        return manage_exclusions(args)
    elif args.command == "generate-config":
        return generate_config(args)
    elif args.command == "validate-config":
        return validate_config(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
