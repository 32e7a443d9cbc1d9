"""
Command-line interface for composing messages.

Builds a message from options, then prints it or sends it.

Usage:
    # Print a text message
    eml-composer --from me@example.com --to you@example.com --subject Hi --data "Hello"

    # Attach files (type chosen from the file name)
    eml-composer --to you@example.com --data-file body.txt --attach report.pdf -o out.eml

    # Send through the default transport
    eml-composer --to you@example.com --subject Hi --data Hello --send

    # Send over SMTP
    eml-composer --to you@example.com --data Hello --send --transport smtp --host mail.example.com
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from eml_composer.config import Settings, settings as default_settings
from eml_composer.errors import MimeError
from eml_composer.logging_config import setup_logging
from eml_composer.models.entity import Entity, build
from eml_composer.transport.delivery import send


logger = structlog.get_logger(__name__)


# ============================================================================
# CLI FUNCTIONS
# ============================================================================

def build_message(args: argparse.Namespace, config: Settings) -> Entity:
    """
    Build the message described by parsed arguments.

    Args:
        args: Parsed command-line arguments
        config: Settings to build with

    Returns:
        Root entity
    """
    record = {"Type": args.type}
    if args.encoding:
        record["Encoding"] = args.encoding
    if args.charset:
        record["Charset"] = args.charset

    if args.data_file:
        record["Path"] = args.data_file
        record["Disposition"] = "inline"
    else:
        record["Data"] = args.data if args.data is not None else ""

    for name, values in (("From", [args.sender] if args.sender else []),
                         ("To", args.to), ("Cc", args.cc), ("Bcc", args.bcc)):
        if values:
            record[name] = ", ".join(values)
    if args.subject:
        record["Subject"] = args.subject
    for header in args.header:
        name, _, value = header.partition(":")
        record[f"{name.strip()}:"] = value.strip()

    message = build(record, settings=config)
    for path in args.attach:
        message.attach(Type="AUTO", Path=path, Disposition="attachment")
        logger.info("attachment_added", path=path)
    return message


def write_message(message: Entity, output: Optional[Path], crlf: bool) -> None:
    """Write the serialized message to a file or stdout."""
    if output:
        with open(output, "wb") as f:
            message.print_to(f, crlf=crlf)
        logger.info("output_written", path=str(output))
    else:
        message.print_to(sys.stdout.buffer, crlf=crlf)
        sys.stdout.buffer.flush()


def transport_options(args: argparse.Namespace) -> dict:
    """Backend options given on the command line."""
    options = {}
    if args.host:
        options["host"] = args.host
    if args.port:
        options["port"] = args.port
    if args.starttls:
        options["starttls"] = True
    return options


# ============================================================================
# MAIN CLI
# ============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Compose MIME messages and print or send them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --to you@example.com --subject Hi --data "Hello"
  %(prog)s --to you@example.com --data Hello --attach logo.gif -o message.eml
  %(prog)s --to you@example.com --data Hello --send --transport smtp --host mail.example.com
        """
    )

    parser.add_argument("--from", dest="sender", default=None, help="From address")
    parser.add_argument("--to", action="append", default=[], help="To address (repeatable)")
    parser.add_argument("--cc", action="append", default=[], help="Cc address (repeatable)")
    parser.add_argument("--bcc", action="append", default=[], help="Bcc address (repeatable)")
    parser.add_argument("--subject", "-s", default=None, help="Subject line")
    parser.add_argument(
        "--header", "-H", action="append", default=[],
        help="Extra header as 'Name: value' (repeatable)"
    )
    parser.add_argument("--type", "-t", default="TEXT", help="Body media type (default: TEXT)")
    parser.add_argument("--encoding", "-e", default=None, help="Body transfer encoding")
    parser.add_argument("--charset", default=None, help="Body charset parameter")

    body = parser.add_mutually_exclusive_group()
    body.add_argument("--data", "-d", default=None, help="Body text")
    body.add_argument("--data-file", default=None, help="Read the body from a file")

    parser.add_argument(
        "--attach", "-a", action="append", default=[], help="File to attach (repeatable)"
    )
    parser.add_argument("--output", "-o", type=Path, default=None, help="Output file (default: stdout)")
    parser.add_argument("--crlf", action="store_true", help="Write CRLF line endings")

    parser.add_argument("--send", action="store_true", help="Send instead of printing")
    parser.add_argument("--transport", default=None, help="Transport name (sendmail, smtp, sub)")
    parser.add_argument("--host", default=None, help="SMTP host")
    parser.add_argument("--port", type=int, default=None, help="SMTP port")
    parser.add_argument("--starttls", action="store_true", help="Use STARTTLS for SMTP")

    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress advisory warnings")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")

    args = parser.parse_args(argv)

    updates = {}
    if args.quiet:
        updates["quiet"] = True
    if args.verbose:
        updates["log_level"] = "DEBUG"
    config = default_settings.model_copy(update=updates)
    setup_logging(config)

    try:
        message = build_message(args, config)
        if args.send:
            payload = send(message, args.transport, settings=config, **transport_options(args))
            if args.verbose:
                print(
                    f"Sent to {len(payload.recipients)} recipient(s) via {payload.transport}",
                    file=sys.stderr,
                )
        else:
            write_message(message, args.output, args.crlf)
    except MimeError as e:
        logger.error("cli_failed", error=str(e), error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
