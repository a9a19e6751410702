#!/usr/bin/env python3
"""share-1password - Send stdin to 1Password as a Secure Note and share it.

Reads text from stdin, stores it in a 1Password vault via the op CLI,
creates a share link and copies it to the clipboard.

Example:
    cat .env | share-1password --vault "Shared Notes" --emails alice@example.com
"""

import argparse
import logging
import os
import subprocess
import sys
from datetime import date
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from . import __version__
from .op_cli import OpClient, OpError, fill_note_template

logger = logging.getLogger(__name__)

# Constants
DEFAULT_VAULT = "Shared Notes"
DEFAULT_EXPIRES_IN = "7d"
TITLE_DATE_FORMAT = "%d.%m.%Y"


class ClipboardError(Exception):
    """Raised when the link cannot be written to the clipboard."""


def get_version():
    try:
        return version("share-1password")
    except PackageNotFoundError:
        return __version__


def configure_logging(level=logging.WARNING):
    # Diagnostics go to stderr so stdout carries only the link.
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def get_default_vault():
    """Get default vault name from SHARE_1PASSWORD_VAULT or fallback."""
    return os.environ.get("SHARE_1PASSWORD_VAULT") or DEFAULT_VAULT


def split_emails(values):
    """Flatten --emails values, splitting space-separated addresses."""
    emails = []
    for value in values or []:
        emails.extend(value.split())
    return emails


def read_input(stream=None):
    """Read all text from stream (stdin by default).

    Exits with status 1 if the input is not UTF-8 text or is nothing
    but whitespace.
    """
    stream = stream if stream is not None else sys.stdin
    try:
        text = stream.read()
    except UnicodeDecodeError:
        print("Input is not valid UTF-8 text.", file=sys.stderr)
        sys.exit(1)
    if not text.strip():
        print("No input text provided. Please provide text via stdin.", file=sys.stderr)
        print("Usage example: cat .env | share-1password", file=sys.stderr)
        sys.exit(1)
    return text


def make_item_title(cwd=None, today=None):
    """Build the item title: "[<current dir name>] - DD.MM.YYYY"."""
    cwd = Path(cwd) if cwd is not None else Path.cwd()
    today = today or date.today()
    return f"[{cwd.name}] - {today.strftime(TITLE_DATE_FORMAT)}"


def get_clipboard_command():
    """Pick the clipboard tool for this platform, or None if unknown."""
    if os.path.exists("/proc/version"):
        with open("/proc/version") as f:
            proc_version = f.read().lower()
        if "microsoft" in proc_version or "wsl" in proc_version:
            return ["clip.exe"]
        # Check for Wayland
        if os.environ.get("WAYLAND_DISPLAY"):
            return ["wl-copy"]
        return ["xclip", "-selection", "clipboard"]
    if sys.platform == "darwin":
        return ["pbcopy"]
    return None


def copy_to_clipboard(text):
    """Copy text to clipboard using appropriate tool."""
    cmd = get_clipboard_command()
    if cmd is None:
        raise ClipboardError("No clipboard tool available on this platform")

    try:
        proc = subprocess.run(cmd, input=text.encode('utf-8'), capture_output=True)
    except FileNotFoundError:
        raise ClipboardError(f"Clipboard tool not found: {cmd[0]}")

    if proc.returncode != 0:
        detail = proc.stderr.decode('utf-8', errors='replace').strip()
        raise ClipboardError(f"Clipboard failed: {detail or f'{cmd[0]} exited {proc.returncode}'}")


def report_op_error(error):
    """Print an OpError the way the user should see it."""
    if error.code == "MALFORMED_OUTPUT":
        print(f"Unexpected output from 1Password CLI: {error.message}", file=sys.stderr)
    else:
        print(error.message, file=sys.stderr)
    if error.stderr:
        print(error.stderr, file=sys.stderr)


def cmd_share(args, stream=None):
    """Store stdin as a Secure Note, share it and copy the link."""
    text = read_input(stream)
    emails = split_emails(args.emails)
    title = args.title or make_item_title()

    client = OpClient()
    try:
        client.check_signed_in()

        if client.ensure_vault(args.vault):
            print(f"Vault '{args.vault}' did not exist, created it.", file=sys.stderr)

        template = fill_note_template(client.get_template(), text)
        item_id = client.create_item(template, title, args.vault)
        logger.debug("created item %s in vault %s", item_id, args.vault)

        link = client.share_item(item_id, args.vault, args.expires_in, emails)
    except OpError as e:
        report_op_error(e)
        sys.exit(1)

    if args.show:
        print(link)
        return

    try:
        copy_to_clipboard(link)
    except ClipboardError as e:
        # Link still goes to stdout
        print(str(e), file=sys.stderr)
        print("Share link:")
        print(link)
        sys.exit(1)

    print("Link copied to clipboard:")
    print(link)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='share-1password',
        description="Store stdin as a 1Password Secure Note and copy a share link to the clipboard",
        epilog="Example: cat .env | share-1password --emails alice@example.com"
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f"%(prog)s {get_version()}"
    )
    parser.add_argument('-v', '--vault', default=get_default_vault(),
                        help=f'1Password vault to store the item in (default: {DEFAULT_VAULT})')
    parser.add_argument('--expires-in', default=DEFAULT_EXPIRES_IN,
                        help=f'Expiration time for the share link (default: {DEFAULT_EXPIRES_IN})')
    parser.add_argument('--emails', nargs='+', metavar='ADDR',
                        help='Email addresses to share the item with (default: anyone with the link)')
    parser.add_argument('--title', help='Item title (default: "[<current dir>] - DD.MM.YYYY")')
    parser.add_argument('--show', action='store_true', help='Print the link without copying to clipboard')
    parser.add_argument('--verbose', action='store_true', help='Log 1Password CLI invocations to stderr')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    cmd_share(args)


if __name__ == '__main__':
    main()
