#!/usr/bin/env python3
"""1Password CLI wrapper - Runs `op` commands for the share workflow.

Every call is a blocking subprocess with captured output. Failures are
raised as OpError carrying a short code, mirroring the error dicts the
CLI maps to user messages.
"""

import copy
import json
import logging
import os
import re
import subprocess
import tempfile
from typing import List, Optional

logger = logging.getLogger(__name__)

# Constants
DEFAULT_OP_BIN = "op"
NOTE_CATEGORY = "Secure Note"
NOTE_FIELD_ID = "notesPlain"
LINK_PATTERN = re.compile(r"https?://[^\s\"'<>()\[\]]+")
LINK_TRAILING = ".,;:!?"


class OpError(Exception):
    """Raised when an op invocation fails.

    code is one of NOT_INSTALLED, NOT_SIGNED_IN, COMMAND_FAILED,
    MALFORMED_OUTPUT.
    """

    def __init__(self, code: str, message: str, stderr: str = ""):
        super().__init__(message)
        self.code = code
        self.message = message
        self.stderr = stderr


def get_op_bin() -> str:
    """Get op executable from OP_BIN or default."""
    return os.environ.get("OP_BIN") or DEFAULT_OP_BIN


def fill_note_template(template: dict, text: str) -> dict:
    """Return a copy of template with the notesPlain field set to text."""
    filled = copy.deepcopy(template)
    for field in filled.get("fields") or []:
        if isinstance(field, dict) and field.get("id") == NOTE_FIELD_ID:
            field["value"] = text
    return filled


def build_share_args(
    item_id: str,
    vault: str,
    expires_in: str,
    emails: Optional[List[str]] = None
) -> List[str]:
    """Build the `op item share` argument list (without the executable)."""
    args = ["item", "share", item_id, "--vault", vault, "--expires-in", expires_in]
    for email in emails or []:
        args.extend(["--emails", email])
    return args


def extract_link(output: str) -> str:
    """Extract the share link from `op item share` output."""
    match = LINK_PATTERN.search(output or "")
    if not match:
        raise OpError("MALFORMED_OUTPUT", "No share link found in 1Password CLI output")
    return match.group(0).rstrip(LINK_TRAILING)


def _parse_json(stdout: str, what: str):
    try:
        return json.loads(stdout)
    except (json.JSONDecodeError, TypeError):
        raise OpError("MALFORMED_OUTPUT", f"Invalid JSON from {what}")


class OpClient:
    """Runs 1Password CLI commands."""

    def __init__(self, op_bin: Optional[str] = None):
        self.op_bin = op_bin or get_op_bin()

    def run(self, *args: str) -> subprocess.CompletedProcess:
        """Run `op` with args and capture text output.

        Raises OpError(NOT_INSTALLED) if the executable cannot be found.
        A non-zero exit is returned, not raised; see run_checked.
        """
        cmd = [self.op_bin, *args]
        logger.debug("running: %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            raise OpError(
                "NOT_INSTALLED",
                f"1Password CLI not found: {self.op_bin}. "
                "Install it from https://developer.1password.com/docs/cli/"
            )
        logger.debug("exit status %d", proc.returncode)
        return proc

    def run_checked(self, *args: str, error: str) -> subprocess.CompletedProcess:
        """Run `op` and raise OpError(COMMAND_FAILED) on non-zero exit."""
        proc = self.run(*args)
        if proc.returncode != 0:
            raise OpError("COMMAND_FAILED", error, stderr=(proc.stderr or "").strip())
        return proc

    def check_signed_in(self) -> None:
        """Verify that op has at least one signed-in account."""
        proc = self.run("account", "list", "--format=json")
        signed_in = proc.returncode == 0
        if signed_in:
            try:
                signed_in = bool(json.loads(proc.stdout or "[]"))
            except json.JSONDecodeError:
                # Older op releases print a table; exit status is enough there
                pass
        if not signed_in:
            raise OpError(
                "NOT_SIGNED_IN",
                "1Password CLI is not signed in. Please sign in first using 'op signin'.",
                stderr=(proc.stderr or "").strip()
            )

    def vault_exists(self, name: str) -> bool:
        return self.run("vault", "get", name).returncode == 0

    def create_vault(self, name: str) -> None:
        self.run_checked("vault", "create", name, error=f"Error creating vault '{name}'.")

    def ensure_vault(self, name: str) -> bool:
        """Create the vault if it does not exist. Returns True if created."""
        if self.vault_exists(name):
            return False
        self.create_vault(name)
        return True

    def get_template(self, category: str = NOTE_CATEGORY) -> dict:
        """Get the item template for a category."""
        proc = self.run_checked(
            "item", "template", "get", category,
            error=f"Error getting {category} template."
        )
        template = _parse_json(proc.stdout, f"{category} template")
        if not isinstance(template, dict):
            raise OpError("MALFORMED_OUTPUT", f"Unexpected {category} template format")
        return template

    def create_item(self, template: dict, title: str, vault: str) -> str:
        """Create an item from template and return its id."""
        fd, template_path = tempfile.mkstemp(prefix="share-1password-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(template, f)

            proc = self.run_checked(
                "item", "create",
                "--title", title,
                "--vault", vault,
                "--template", template_path,
                "--format=json",
                error="Error creating the item in 1Password."
            )
        finally:
            os.unlink(template_path)

        item = _parse_json(proc.stdout, "item creation")
        item_id = None
        if isinstance(item, dict):
            item_id = item.get("id") or item.get("uuid")
        if not isinstance(item_id, str) or not item_id:
            raise OpError("MALFORMED_OUTPUT", "Failed to get item ID.")
        return item_id

    def share_item(
        self,
        item_id: str,
        vault: str,
        expires_in: str,
        emails: Optional[List[str]] = None
    ) -> str:
        """Create a share link for an item and return it."""
        proc = self.run_checked(
            *build_share_args(item_id, vault, expires_in, emails),
            error="Error sharing the item."
        )
        return extract_link(proc.stdout)
