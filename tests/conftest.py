"""Pytest fixtures and utilities for share-1password tests."""

import argparse
import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from share_1password.main import DEFAULT_EXPIRES_IN, DEFAULT_VAULT


SHARE_LINK = "https://share.1password.com/s#abcDEF123"

NOTE_TEMPLATE = {
    "title": "",
    "category": "SECURE_NOTE",
    "fields": [
        {
            "id": "notesPlain",
            "type": "STRING",
            "purpose": "NOTES",
            "label": "notesPlain",
            "value": ""
        }
    ]
}


def completed(cmd, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


class FakeOp:
    """Stand-in for subprocess.run that answers like a signed-in op CLI.

    Records every command; the template passed to `item create` is read
    before the temp file disappears. Individual commands can be overridden
    via `responses`, keyed by the first two op arguments.
    """

    def __init__(self):
        self.calls = []
        self.created_templates = []
        self.existing_vaults = {DEFAULT_VAULT}
        self.responses = {}

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        args = list(cmd[1:])
        key = tuple(args[:2])

        if key in self.responses:
            return completed(cmd, *self.responses[key])

        if key == ("account", "list"):
            return completed(cmd, stdout=json.dumps([{"email": "me@example.com"}]))
        if key == ("vault", "get"):
            if args[2] in self.existing_vaults:
                return completed(cmd, stdout=json.dumps({"name": args[2]}))
            return completed(cmd, 1, stderr=f'"{args[2]}" isn\'t a vault in this account')
        if key == ("vault", "create"):
            self.existing_vaults.add(args[2])
            return completed(cmd, stdout=json.dumps({"name": args[2]}))
        if key == ("item", "template"):
            return completed(cmd, stdout=json.dumps(NOTE_TEMPLATE))
        if key == ("item", "create"):
            template_path = args[args.index("--template") + 1]
            with open(template_path) as f:
                self.created_templates.append(json.load(f))
            return completed(cmd, stdout=json.dumps({"id": "item123", "title": "x"}))
        if key == ("item", "share"):
            return completed(cmd, stdout=SHARE_LINK + "\n")
        return completed(cmd, 1, stderr="unknown command")

    def commands(self):
        """Return the op argument lists without the executable."""
        return [call[1:] for call in self.calls]


@pytest.fixture
def fake_op():
    """Patch subprocess.run in the op wrapper with a FakeOp."""
    fake = FakeOp()
    with patch("share_1password.op_cli.subprocess.run", side_effect=fake):
        yield fake


@pytest.fixture
def share_args():
    """Parsed arguments with defaults."""
    return argparse.Namespace(
        vault=DEFAULT_VAULT,
        expires_in=DEFAULT_EXPIRES_IN,
        emails=None,
        title="[project] - 01.02.2026",
        show=False,
        verbose=False,
    )
