"""share-1password - Pipe stdin into a 1Password Secure Note and share it.
Uses the 1Password CLI (op) for storage and link generation.
"""

__version__ = "1.0.0"
