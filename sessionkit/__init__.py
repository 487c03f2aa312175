"""
Session tokens for Starknet accounts.

Usage:
    from sessionkit import SessionAccount

    account = SessionAccount(session)
    signature = await account.sign_transaction(calls, details)
"""

import logging

from .core.session.account import SessionAccount

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["SessionAccount"]
