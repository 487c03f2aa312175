"""
Session token error taxonomy.

Every failure of an authorization build surfaces as one of these to the
immediate caller. Nothing here is retried or downgraded internally.
"""


class SessionError(Exception):
    """Base exception for session token errors."""
    pass


class CallNotAllowedError(SessionError):
    """A call has no matching entry in the session's allowed methods."""

    def __init__(self, contract_address: str, entrypoint: str):
        super().__init__(f"Call not allowed by session: {contract_address}::{entrypoint}")
        self.contract_address = contract_address
        self.entrypoint = entrypoint


class EmptyPermissionsError(SessionError):
    """A permission tree cannot be built from an empty allowed-method list."""
    pass


class InvalidMetadataError(SessionError):
    """Session metadata cannot be encoded as a Cairo ByteArray (ASCII only)."""
    pass


class ProofIndexError(SessionError, IndexError):
    """Proof requested for a leaf index outside the tree."""

    def __init__(self, index: int, size: int):
        super().__init__(f"Leaf index {index} out of range for tree of {size} leaves")
        self.index = index
        self.size = size


class UnsupportedTransactionVersionError(SessionError):
    """Transaction format version is not one this protocol signs."""

    def __init__(self, version: object):
        super().__init__(f"Unsupported transaction version: {version!r}")
        self.version = version


class UnsupportedSignerTypeError(SessionError):
    """Signer scheme is reserved but not populated in the current protocol."""
    pass
