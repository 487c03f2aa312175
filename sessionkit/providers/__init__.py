"""
Remote services the session layer talks to.
"""

from .base import Provider
from .cosigner import (
    CosignerConfig,
    CosignerConnectionError,
    CosignerError,
    CosignerProvider,
    CosignerResponseError,
    CosignerSignature,
    SignSessionError,
    get_cosigner_provider,
)

__all__ = [
    "Provider",
    "CosignerConfig",
    "CosignerConnectionError",
    "CosignerError",
    "CosignerProvider",
    "CosignerResponseError",
    "CosignerSignature",
    "SignSessionError",
    "get_cosigner_provider",
]
