"""
Encryption, unlock and cosmetic protection marking.
"""
from .protection import (
    ProtectionPermissions,
    apply_protection_watermark,
    encrypt_document,
    is_encrypted,
    unlock,
)

__all__ = [
    "ProtectionPermissions",
    "apply_protection_watermark",
    "encrypt_document",
    "is_encrypted",
    "unlock",
]
