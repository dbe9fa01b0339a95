"""Encryption of service configuration files."""

from .gateway import DECRYPT, ENCRYPT, CryptoGateway

__all__ = ["CryptoGateway", "DECRYPT", "ENCRYPT"]
