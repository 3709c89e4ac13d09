"""Ciphertext handles and the FHE backend protocol."""

from bbforecast.fhe.backend import FheBackend
from bbforecast.fhe.handles import CiphertextHandle, FheError, FheType

__all__ = ["CiphertextHandle", "FheBackend", "FheError", "FheType"]
