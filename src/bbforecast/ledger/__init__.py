"""Confidential prediction ledger core."""

from bbforecast.ledger.acl import AccessControlList
from bbforecast.ledger.ledger import Ledger
from bbforecast.ledger.registry import MAX_OPTIONS, MIN_OPTIONS

__all__ = ["AccessControlList", "Ledger", "MAX_OPTIONS", "MIN_OPTIONS"]
