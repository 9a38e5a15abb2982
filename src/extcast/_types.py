"""Shared type definitions for extcast."""

from collections.abc import Callable
from typing import Any

# Store listener receiving broadcast events in emission order
type StoreListener = Callable[[Any], None]
