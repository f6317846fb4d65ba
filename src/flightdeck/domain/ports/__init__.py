"""Domain port definitions for adapters."""

from __future__ import annotations

from .destinations import IdentityResolver, IntegrationDestination, ObjectUpload, UrlSigner
from .jobs import JobLauncher
from .notifications import CallbackNotifier, LogSetRegistry
from .sources import RowSource
from .state import DurableMap, JobQueue

__all__ = [
    "CallbackNotifier",
    "DurableMap",
    "IdentityResolver",
    "IntegrationDestination",
    "JobLauncher",
    "JobQueue",
    "LogSetRegistry",
    "ObjectUpload",
    "RowSource",
    "UrlSigner",
]
