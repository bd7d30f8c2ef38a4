"""
Domain models — Pydantic types for the provisioning engine.

All models are re-exported here for convenient access:

    from macsetup.core.models import ResourceDescriptor, RunLedger, Receipt
"""

from macsetup.core.models.credential import CredentialRecord
from macsetup.core.models.descriptor import (
    RESOURCE_KINDS,
    ResourceDescriptor,
    ResourceKind,
    ResourceState,
)
from macsetup.core.models.ledger import Classification, RunLedger, RunOutcome
from macsetup.core.models.manifest import Manifest, Settings
from macsetup.core.models.receipt import Receipt

__all__ = [
    # credential.py
    "CredentialRecord",
    # descriptor.py
    "RESOURCE_KINDS",
    "ResourceDescriptor",
    "ResourceKind",
    "ResourceState",
    # ledger.py
    "Classification",
    "RunLedger",
    "RunOutcome",
    # manifest.py
    "Manifest",
    "Settings",
    # receipt.py
    "Receipt",
]
