"""
Wallet model package: identities, keys, transactions and the snapshot
handed over by the upstream wallet-dump reader.
"""

from zmigrate.wallet.keys import (
    IncomingViewingKey,
    KeyKind,
    KeyMaterial,
    SeedMaterial,
    SpendingKey,
    derive_full_viewing_key,
    preserve_key,
)
from zmigrate.wallet.models import (
    SHIELDED_POOLS,
    AccountFamily,
    AccountKey,
    AddressId,
    AddressKind,
    Pool,
    ReceiverType,
    UnifiedAccountMetadata,
    UnifiedAddressMetadata,
    sorted_accounts,
)
from zmigrate.wallet.snapshot import (
    AddressBookEntry,
    ShieldedAddressRecord,
    TransparentKeyRecord,
    WalletSnapshot,
)
from zmigrate.wallet.transactions import (
    NoteRecord,
    OutPoint,
    RecipientMapping,
    ShieldedOutput,
    ShieldedSpend,
    Transaction,
    TransparentInput,
    TransparentOutput,
)

__all__ = [
    "IncomingViewingKey",
    "KeyKind",
    "KeyMaterial",
    "SeedMaterial",
    "SpendingKey",
    "derive_full_viewing_key",
    "preserve_key",
    "SHIELDED_POOLS",
    "AccountFamily",
    "AccountKey",
    "AddressId",
    "AddressKind",
    "Pool",
    "ReceiverType",
    "UnifiedAccountMetadata",
    "UnifiedAddressMetadata",
    "sorted_accounts",
    "AddressBookEntry",
    "ShieldedAddressRecord",
    "TransparentKeyRecord",
    "WalletSnapshot",
    "NoteRecord",
    "OutPoint",
    "RecipientMapping",
    "ShieldedOutput",
    "ShieldedSpend",
    "Transaction",
    "TransparentInput",
    "TransparentOutput",
]
