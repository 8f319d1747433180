"""
Incoming-viewing-key index: (pool, ivk bytes) -> receiving address.

Note tables and decrypted outputs often record only the IVK that detected
a note. Diversified addresses of one IVK share an owner, so the first
address seen for an IVK stands for all of them.
"""

from __future__ import annotations

from zmigrate.wallet.models import AddressId, Pool
from zmigrate.wallet.snapshot import WalletSnapshot


class ViewingKeyIndex:
    def __init__(self) -> None:
        self._by_key: dict[tuple[Pool, bytes], AddressId] = {}

    def add(self, pool: Pool, ivk: bytes, address_id: AddressId) -> None:
        self._by_key.setdefault((pool, bytes(ivk)), address_id)

    def address_for(self, pool: Pool, ivk: bytes | None) -> AddressId | None:
        if not ivk:
            return None
        return self._by_key.get((pool, bytes(ivk)))

    def __len__(self) -> int:
        return len(self._by_key)

    @classmethod
    def from_snapshot(cls, snapshot: WalletSnapshot) -> "ViewingKeyIndex":
        index = cls()
        for record in snapshot.shielded_addresses:
            if record.incoming_viewing_key is not None:
                index.add(record.pool, record.incoming_viewing_key.data, record.address_id)
        return index
