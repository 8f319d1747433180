"""
Address registry: which account owns each address or receiver.

Built once from every address-bearing source in the snapshot, then frozen
and shared read-only. An address absent from the registry has an unknown
owner; it is never defaulted to some catch-all account.

Construction order:
1. one unified AccountKey per UnifiedAccountMetadata;
2. every rendered unified address and receiver from UnifiedAddressMetadata;
3. transparent key records (unified account by BIP-44 path, else legacy);
4. standalone shielded addresses (unified account by ZIP-32 path, else legacy).
"""

from __future__ import annotations

from zmigrate.assignment.diagnostics import DiagnosticKind, DiagnosticsLog
from zmigrate.config.env import LEGACY_GROUPING_PER_KEY, LEGACY_GROUPING_PER_SEED
from zmigrate.core.exceptions import ConflictingRegistration, RegistryFrozenError
from zmigrate.wallet import transparent
from zmigrate.wallet.keys import fingerprint_bytes
from zmigrate.wallet.models import AccountKey, AddressId, Pool, sorted_accounts
from zmigrate.wallet.snapshot import ShieldedAddressRecord, TransparentKeyRecord, WalletSnapshot
from zmigrate.zmigrate_logging import get_logger

logger = get_logger(__name__)

BIP44_PURPOSE = 44
ZIP32_SHIELDED_PURPOSE = 32


class AddressRegistry:
    """Many-to-one mapping AddressId -> AccountKey."""

    def __init__(self) -> None:
        self._address_to_account: dict[AddressId, AccountKey] = {}
        self._accounts: set[AccountKey] = set()
        self._frozen = False

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Address registry is frozen; build a new one instead")

    def add_account(self, account: AccountKey) -> None:
        """Declare an account, even before (or without) any address."""
        self._check_mutable()
        self._accounts.add(account)

    def register(self, address_id: AddressId, account: AccountKey) -> bool:
        """
        Bind address_id to account. Returns True if a new binding was made.

        Re-registering the same pair is a no-op; binding to a different
        account raises ConflictingRegistration.
        """
        self._check_mutable()
        existing = self._address_to_account.get(address_id)
        if existing is not None:
            if existing == account:
                return False
            raise ConflictingRegistration(address_id, existing, account)
        self._address_to_account[address_id] = account
        self._accounts.add(account)
        return True

    def resolve(self, address_id: AddressId) -> AccountKey | None:
        return self._address_to_account.get(address_id)

    def addresses_for(self, account: AccountKey) -> list[AddressId]:
        return sorted(
            (a for a, owner in self._address_to_account.items() if owner == account),
            key=str,
        )

    def accounts(self) -> list[AccountKey]:
        return sorted_accounts(self._accounts)

    def knows_account(self, account: AccountKey) -> bool:
        return account in self._accounts

    @property
    def address_count(self) -> int:
        return len(self._address_to_account)

    @property
    def account_count(self) -> int:
        return len(self._accounts)

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "AddressRegistry":
        self._frozen = True
        return self

    def __contains__(self, address_id: object) -> bool:
        return address_id in self._address_to_account

    def __len__(self) -> int:
        return len(self._address_to_account)


def parse_keypath(keypath: str | None) -> list[tuple[int, bool]] | None:
    """Split "m/44'/133'/0'/0/5" into [(44, True), (133, True), (0, True), (0, False), (5, False)]."""
    if not keypath:
        return None
    parts = keypath.strip().split("/")
    if parts[0] != "m":
        return None
    out: list[tuple[int, bool]] = []
    for part in parts[1:]:
        hardened = part.endswith(("'", "h", "H"))
        digits = part.rstrip("'hH")
        if not digits.isdigit():
            return None
        out.append((int(digits), hardened))
    return out


def _unified_owner_for_keypath(
    keypath: str | None,
    seed_fingerprint: str | None,
    purpose: int,
    unified_by_path: dict[tuple[str, int, int], AccountKey],
) -> AccountKey | None:
    """Unified account whose (seed, coin type, account) matches a purpose/coin'/account' path."""
    steps = parse_keypath(keypath)
    if not steps or len(steps) < 3 or not seed_fingerprint:
        return None
    (p, p_hard), (coin, coin_hard), (account, account_hard) = steps[:3]
    if p != purpose or not (p_hard and coin_hard and account_hard):
        return None
    return unified_by_path.get((seed_fingerprint.lower(), coin, account))


def _legacy_owner(
    source: str,
    key_fingerprint: str,
    seed_fingerprint: str | None,
    account_group: str | None,
    legacy_grouping: str,
) -> AccountKey:
    if account_group:
        return AccountKey.legacy(f"group:{account_group}")
    if legacy_grouping == LEGACY_GROUPING_PER_SEED and seed_fingerprint:
        return AccountKey.legacy(f"seed:{seed_fingerprint.lower()}")
    return AccountKey.legacy(f"{source}:{key_fingerprint}")


def _bind_standalone(registry: AddressRegistry, address_id: AddressId, owner: AccountKey) -> None:
    """Unified receivers registered in step 2 keep their binding over a standalone record."""
    existing = registry.resolve(address_id)
    if existing is not None and existing != owner and existing.is_unified and not owner.is_unified:
        logger.debug(
            "standalone_address_already_unified",
            address=str(address_id),
            account=str(existing),
        )
        return
    registry.register(address_id, owner)


def _transparent_address(
    record: TransparentKeyRecord,
    network: str,
    diagnostics: DiagnosticsLog,
) -> str | None:
    if record.address:
        return record.address
    if record.pubkey and transparent.ripemd160_available():
        return transparent.address_from_pubkey(record.pubkey, network)
    diagnostics.record(
        DiagnosticKind.MISSING_METADATA,
        "transparent_address_not_rendered",
        pubkey=record.pubkey.hex(),
    )
    return None


def _register_transparent_keys(
    registry: AddressRegistry,
    snapshot: WalletSnapshot,
    unified_by_path: dict[tuple[str, int, int], AccountKey],
    diagnostics: DiagnosticsLog,
    legacy_grouping: str,
) -> None:
    for record in snapshot.transparent_keys:
        address = _transparent_address(record, snapshot.network, diagnostics)
        if address is None:
            continue
        if record.pubkey:
            key_fingerprint = fingerprint_bytes(record.pubkey)
        elif record.spending_key is not None:
            key_fingerprint = record.spending_key.fingerprint
        else:
            diagnostics.record(
                DiagnosticKind.MISSING_METADATA,
                "transparent_address_without_key",
                address=address,
            )
            continue
        owner = _unified_owner_for_keypath(
            record.hd_keypath, record.seed_fingerprint, BIP44_PURPOSE, unified_by_path
        ) or _legacy_owner(
            Pool.TRANSPARENT.value,
            key_fingerprint,
            record.seed_fingerprint,
            record.account_group,
            legacy_grouping,
        )
        _bind_standalone(registry, AddressId.transparent(address), owner)


def _shielded_key_fingerprint(record: ShieldedAddressRecord) -> str | None:
    if record.incoming_viewing_key is not None:
        return record.incoming_viewing_key.fingerprint
    if record.spending_key is not None:
        return record.spending_key.fingerprint
    return None


def _register_shielded_addresses(
    registry: AddressRegistry,
    snapshot: WalletSnapshot,
    unified_by_path: dict[tuple[str, int, int], AccountKey],
    diagnostics: DiagnosticsLog,
    legacy_grouping: str,
) -> None:
    for record in snapshot.shielded_addresses:
        key_fingerprint = _shielded_key_fingerprint(record)
        if key_fingerprint is None:
            diagnostics.record(
                DiagnosticKind.MISSING_METADATA,
                "shielded_address_without_key",
                address=record.address,
                pool=record.pool.value,
            )
            continue
        owner = None
        if record.pool is not Pool.SPROUT:
            owner = _unified_owner_for_keypath(
                record.hd_keypath, record.seed_fingerprint, ZIP32_SHIELDED_PURPOSE, unified_by_path
            )
        if owner is None:
            owner = _legacy_owner(
                record.pool.value,
                key_fingerprint,
                record.seed_fingerprint,
                record.account_group,
                legacy_grouping,
            )
        _bind_standalone(registry, record.address_id, owner)


def build_address_registry(
    snapshot: WalletSnapshot,
    diagnostics: DiagnosticsLog | None = None,
    *,
    legacy_grouping: str = LEGACY_GROUPING_PER_KEY,
) -> AddressRegistry:
    """
    Build and freeze the registry from every address-bearing source.

    Raises ConflictingRegistration when two sources bind one address to
    different accounts. Untraceable addresses are recorded as missing
    metadata and left unregistered.
    """
    diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()
    registry = AddressRegistry()

    unified_by_ufvk: dict[str, AccountKey] = {}
    unified_by_path: dict[tuple[str, int, int], AccountKey] = {}
    for meta in snapshot.unified_accounts:
        account = meta.account_key()
        unified_by_ufvk[meta.ufvk_id] = account
        unified_by_path[(meta.seed_fingerprint.lower(), meta.coin_type, meta.account_index)] = account
        registry.add_account(account)

    for meta in snapshot.unified_addresses:
        account = unified_by_ufvk.get(meta.ufvk_id)
        if account is None:
            diagnostics.record(
                DiagnosticKind.MISSING_METADATA,
                "unified_address_without_account",
                ufvk_id=meta.ufvk_id,
                diversifier_index=meta.diversifier_index.hex(),
            )
            continue
        ua = meta.address_id()
        if ua is not None:
            registry.register(ua, account)
        for receiver in sorted(meta.receiver_types, key=lambda r: r.value):
            rendered = meta.receivers.get(receiver)
            if not rendered:
                diagnostics.record(
                    DiagnosticKind.MISSING_METADATA,
                    "unified_receiver_not_rendered",
                    ufvk_id=meta.ufvk_id,
                    diversifier_index=meta.diversifier_index.hex(),
                    receiver=receiver.value,
                )
                continue
            registry.register(AddressId.for_receiver(receiver, rendered), account)

    _register_transparent_keys(registry, snapshot, unified_by_path, diagnostics, legacy_grouping)
    _register_shielded_addresses(registry, snapshot, unified_by_path, diagnostics, legacy_grouping)

    logger.info(
        "address_registry_built",
        addresses=registry.address_count,
        accounts=registry.account_count,
        unified_accounts=len(unified_by_ufvk),
    )
    return registry.freeze()
