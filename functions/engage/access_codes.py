"""
Access codes that unlock trainer features.

Codes are stored under their own value (`access_codes/{CODE}`) so lookup is
a single read. Generated codes look like `ABCD-EF23`.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from engage.store import DocumentStore, Transaction
from shared.constants import ACCESS_CODES_COLLECTION, CODE_ALPHABET
from shared.json_utils import from_document, to_document
from shared.types import AccessCode, AccessTier
from shared.utils import generate_code, now_ms

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
TRIAL_DAYS = 14


def normalize_code(code: str) -> str:
    return code.strip().upper()


def access_code_path(code: str) -> str:
    return f"{ACCESS_CODES_COLLECTION}/{normalize_code(code)}"


def generate_access_code() -> str:
    raw = generate_code(8, CODE_ALPHABET)
    return f"{raw[:4]}-{raw[4:]}"


def is_redeemable(access_code: AccessCode, now: Optional[int] = None) -> bool:
    if not access_code.active:
        return False
    if access_code.max_uses > 0 and access_code.current_uses >= access_code.max_uses:
        return False
    now = now if now is not None else now_ms()
    if access_code.expires_at and now > access_code.expires_at:
        return False
    return True


def validate_access_code(store: DocumentStore, code: str) -> Optional[AccessCode]:
    """Returns the code when it can still be redeemed, otherwise None."""
    data = store.get(access_code_path(code))
    if not data:
        return None
    access_code = from_document(AccessCode, data)
    return access_code if is_redeemable(access_code) else None


def redeem_access_code(store: DocumentStore, code: str, user_id: str) -> bool:
    def run(txn: Transaction) -> bool:
        data = txn.get(access_code_path(code))
        if not data:
            return False
        access_code = from_document(AccessCode, data)
        if not is_redeemable(access_code):
            return False
        changes = {
            "used_by": user_id,
            "used_at": now_ms(),
            "current_uses": access_code.current_uses + 1,
        }
        if access_code.max_uses == 1:
            changes["active"] = False
        txn.update(access_code_path(code), changes)
        return True

    redeemed = store.run_transaction(run)
    if redeemed:
        logger.info("Access code %s redeemed by %s", normalize_code(code), user_id)
    return redeemed


def create_access_code(
    store: DocumentStore,
    created_by: str,
    tier: AccessTier = AccessTier.PRO,
    max_uses: int = 1,
    expires_in_days: Optional[int] = None,
    custom_code: Optional[str] = None,
) -> str:
    code = normalize_code(custom_code) if custom_code else generate_access_code()
    now = now_ms()
    access_code = AccessCode(
        code=code,
        tier=AccessTier(tier),
        created_by=created_by,
        created_at=now,
        expires_at=now + expires_in_days * DAY_MS if expires_in_days else None,
        max_uses=max_uses,
    )
    store.set(access_code_path(code), to_document(access_code))
    return code


def create_trial_code(store: DocumentStore) -> str:
    return create_access_code(
        store, "system", AccessTier.TRIAL, max_uses=1, expires_in_days=TRIAL_DAYS
    )


def get_all_access_codes(store: DocumentStore) -> List[AccessCode]:
    return [from_document(AccessCode, doc.data) for doc in store.query(ACCESS_CODES_COLLECTION)]


def get_active_access_codes(store: DocumentStore) -> List[AccessCode]:
    docs = store.query(ACCESS_CODES_COLLECTION, where=[("active", "==", True)])
    return [from_document(AccessCode, doc.data) for doc in docs]


def deactivate_access_code(store: DocumentStore, code: str) -> None:
    store.update(access_code_path(code), {"active": False})


def delete_access_code(store: DocumentStore, code: str) -> None:
    store.delete(access_code_path(code))
