"""
Leader Grid: QR point vouchers a host prints and students scan.

A redemption moves the scan counter, both redemption records and the
student's points in one transaction, so a voucher can never pay out more
scans than it allows.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from engage import analytics
from engage.scoring import apply_points
from engage.store import ArrayUnion, DocumentStore, Increment, Transaction
from engage.users import user_path
from shared.constants import (
    LEADER_GRID_CODES_COLLECTION,
    LEADERGRID_COOLDOWN_SECONDS,
    REDEMPTIONS_COLLECTION,
)
from shared.json_utils import from_document, to_document
from shared.types import LeaderGridCode, RedemptionRecord, RedemptionResult
from shared.utils import generate_code, get_unique_id, now_ms

logger = logging.getLogger(__name__)

INVALID_CODE = "Invalid code."
EXPIRED_CODE = "This code has expired."
ALREADY_SCANNED = "This QR code has been scanned already."
MAX_SCANS_REACHED = "This code has reached its maximum number of scans."


def code_path(code_id: str) -> str:
    return f"{LEADER_GRID_CODES_COLLECTION}/{code_id}"


def create_leadergrid_code(
    store: DocumentStore,
    host_id: str,
    class_id: Optional[str],
    name: str,
    description: str,
    points: int,
    max_scans: Optional[int] = None,
    expires_at: Optional[int] = None,
) -> LeaderGridCode:
    """Creates a voucher; a `class_id` of None makes it valid in any class."""
    voucher = LeaderGridCode(
        id=get_unique_id(),
        code=generate_code(),
        name=name,
        description=description,
        host_id=host_id,
        class_id=class_id or None,
        points=points,
        max_scans=max_scans,
        expires_at=expires_at,
        created_at=now_ms(),
    )
    store.set(code_path(voucher.id), to_document(voucher))
    logger.info("Leader Grid code %s created by %s", voucher.code, host_id)
    return voucher


def get_leadergrid_codes(store: DocumentStore, host_id: str, class_id: str) -> List[LeaderGridCode]:
    """The class's own codes followed by the host's universal ones, newest first."""
    found = []
    for target in (class_id, None):
        docs = store.query(
            LEADER_GRID_CODES_COLLECTION,
            where=[("host_id", "==", host_id), ("class_id", "==", target)],
            order_by="created_at",
            descending=True,
        )
        found.extend(from_document(LeaderGridCode, doc.data, doc.id) for doc in docs)
    return found


def delete_leadergrid_code(store: DocumentStore, code_id: str) -> None:
    store.delete(code_path(code_id))


def redeem_leadergrid_code(
    store: DocumentStore,
    user_id: str,
    code: str,
    current_class_id: Optional[str] = None,
    cooldown_seconds: int = LEADERGRID_COOLDOWN_SECONDS,
) -> RedemptionResult:
    matches = store.query(
        LEADER_GRID_CODES_COLLECTION, where=[("code", "==", code.strip().upper())], limit=1
    )
    if not matches:
        return RedemptionResult(success=False, message=INVALID_CODE)
    code_id = matches[0].id

    def run(txn: Transaction) -> tuple:
        data = txn.get(code_path(code_id))
        if data is None:
            return RedemptionResult(success=False, message=INVALID_CODE), None
        voucher = from_document(LeaderGridCode, data, code_id)
        now = now_ms()

        if voucher.expires_at is not None and now > voucher.expires_at:
            return RedemptionResult(success=False, message=EXPIRED_CODE), None

        redemption_path = f"{code_path(code_id)}/{REDEMPTIONS_COLLECTION}/{user_id}"
        previous = txn.get(redemption_path)
        if previous and now - previous.get("timestamp", 0) < cooldown_seconds * 1000:
            return RedemptionResult(success=False, message=ALREADY_SCANNED), None

        if voucher.max_scans is not None and voucher.current_scans >= voucher.max_scans:
            return RedemptionResult(success=False, message=MAX_SCANS_REACHED), None

        target_class = voucher.class_id or current_class_id
        txn.update(
            code_path(code_id),
            {"current_scans": Increment(1), "redeemed_by": ArrayUnion(user_id)},
        )
        txn.set(redemption_path, {"timestamp": now, "user_id": user_id})
        record = RedemptionRecord(
            code_id=code_id,
            code_name=voucher.name,
            points=voucher.points,
            timestamp=now,
            class_id=target_class,
        )
        txn.set(
            f"{user_path(user_id)}/{REDEMPTIONS_COLLECTION}/{code_id}",
            to_document(record),
        )
        apply_points(
            txn,
            target_class,
            user_id,
            voucher.points,
            f"QR Code: {voucher.name}",
            create_member=True,
        )
        result = RedemptionResult(
            success=True,
            message=f"Successfully redeemed {voucher.points} points!",
            points=voucher.points,
        )
        return result, target_class

    result, target_class = store.run_transaction(run)
    if result.success:
        logger.info("User %s redeemed code %s for %d points", user_id, code_id, result.points)
        analytics.log_point_transaction(store, user_id, result.points, "qr_code", target_class)
    return result


def get_user_redemption_history(store: DocumentStore, user_id: str) -> List[RedemptionRecord]:
    docs = store.query(
        f"{user_path(user_id)}/{REDEMPTIONS_COLLECTION}",
        order_by="timestamp",
        descending=True,
    )
    return [from_document(RedemptionRecord, doc.data) for doc in docs]
