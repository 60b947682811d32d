"""Run locks stored in the database and lookups keyed by column."""

import logging
import time

from dcwallet.db_config import (
    get_app_lock,
    select_address_keys_by_address,
    update_app_lock,
    upsert_app_lock,
)

log = logging.getLogger(__name__)

LOCK_TIMEOUT = 60 * 30


def _now(now):
    return int(time.time()) if now is None else now


def acquire_lock(db, key, now=None):
    """Take the run lock ``key``; True if taken, False if another holder has it.

    A lock older than thirty minutes is considered abandoned and taken over.
    """
    now = _now(now)
    held = get_app_lock(db, ["create_time"], key)
    if held is not None and now - held["create_time"] <= LOCK_TIMEOUT:
        return False
    upsert_app_lock(db, {"k": key, "v": 1, "create_time": now})
    return True


def release_lock(db, key, now=None):
    """Release the run lock ``key``."""
    update_app_lock(db, {"k": key, "v": 0, "create_time": _now(now)})


def run_locked(db, name, func):
    """Call ``func`` while holding lock ``name``; return whether it ran.

    Failure to take the lock is logged and skips the call. The lock is
    released after ``func`` returns or raises.
    """
    try:
        acquired = acquire_lock(db, name)
    except Exception as err:
        log.warning("acquire lock %s failed: [%s] %s", name, type(err).__name__, err)
        return False
    if not acquired:
        return False
    try:
        func()
    finally:
        try:
            release_lock(db, name)
        except Exception as err:
            log.warning("release lock %s failed: [%s] %s", name, type(err).__name__, err)
    return True


def get_address_key_map(db, cols, addresses):
    """Address key rows for ``addresses``, keyed by address."""
    cols = list(cols)
    if "address" not in cols:
        cols.append("address")
    rows = select_address_keys_by_address(db, cols, addresses)
    return {row["address"]: row for row in rows}