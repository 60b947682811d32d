"""Delivery of product notifications to their callback URLs."""

import json
import logging
import time
from dataclasses import dataclass

import requests

from dcwallet.data import run_locked
from dcwallet.db_transfer import select_product_notifies, update_product_notify_status
from dcwallet.values import NotifyStatus

log = logging.getLogger(__name__)

LOCK_KEY = "CheckDoNotify"
REQUEST_TIMEOUT = 30
RETRY_DELAY = 10 * 60
MAX_MESSAGE_LENGTH = 500

_NOTIFY_COLUMNS = ["id", "url", "msg"]


@dataclass(frozen=True)
class NotifyOutcome:
    """Delivery state and message to record for one notification."""

    status: NotifyStatus
    message: str


def evaluate_response(status_code, body):
    """Decide the outcome of a callback from its HTTP status and body.

    A callback is accepted when it answers 200 with a JSON object holding an
    ``error`` key; anything else marks the notification as failed.
    """
    if status_code != 200:
        return NotifyOutcome(NotifyStatus.FAIL, f"http status: {status_code}")
    try:
        parsed = json.loads(body)
    except ValueError:
        return NotifyOutcome(NotifyStatus.FAIL, body)
    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        return NotifyOutcome(NotifyStatus.FAIL, body)
    if "error" in parsed:
        return NotifyOutcome(NotifyStatus.PASS, body)
    return NotifyOutcome(NotifyStatus.FAIL, body[:MAX_MESSAGE_LENGTH])


def _deliver(session, row):
    try:
        response = session.post(
            row["url"],
            data=row["msg"].encode("utf-8"),
            headers={"Content-Type": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as err:
        log.error("err: [%s] %s", type(err).__name__, err)
        return NotifyOutcome(NotifyStatus.FAIL, str(err))
    if response.status_code != 200:
        log.error("req status error: %d", response.status_code)
    return evaluate_response(response.status_code, response.text)


def check_do_notify(db, session=None, now=None):
    """Send pending and retry-due notifications, recording each outcome.

    New notifications are sent right away; failed ones are retried once ten
    minutes have passed since their last attempt. Returns a mapping from
    notification id to its outcome, empty when the run lock is held elsewhere.
    """
    http = session if session is not None else requests.Session()
    outcomes = {}

    def work():
        current = int(time.time()) if now is None else now
        try:
            rows = select_product_notifies(db, _NOTIFY_COLUMNS, NotifyStatus.INIT, current)
            rows += select_product_notifies(
                db, _NOTIFY_COLUMNS, NotifyStatus.FAIL, current - RETRY_DELAY
            )
        except Exception as err:
            log.error("err: [%s] %s", type(err).__name__, err)
            return
        for row in rows:
            outcome = _deliver(http, row)
            outcomes[row["id"]] = outcome
            try:
                update_product_notify_status(
                    db,
                    {
                        "id": row["id"],
                        "handle_status": outcome.status,
                        "handle_msg": outcome.message,
                        "update_time": int(time.time()) if now is None else now,
                    },
                )
            except Exception as err:
                log.error("err: [%s] %s", type(err).__name__, err)

    run_locked(db, LOCK_KEY, work)
    return outcomes