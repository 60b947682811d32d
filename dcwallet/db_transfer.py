"""Queries on incoming transactions, outgoing sends, withdrawals and notifications."""

from dcwallet.database import Database  # noqa: F401  (type of the ``db`` argument)


def _select(cols, rest):
    return "SELECT\n" + ",\n".join(cols) + rest


def _update_by_ids(db, table, ids, row, fields):
    """Set ``fields`` from ``row`` on every row of ``table`` whose id is in ``ids``."""
    ids = list(ids)
    if not ids:
        return 0
    assignments = ",\n".join(f"    {field}=:{field}" for field in fields)
    query = f"UPDATE\n\t{table}\nSET\n{assignments}\nWHERE\n\tid IN (:ids)"
    params = {field: row[field] for field in fields}
    params["ids"] = ids
    return db.execute_count(query, params)


_HANDLE_TIME = ("handle_status", "handle_msg", "handle_time")
_HANDLE_AT = ("handle_status", "handle_msg", "handle_at")
_ORG_TIME = ("org_status", "org_msg", "org_time")


def select_txs_by_org_status_for_update(db, cols, org_status):
    """Lock and return incoming transactions with the given sweep state."""
    query = _select(cols, "\nFROM\n\tt_tx\nWHERE\n\torg_status=:org_status\nFOR UPDATE")
    return db.select(query, {"org_status": org_status})


def get_next_send_nonce(db, address):
    """Next nonce for ``address``: one past the largest recorded, 0 if none."""
    value = db.get_scalar(
        "SELECT \n\tIFNULL(MAX(nonce), -1)\nFROM\n\tt_send\n"
        "WHERE\n\tfrom_address=:address\nLIMIT 1",
        {"address": address},
    )
    if value is None:
        return 0
    return int(value) + 1


def _pending_balance(db, query, params):
    value = db.get_scalar(query, params)
    return "0" if value is None else str(value)


def get_send_pending_balance(db, address):
    """Sum, as a decimal string, of unconfirmed sends from ``address``."""
    return _pending_balance(
        db,
        "SELECT \n\tIFNULL(SUM(CAST(balance_real as DECIMAL(65,18))), \"0\")\nFROM\n\tt_send\n"
        "WHERE\n\tfrom_address=:address\n\tAND handle_status<2\nLIMIT 1",
        {"address": address},
    )


def get_send_eos_pending_balance(db, address):
    """Sum, as a decimal string, of unconfirmed EOS sends from ``address``."""
    return _pending_balance(
        db,
        "SELECT \n\tIFNULL(SUM(CAST(balance_real as DECIMAL(65,4))), \"0\")\nFROM\n\tt_send_eos\n"
        "WHERE\n\tfrom_address=:address\n\tAND handle_status<2\nLIMIT 1",
        {"address": address},
    )


def update_tx_org_status(db, ids, row):
    """Set the sweep state of transactions ``ids``; returns the affected row count."""
    return _update_by_ids(db, "t_tx", ids, row, _ORG_TIME)


def update_tx_status(db, ids, row):
    """Set the handling state of transactions ``ids``."""
    return _update_by_ids(db, "t_tx", ids, row, _HANDLE_TIME)


def update_tx_erc20_status(db, ids, row):
    """Set the handling state of token transfers ``ids``."""
    return _update_by_ids(db, "t_tx_erc20", ids, row, _HANDLE_TIME)


def update_tx_eos_status(db, ids, row):
    """Set the handling state of EOS transfers ``ids``."""
    return _update_by_ids(db, "t_tx_eos", ids, row, _HANDLE_AT)


def update_send_status(db, ids, row):
    """Set the handling state of outgoing sends ``ids``."""
    return _update_by_ids(db, "t_send", ids, row, _HANDLE_TIME)


def update_send_eos_status(db, ids, row):
    """Set the handling state of outgoing EOS sends ``ids``."""
    return _update_by_ids(db, "t_send_eos", ids, row, _HANDLE_AT)


def select_sends_by_status(db, cols, status):
    """Outgoing sends in the given state, ordered by id."""
    query = _select(cols, "\nFROM\n\tt_send\nWHERE\n\thandle_status=:handle_status\nORDER BY id")
    return db.select(query, {"handle_status": status})


def select_send_eos_by_status(db, cols, status):
    """Outgoing EOS sends in the given state, ordered by id."""
    query = _select(
        cols, "\nFROM\n\tt_send_eos\nWHERE\n\thandle_status=:handle_status\nORDER BY id"
    )
    return db.select(query, {"handle_status": status})


def select_withdraws_by_status(db, cols, status, symbols):
    """Withdrawals in the given state for any of ``symbols``."""
    query = _select(
        cols,
        "\nFROM\n\tt_withdraw\nWHERE\n\thandle_status=:handle_status\n\tAND symbol IN (:symbols)",
    )
    return db.select(query, {"handle_status": status, "symbols": list(symbols)})


def select_withdraws_by_status_for_update(db, cols, status, symbols):
    """Lock and return withdrawals in the given state for any of ``symbols``."""
    query = _select(
        cols,
        "\nFROM\n\tt_withdraw\nWHERE\n\thandle_status=:handle_status\n"
        "\tAND symbol IN (:symbols)\nFOR UPDATE",
    )
    return db.select(query, {"handle_status": status, "symbols": list(symbols)})


def get_withdraw_for_update(db, cols, withdraw_id, status):
    """Lock and return withdrawal ``withdraw_id`` if it is in ``status``, else None."""
    query = _select(
        cols,
        "\nFROM\n\tt_withdraw\nWHERE\n\tid=:id\n\tAND handle_status=:handle_status\nFOR UPDATE",
    )
    return db.get(query, {"id": withdraw_id, "handle_status": status})


def update_withdraw_gen_tx(db, row):
    """Record the generated transaction hash and state of withdrawal ``row['id']``."""
    return db.execute_count(
        "UPDATE\n\tt_withdraw\nSET\n    tx_hash=:tx_hash,\n    handle_status=:handle_status,\n"
        "    handle_msg=:handle_msg,\n    handle_time=:handle_time\nWHERE\n\tid=:id",
        {
            "id": row["id"],
            "tx_hash": row["tx_hash"],
            "handle_status": row["handle_status"],
            "handle_msg": row["handle_msg"],
            "handle_time": row["handle_time"],
        },
    )


def update_withdraw_status(db, ids, row):
    """Set the handling state of withdrawals ``ids``."""
    return _update_by_ids(db, "t_withdraw", ids, row, _HANDLE_TIME)


_WITHDRAW_COLUMNS = (
    "product_id",
    "out_serial",
    "to_address",
    "memo",
    "symbol",
    "balance_real",
    "tx_hash",
    "create_time",
    "handle_status",
    "handle_msg",
    "handle_time",
)

_WITHDRAW_UPDATE = (
    "ON DUPLICATE KEY UPDATE \n\ttx_hash=VALUES(tx_hash),\n"
    "\thandle_status=VALUES(handle_status),\n\thandle_msg=VALUES(handle_msg),\n"
    "\thandle_time=VALUES(handle_time)"
)


def create_many_withdraws(db, rows):
    """Insert withdrawals, updating hash and state of ones that exist.

    The id column is written only when the first row carries a positive id.
    Returns the affected row count.
    """
    rows = list(rows)
    if not rows:
        return 0
    columns = _WITHDRAW_COLUMNS
    if rows[0].get("id", 0) > 0:
        columns = ("id",) + columns
    values = [[row[column] for column in columns] for row in rows]
    query = (
        "INSERT INTO t_withdraw (\n"
        + ",\n".join(f"    {column}" for column in columns)
        + "\n) VALUES\n    %s\n"
        + _WITHDRAW_UPDATE
    )
    return db.execute_many(query, values)


def select_txs_by_status(db, cols, status):
    """Incoming transactions in the given handling state."""
    query = _select(cols, "\nFROM\n\tt_tx\nWHERE\n\thandle_status=:handle_status")
    return db.select(query, {"handle_status": status})


def select_tx_eos_by_status(db, cols, status):
    """Incoming EOS transfers in the given handling state."""
    query = _select(cols, "\nFROM\n\tt_tx_eos\nWHERE\n\thandle_status=:handle_status")
    return db.select(query, {"handle_status": status})


def select_product_notifies(db, cols, status, before):
    """Notifications in ``status`` last updated before time ``before``."""
    query = _select(
        cols,
        "\nFROM\n\tt_product_notify\nWHERE\n\thandle_status=:handle_status\n"
        "\tAND update_time<:update_time",
    )
    return db.select(query, {"handle_status": status, "update_time": before})


def update_product_notify_status(db, row):
    """Set the delivery state of notification ``row['id']``."""
    return db.execute_count(
        "UPDATE\n\tt_product_notify\nSET\n    handle_status=:handle_status,\n"
        "    handle_msg=:handle_msg,\n    update_time=:update_time\nWHERE\n\tid=:id",
        {
            "id": row["id"],
            "handle_status": row["handle_status"],
            "handle_msg": row["handle_msg"],
            "update_time": row["update_time"],
        },
    )


def select_all_config_tokens(db, cols):
    """Every configured token."""
    return db.select(_select(cols, "\nFROM\n\tt_app_config_token"), {})


def select_tx_erc20_by_status(db, cols, status):
    """Incoming token transfers in the given handling state."""
    query = _select(cols, "\nFROM\n\tt_tx_erc20\nWHERE\n\thandle_status=:handle_status")
    return db.select(query, {"handle_status": status})


def select_tx_erc20_by_org_for_update(db, cols, org_statuses):
    """Lock and return token transfers in any of the given sweep states."""
    query = _select(
        cols, "\nFROM\n\tt_tx_erc20\nWHERE\n\torg_status IN (:org_status)\nFOR UPDATE"
    )
    return db.select(query, {"org_status": list(org_statuses)})


def update_tx_erc20_org_status(db, ids, row):
    """Set the sweep state of token transfers ``ids``."""
    return _update_by_ids(db, "t_tx_erc20", ids, row, _ORG_TIME)