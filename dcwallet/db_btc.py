"""Queries on unspent outputs, BTC sends, BTC transactions and BTC token tables."""

from dcwallet.database import Database  # noqa: F401  (type of the ``db`` argument)
from dcwallet.values import UxtoType

_HANDLE_TIME = ("handle_status", "handle_msg", "handle_time")
_HANDLE_AT = ("handle_status", "handle_msg", "handle_at")
_ORG_AT = ("org_status", "org_msg", "org_at")

_UXTO_COLUMNS = (
    "id",
    "uxto_type",
    "block_hash",
    "tx_id",
    "vout_n",
    "vout_address",
    "vout_value",
    "vout_script",
    "create_time",
    "spend_tx_id",
    "spend_n",
    "handle_status",
    "handle_msg",
    "handle_time",
)

_UXTO_UPDATE_FIELDS = (
    "spend_tx_id",
    "spend_n",
    "handle_status",
    "handle_msg",
    "handle_time",
)

_VALUE_ORDER = "CAST(vout_value as DECIMAL(65,8))"


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


def select_uxtos_by_tx_ids(db, cols, tx_ids):
    """Unspent outputs belonging to any of the transactions ``tx_ids``."""
    cols = list(cols)
    if not cols:
        return []
    query = _select(cols, "\nFROM\n\tt_tx_btc_uxto\nWHERE\n\ttx_id IN (:tx_ids)")
    return db.select(query, {"tx_ids": list(tx_ids)})


def create_many_uxtos(db, rows):
    """Insert unspent outputs, updating spend and handling state of existing ones.

    When the first row carries a block hash, the stored block hash is refreshed
    too. Returns the affected row count.
    """
    rows = list(rows)
    if not rows:
        return 0
    update_fields = _UXTO_UPDATE_FIELDS
    if rows[0].get("block_hash"):
        update_fields = ("block_hash",) + update_fields
    query = (
        "INSERT INTO t_tx_btc_uxto (\n"
        + ",\n".join(f"    {column}" for column in _UXTO_COLUMNS)
        + "\n) VALUES\n    %s\nON DUPLICATE KEY UPDATE \n"
        + ",\n".join(f"\t{field}=VALUES({field})" for field in update_fields)
    )
    values = [[row[column] for column in _UXTO_COLUMNS] for row in rows]
    return db.execute_many(query, values)


def select_uxtos_to_org_for_update(db, cols, uxto_type):
    """Lock and return unhandled outputs of ``uxto_type`` for sweeping.

    Received outputs come in id order, others by value, largest first.
    """
    order = "\tid" if uxto_type == UxtoType.TX else f"\t{_VALUE_ORDER} DESC"
    query = _select(
        cols,
        "\nFROM\n\tt_tx_btc_uxto\nWHERE\n\thandle_status=0\n\tAND uxto_type=:uxto_type\n"
        "ORDER BY\n" + order + "\nFOR UPDATE",
    )
    return db.select(query, {"uxto_type": uxto_type})


def _uxto_order(uxto_type):
    if uxto_type == UxtoType.TX:
        return "id"
    if uxto_type in (UxtoType.OMNI, UxtoType.OMNI_HOT):
        return _VALUE_ORDER
    return f"{_VALUE_ORDER} DESC"


def select_uxtos_by_address_for_update(db, cols, address, uxto_type):
    """Lock and return unhandled outputs of ``uxto_type`` paid to ``address``."""
    query = _select(
        cols,
        "\nFROM\n\tt_tx_btc_uxto\nWHERE\n\tvout_address=:vout_address\n\tAND handle_status=0\n"
        "\tAND uxto_type=:uxto_type\nORDER BY\n " + _uxto_order(uxto_type) + "\nFOR UPDATE",
    )
    return db.select(query, {"vout_address": address, "uxto_type": uxto_type})


def select_uxtos_by_addresses_for_update(db, cols, addresses, uxto_type):
    """Lock and return unhandled outputs of ``uxto_type`` paid to any of ``addresses``."""
    query = _select(
        cols,
        "\nFROM\n\tt_tx_btc_uxto\nWHERE\n\tvout_address IN (:vout_address)\n"
        "\tAND handle_status=0\n\tAND uxto_type=:uxto_type\nORDER BY\n vout_address, "
        + _uxto_order(uxto_type)
        + "\nFOR UPDATE",
    )
    return db.select(query, {"vout_address": list(addresses), "uxto_type": uxto_type})


def select_send_btc_by_status(db, cols, status):
    """Outgoing BTC sends in the given handling state."""
    query = _select(cols, "\nFROM\n\tt_send_btc\nWHERE\n\thandle_status=:handle_status")
    return db.select(query, {"handle_status": status})


def update_send_btc_status(db, ids, row):
    """Set the handling state of outgoing BTC sends ``ids``."""
    return _update_by_ids(db, "t_send_btc", ids, row, _HANDLE_TIME)


def select_tx_btc_by_status(db, cols, status):
    """Incoming BTC transactions in the given handling state."""
    query = _select(cols, "\nFROM\n\tt_tx_btc\nWHERE\n\thandle_status=:handle_status")
    return db.select(query, {"handle_status": status})


def update_tx_btc_status(db, ids, row):
    """Set the handling state of incoming BTC transactions ``ids``."""
    return _update_by_ids(db, "t_tx_btc", ids, row, _HANDLE_TIME)


def select_all_config_token_btc(db, cols):
    """Every configured BTC-layer token."""
    return db.select(_select(cols, "\nFROM\n\tt_app_config_token_btc"), {})


def select_tx_btc_tokens_by_org_status_for_update(db, cols, org_status):
    """Lock and return token transfers with the given sweep state."""
    query = _select(
        cols, "\nFROM\n\tt_tx_btc_token\nWHERE\n\torg_status=:org_status\nFOR UPDATE"
    )
    return db.select(query, {"org_status": org_status})


def select_tx_btc_tokens_by_handle_status(db, cols, handle_status):
    """Token transfers in the given handling state."""
    query = _select(cols, "\nFROM\n\tt_tx_btc_token\nWHERE\n\thandle_status=:handle_status")
    return db.select(query, {"handle_status": handle_status})


def select_config_token_btc_by_indexes(db, cols, token_indexes):
    """Configured tokens with any of ``token_indexes``; empty input gives an empty list."""
    token_indexes = list(token_indexes)
    if not token_indexes:
        return []
    query = _select(
        cols, "\nFROM\n\tt_app_config_token_btc\nWHERE\n\ttoken_index IN (:token_index)"
    )
    return db.select(query, {"token_index": token_indexes})


def update_tx_btc_token_org_status(db, ids, row):
    """Set the sweep state of token transfers ``ids``."""
    return _update_by_ids(db, "t_tx_btc_token", ids, row, _ORG_AT)


def update_tx_btc_token_handle_status(db, ids, row):
    """Set the handling state of token transfers ``ids``."""
    return _update_by_ids(db, "t_tx_btc_token", ids, row, _HANDLE_AT)


def get_send_btc_pending_balance(db, address, token_index):
    """Sum, as a decimal string, of unconfirmed token sends from ``address``."""
    value = db.get_scalar(
        "SELECT \n\tIFNULL(SUM(CAST(value as DECIMAL(65,8))), \"0\")\nFROM\n\tt_tx_btc_token\n"
        "WHERE\n\tfrom_address=:address\n\tAND token_index=:token_index\n"
        "\tAND handle_status<3\nLIMIT 1",
        {"address": address, "token_index": token_index},
    )
    return "0" if value is None else str(value)