"""Queries on configuration, status, address-key and lock tables."""

from dcwallet.database import Database  # noqa: F401  (type of the ``db`` argument)


class ConfigNotFoundError(LookupError):
    """A configuration or status key has no row."""


def _select(cols):
    return "SELECT\n" + ",\n".join(cols)


def get_app_config_int(db, k):
    """Integer configuration value for key ``k``."""
    row = db.get(
        "SELECT\n    v\nFROM\n\tt_app_config_int\nWHERE\n\tk=:k\nLIMIT 1",
        {"k": k},
    )
    if row is None:
        raise ConfigNotFoundError(f"no app config int of: {k}")
    return row["v"]


def get_app_config_str(db, k):
    """String configuration value for key ``k``."""
    row = db.get(
        "SELECT\n    v\nFROM\n\tt_app_config_str\nWHERE\n\tk=:k\nLIMIT 1",
        {"k": k},
    )
    if row is None:
        raise ConfigNotFoundError(f"no app config str of: {k}")
    return row["v"]


def get_app_status_int(db, k):
    """Integer status value for key ``k``."""
    row = db.get(
        "SELECT\n    v\nFROM\n\tt_app_status_int\nWHERE\n\tk=:k\nLIMIT 1",
        {"k": k},
    )
    if row is None:
        raise ConfigNotFoundError(f"no app status int of: {k}")
    return row["v"]


def count_free_address_keys(db, symbol):
    """Number of unused address keys for ``symbol``."""
    count = db.get_scalar(
        "SELECT\n\tIFNULL(COUNT(*), 0)\nFROM\n\tt_address_key\n"
        "WHERE\n\tuse_tag=0\n\tAND symbol=:symbol",
        {"symbol": symbol},
    )
    return 0 if count is None else count


def select_address_keys_by_tag_and_symbol(db, cols, use_tag, symbol):
    """Address keys with the given tag and symbol, ordered by id."""
    query = (
        _select(cols)
        + "\nFROM\n\tt_address_key\nWHERE\n\tuse_tag=:use_tag\n\tAND symbol=:symbol\nORDER BY\n\tid"
    )
    return db.select(query, {"use_tag": use_tag, "symbol": symbol})


def select_address_keys_by_address(db, cols, addresses):
    """Address keys for the given addresses; empty input gives an empty list."""
    addresses = list(addresses)
    if not addresses:
        return []
    query = _select(cols) + "\nFROM\n\tt_address_key\nWHERE\n\taddress IN (:addresses)"
    return db.select(query, {"addresses": addresses})


def get_address_key_by_address(db, cols, address):
    """The address key row for ``address``, or None."""
    query = _select(cols) + "\nFROM\n\tt_address_key\nWHERE\n\taddress=:address"
    return db.get(query, {"address": address})


def get_free_address_key_for_update(db, cols, symbol):
    """Lock and return one unused address key for ``symbol``, or None."""
    query = (
        _select(cols)
        + "\nFROM\n\tt_address_key\nWHERE\n\tuse_tag=0\n\tAND symbol=:symbol\nLIMIT 1\nFOR UPDATE"
    )
    return db.get(query, {"symbol": symbol})


def get_max_eos_address(db):
    """Largest numeric EOS address issued so far, 0 if none."""
    value = db.get_scalar(
        "SELECT\n\tIFNULL(MAX(CAST(address AS UNSIGNED)),0)\nFROM\n\tt_address_key\n"
        "WHERE\n\tsymbol=\"eos\"",
        {},
    )
    if value is None:
        return 0
    return int(str(value))


def update_app_status_int(db, k, v):
    """Set status ``k`` to ``v``; returns the affected row count."""
    return db.execute_count(
        "UPDATE\n\tt_app_status_int\nSET\n    v=:v\nWHERE\n\tk=:k",
        {"k": k, "v": v},
    )


def update_app_status_int_if_greater(db, k, v):
    """Set status ``k`` to ``v`` only when ``v`` is larger than the stored value."""
    return db.execute_count(
        "UPDATE\n\tt_app_status_int\nSET\n    v=:v\nWHERE\n\tk=:k\n\tAND v<:v",
        {"k": k, "v": v},
    )


def update_app_config_str(db, k, v):
    """Set string configuration ``k`` to ``v``; returns the affected row count."""
    return db.execute_count(
        "UPDATE\n\tt_app_config_str\nSET\n    v=:v\nWHERE\n\tk=:k",
        {"k": k, "v": v},
    )


def get_app_lock(db, cols, k):
    """The held lock row for ``k``, or None when it is not held."""
    query = _select(cols) + "\nFROM\n\tt_app_lock\nWHERE\n\tk=:k\n\tAND v=1"
    return db.get(query, {"k": k})


def upsert_app_lock(db, row):
    """Insert a lock row or refresh its value and time; returns the last id.

    ``row`` is a mapping with ``k``, ``v``, ``create_time`` and optionally ``id``.
    """
    if row.get("id", 0) > 0:
        return db.execute_last_id(
            "INSERT INTO t_app_lock (\n    id,\n    k,\n    v,\n    create_time\n"
            ") VALUES (\n    :id,\n    :k,\n    :v,\n    :create_time\n"
            ") ON DUPLICATE KEY UPDATE \n\tv=:v,\n\tcreate_time=:create_time",
            {"id": row["id"], "k": row["k"], "v": row["v"], "create_time": row["create_time"]},
        )
    return db.execute_last_id(
        "INSERT INTO t_app_lock (\n    k,\n    v,\n    create_time\n"
        ") VALUES (\n    :k,\n    :v,\n    :create_time\n"
        ") ON DUPLICATE KEY UPDATE \n\tv=:v,\n\tcreate_time=:create_time",
        {"k": row["k"], "v": row["v"], "create_time": row["create_time"]},
    )


def update_app_lock(db, row):
    """Update the value and time of lock ``row['k']``; returns the affected row count."""
    return db.execute_count(
        "UPDATE\n\tt_app_lock\nSET\n    v=:v,\n    create_time=:create_time\nWHERE\n\tk=:k",
        {
            "id": row.get("id", 0),
            "k": row["k"],
            "v": row["v"],
            "create_time": row["create_time"],
        },
    )