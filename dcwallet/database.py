"""Thin access layer running named-parameter SQL on a DB-API connection."""

import re
from contextlib import closing

_NAMED = re.compile(r"(?<![:\w]):([A-Za-z_]\w*)")
_PLACEHOLDER = "?"


def expand_named(query, params):
    """Turn ``:name`` parameters into positional ones.

    List and tuple values are expanded in place, for ``IN (:name)`` clauses.
    Returns the rewritten query and the list of arguments.
    """
    args = []

    def replace(match):
        name = match.group(1)
        try:
            value = params[name]
        except KeyError:
            raise ValueError(f"missing query parameter: {name}") from None
        if isinstance(value, (list, tuple)):
            if not value:
                raise ValueError(f"empty sequence for parameter: {name}")
            args.extend(value)
            return ", ".join([_PLACEHOLDER] * len(value))
        args.append(value)
        return _PLACEHOLDER

    return _NAMED.sub(replace, query), args


class Database:
    """Runs queries on a DB-API connection; rows come back as dicts."""

    def __init__(self, connection):
        self.connection = connection

    def _execute(self, cursor, query, params):
        sql, args = expand_named(query, params)
        cursor.execute(sql, args)

    @staticmethod
    def _columns(cursor):
        return [column[0] for column in cursor.description]

    def get(self, query, params):
        """Return the first row as a dict, or None when there is none."""
        with closing(self.connection.cursor()) as cursor:
            self._execute(cursor, query, params)
            row = cursor.fetchone()
            if row is None:
                return None
            return dict(zip(self._columns(cursor), row))

    def get_scalar(self, query, params):
        """Return the first column of the first row, or None."""
        with closing(self.connection.cursor()) as cursor:
            self._execute(cursor, query, params)
            row = cursor.fetchone()
            return None if row is None else row[0]

    def select(self, query, params):
        """Return every row as a dict."""
        with closing(self.connection.cursor()) as cursor:
            self._execute(cursor, query, params)
            columns = self._columns(cursor)
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_count(self, query, params):
        """Run a statement and return the number of affected rows."""
        with closing(self.connection.cursor()) as cursor:
            self._execute(cursor, query, params)
            return cursor.rowcount

    def execute_last_id(self, query, params):
        """Run a statement and return the id of the last inserted row."""
        with closing(self.connection.cursor()) as cursor:
            self._execute(cursor, query, params)
            return cursor.lastrowid

    def execute_many(self, query, rows):
        """Insert several rows in one statement.

        The query holds a single ``%s`` where the value groups go; each row is
        a sequence of column values. Returns the number of affected rows.
        """
        rows = [list(row) for row in rows]
        if not rows:
            return 0
        groups = []
        args = []
        for row in rows:
            groups.append("(" + ", ".join([_PLACEHOLDER] * len(row)) + ")")
            args.extend(row)
        sql = query.replace("%s", ",\n    ".join(groups), 1)
        with closing(self.connection.cursor()) as cursor:
            cursor.execute(sql, args)
            return cursor.rowcount