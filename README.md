# dcwallet

Building blocks for a custodial deposit and withdrawal wallet that covers
Ethereum (with ERC-20 tokens), Bitcoin/Omni and EOS. The package is a
library. It holds the database queries, run locks, callback delivery and
node clients that scheduled wallet jobs are built from.

## Modules

- `dcwallet.values`: `IntEnum` codes stored in the wallet tables.
  These are `TxStatus`, `TxOrgStatus`, `SendStatus`, `SendRelationType`,
  `NotifyStatus`, `NotifyType`, `WithdrawStatus`, `UxtoType` and
  `UxtoHandleStatus`.
- `dcwallet.database`: the `Database` class wraps a DB-API connection.
  - Queries are written with `:name` parameters. `expand_named` rewrites
    them into `?` placeholders, so the connection must accept the `qmark`
    parameter style.
  - A list or tuple value expands in place for `IN (:name)` clauses. An
    empty sequence or a missing parameter raises `ValueError`.
  - The methods are `get` (first row as a dict or `None`), `get_scalar`,
    `select`, `execute_count`, `execute_last_id` and `execute_many`.
  - `execute_many` does a multi-row insert. It replaces the single `%s` in
    the query with the value groups.
- `dcwallet.db_config`: queries for config and status keys, address keys
  and run locks.
  - `get_app_config_int`, `get_app_config_str` and `get_app_status_int`
    raise `ConfigNotFoundError` when the key has no row.
- `dcwallet.db_transfer`: queries for deposits, outgoing sends, nonces,
  pending balances, withdrawals, product notifications and ERC-20 transfers.
- `dcwallet.db_btc`: queries for UTXOs, BTC sends and transactions, and
  BTC-layer token configuration and transfers.
- `dcwallet.data`: run locks and lookups.
  - `acquire_lock` and `release_lock` manage a run lock. A lock held for
    more than 30 minutes is treated as abandoned and taken over.
  - `run_locked(db, name, func)` calls `func` under the lock and returns
    whether it ran.
  - `get_address_key_map` returns address-key rows keyed by address.
- `dcwallet.notify`: product notification delivery.
  - `check_do_notify(db, session=None, now=None)` takes the
    `CheckDoNotify` lock and does the following:
    - It posts every new notification to its URL.
    - It retries failed notifications once ten minutes have passed since
      their last attempt.
    - It records each outcome in the database.
    - It returns a dict that maps notification id to `NotifyOutcome`.
  - `evaluate_response` decides the outcome. A callback passes only when it
    answers HTTP 200 with a JSON object that contains an `error` key.
- `dcwallet.eosclient`: `EosClient` calls the EOS node's `chain` and
  `history` endpoints. A response with a non-zero `code` raises
  `RpcResponseError`. `PushTransactionArg` carries a packed, signed
  transaction.
- `dcwallet.eth_client`: `EthClient` is a JSON-RPC client over HTTP.
  - It covers blocks, headers, transactions, receipts, balances, storage,
    code, nonces, logs, contract calls, gas estimates and raw transaction
    submission.
  - Node errors raise `RpcError`. Missing objects raise `NotFoundError`.
  - `FilterQuery`, `CallMsg` and `SyncProgress` describe requests and
    results.
- `dcwallet.eth_rpc`: `EthRpc` takes addresses and hashes as hex strings,
  normalised with `hex_to_address` and `hex_to_hash`.
  - It caches the network id.
  - `token_balance` reads an ERC-20 `balanceOf` through `encode_balance_of`
    and `decode_uint256`.

The SQL is written in MySQL's dialect, for example `ON DUPLICATE KEY UPDATE`,
`FOR UPDATE` and `CAST(... AS UNSIGNED)`. The driver you connect with has to
run that dialect and accept `?` placeholders.

## Installation

```
pip install .
```

## Examples

Delivering product notifications:

```python
import requests

from dcwallet.database import Database
from dcwallet.notify import check_do_notify

db = Database(connection)  # a DB-API connection as described above
outcomes = check_do_notify(db, requests.Session())
for notify_id, outcome in outcomes.items():
    print(notify_id, outcome.status.name, outcome.message)
```

Querying an Ethereum node:

```python
from dcwallet.eth_client import EthClient
from dcwallet.eth_rpc import EthRpc

rpc = EthRpc(EthClient("http://localhost:8545"))
print(rpc.block_number())
print(rpc.token_balance("0x" + "11" * 20, "0x" + "22" * 20))
```

Reading an EOS account:

```python
from dcwallet.eosclient import EosClient

eos = EosClient("http://localhost:8888")
print(eos.chain_get_account("someaccount"))
```

## What the package does not do

- It has no command-line programs, no job scheduler and no HTTP API
  server. The scheduled jobs that seek blocks, sweep funds, process
  withdrawals and confirm sends are not part of it.
- It does not create the database schema or migrate it.
- It does not generate addresses or keys, sign transactions, or encrypt
  stored keys.
- It has no Bitcoin/Omni node client. `dcwallet.db_btc` only stores and
  queries UTXO and token data.

## Running the tests

```
pip install .[test]
pytest
```