"""JSON-RPC client for an Ethereum node."""

import itertools
from dataclasses import dataclass, field

import requests

DEFAULT_TIMEOUT = 60

EMPTY_UNCLE_HASH = "0x1dcc4de8dec75d7aab85b567b6ccd41ad312451b948a7413f0a142fd40d49347"
EMPTY_ROOT_HASH = "0x56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"
ZERO_HASH = "0x" + "0" * 64


class RpcError(Exception):
    """An error object returned by the node."""

    def __init__(self, code, message, data=None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"{code}: {message}")


class NotFoundError(LookupError):
    """The requested object does not exist on the node."""

    def __init__(self, message="not found"):
        super().__init__(message)


@dataclass
class FilterQuery:
    """Selection of logs by block range or block hash, address and topics."""

    addresses: list = field(default_factory=list)
    topics: list = field(default_factory=list)
    block_hash: str | None = None
    from_block: int | None = None
    to_block: int | None = None


@dataclass
class CallMsg:
    """A message call that is executed without being mined."""

    from_address: str | None = None
    to: str | None = None
    gas: int = 0
    gas_price: int | None = None
    value: int | None = None
    data: bytes = b""


@dataclass(frozen=True)
class SyncProgress:
    """Progress of a running chain synchronisation."""

    starting_block: int
    current_block: int
    highest_block: int
    pulled_states: int
    known_states: int


def _hex_int(value):
    return int(value, 16)


def _hex_bytes(value):
    if value is None:
        return b""
    return bytes.fromhex(value[2:] if value.startswith(("0x", "0X")) else value)


def _encode_bytes(data):
    return "0x" + bytes(data).hex()


def to_block_num_arg(number):
    """Block selector: ``latest`` for None, ``pending`` for -1, else hex."""
    if number is None:
        return "latest"
    if number == -1:
        return "pending"
    return hex(number)


def to_filter_arg(query):
    """Parameters of ``eth_getLogs`` for a FilterQuery."""
    arg = {"address": list(query.addresses), "topics": list(query.topics)}
    if query.block_hash is not None:
        arg["blockHash"] = query.block_hash
        if query.from_block is not None or query.to_block is not None:
            raise ValueError("cannot specify both BlockHash and FromBlock/ToBlock")
    else:
        arg["fromBlock"] = "0x0" if query.from_block is None else to_block_num_arg(query.from_block)
        arg["toBlock"] = to_block_num_arg(query.to_block)
    return arg


def to_call_arg(msg):
    """Call object of ``eth_call`` and ``eth_estimateGas`` for a CallMsg."""
    arg = {"from": msg.from_address, "to": msg.to}
    if msg.data:
        arg["data"] = _encode_bytes(msg.data)
    if msg.value is not None:
        arg["value"] = hex(msg.value)
    if msg.gas:
        arg["gas"] = hex(msg.gas)
    if msg.gas_price is not None:
        arg["gasPrice"] = hex(msg.gas_price)
    return arg


def _raise_error(error):
    raise RpcError(error.get("code", 0), error.get("message", ""), error.get("data"))


def _check_signed(tx):
    if tx.get("r") is None:
        raise ValueError("server returned transaction without signature")


class EthClient:
    """Typed wrappers for the Ethereum JSON-RPC API over HTTP.

    Blocks, headers, transactions, receipts and logs come back as the
    dictionaries the node sends. Senders reported by the node for mined
    transactions are remembered so ``transaction_sender`` can skip a request.
    """

    def __init__(self, url, session=None, timeout=DEFAULT_TIMEOUT):
        self.url = url
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._senders = {}

    def _post(self, payload):
        response = self.session.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _request(self, method, args):
        return {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(args)}

    def call(self, method, *args):
        """Call ``method`` with ``args`` and return its result."""
        reply = self._post(self._request(method, args))
        if reply.get("error") is not None:
            _raise_error(reply["error"])
        return reply.get("result")

    def batch_call(self, calls):
        """Send several ``(method, args)`` calls in one request.

        Returns the results in call order; the first failed call raises.
        """
        requests_ = [self._request(method, args) for method, args in calls]
        if not requests_:
            return []
        replies = self._post(requests_)
        by_id = {reply.get("id"): reply for reply in replies}
        results = []
        for req in requests_:
            reply = by_id.get(req["id"])
            if reply is None:
                raise RpcError(0, f"no response for batch call {req['method']}")
            if reply.get("error") is not None:
                _raise_error(reply["error"])
            results.append(reply.get("result"))
        return results

    def _remember_sender(self, tx, block_hash):
        if tx.get("from") is not None and tx.get("hash") is not None and block_hash is not None:
            self._senders[tx["hash"]] = (tx["from"], block_hash)

    def chain_id(self):
        """Chain id used for replay protection."""
        return _hex_int(self.call("eth_chainId"))

    def _get_block(self, method, *args):
        raw = self.call(method, *args)
        if not raw:
            raise NotFoundError()
        uncle_hashes = raw.get("uncles") or []
        transactions = raw.get("transactions") or []
        uncle_hash = (raw.get("sha3Uncles") or "").lower()
        tx_root = (raw.get("transactionsRoot") or "").lower()
        if uncle_hash == EMPTY_UNCLE_HASH and uncle_hashes:
            raise ValueError(
                "server returned non-empty uncle list but block header indicates no uncles"
            )
        if uncle_hash != EMPTY_UNCLE_HASH and not uncle_hashes:
            raise ValueError(
                "server returned empty uncle list but block header indicates uncles"
            )
        if tx_root == EMPTY_ROOT_HASH and transactions:
            raise ValueError(
                "server returned non-empty transaction list but block header indicates no transactions"
            )
        if tx_root != EMPTY_ROOT_HASH and not transactions:
            raise ValueError(
                "server returned empty transaction list but block header indicates transactions"
            )
        block_hash = raw.get("hash")
        uncles = []
        if uncle_hashes:
            uncles = self.batch_call(
                ("eth_getUncleByBlockHashAndIndex", [block_hash, hex(index)])
                for index in range(len(uncle_hashes))
            )
            for index, uncle in enumerate(uncles):
                if uncle is None:
                    raise ValueError(f"got null header for uncle {index} of block {block_hash}")
        for tx in transactions:
            if isinstance(tx, dict):
                self._remember_sender(tx, block_hash)
        return {**raw, "uncleHeaders": uncles}

    def block_by_hash(self, block_hash):
        """Full block with hash ``block_hash``, uncle headers included."""
        return self._get_block("eth_getBlockByHash", block_hash, True)

    def block_by_number(self, number=None):
        """Full canonical block ``number``; the latest when None."""
        return self._get_block("eth_getBlockByNumber", to_block_num_arg(number), True)

    def block_number(self):
        """Number of the most recent block."""
        return _hex_int(self.call("eth_blockNumber"))

    def header_by_hash(self, block_hash):
        """Header of the block with hash ``block_hash``."""
        head = self.call("eth_getBlockByHash", block_hash, False)
        if head is None:
            raise NotFoundError()
        return head

    def header_by_number(self, number=None):
        """Header of canonical block ``number``; the latest when None."""
        head = self.call("eth_getBlockByNumber", to_block_num_arg(number), False)
        if head is None:
            raise NotFoundError()
        return head

    def transaction_by_hash(self, tx_hash):
        """Return ``(transaction, is_pending)`` for ``tx_hash``."""
        tx = self.call("eth_getTransactionByHash", tx_hash)
        if tx is None:
            raise NotFoundError()
        _check_signed(tx)
        if tx.get("blockHash") is not None:
            self._remember_sender(tx, tx["blockHash"])
        return tx, tx.get("blockNumber") is None

    def transaction_sender(self, tx, block_hash, index):
        """Sender of ``tx`` as included at ``index`` of block ``block_hash``."""
        cached = self._senders.get(tx.get("hash"))
        if cached is not None and block_hash != ZERO_HASH and cached[1] == block_hash:
            return cached[0]
        meta = self.call("eth_getTransactionByBlockHashAndIndex", block_hash, hex(index)) or {}
        meta_hash = meta.get("hash")
        if not meta_hash or meta_hash == ZERO_HASH or meta_hash != tx.get("hash"):
            raise ValueError("wrong inclusion block/index")
        return meta.get("from")

    def transaction_count(self, block_hash):
        """Number of transactions in block ``block_hash``."""
        return _hex_int(self.call("eth_getBlockTransactionCountByHash", block_hash))

    def transaction_in_block(self, block_hash, index):
        """Transaction at ``index`` of block ``block_hash``."""
        tx = self.call("eth_getTransactionByBlockHashAndIndex", block_hash, hex(index))
        if tx is None:
            raise NotFoundError()
        _check_signed(tx)
        if tx.get("blockHash") is not None:
            self._remember_sender(tx, tx["blockHash"])
        return tx

    def transaction_receipt(self, tx_hash):
        """Receipt of a mined transaction."""
        receipt = self.call("eth_getTransactionReceipt", tx_hash)
        if receipt is None:
            raise NotFoundError()
        return receipt

    def sync_progress(self):
        """Progress of the running sync, or None when the node is not syncing."""
        raw = self.call("eth_syncing")
        if raw is None or isinstance(raw, bool):
            return None

        def number(key):
            value = raw.get(key)
            return 0 if value is None else _hex_int(value)

        return SyncProgress(
            starting_block=number("startingBlock"),
            current_block=number("currentBlock"),
            highest_block=number("highestBlock"),
            pulled_states=number("pulledStates"),
            known_states=number("knownStates"),
        )

    def network_id(self):
        """Network id of the chain."""
        version = self.call("net_version")
        try:
            return int(str(version), 10)
        except ValueError:
            raise ValueError(f'invalid net_version result "{version}"') from None

    def balance_at(self, account, block_number=None):
        """Wei balance of ``account`` at ``block_number``; the latest when None."""
        return _hex_int(self.call("eth_getBalance", account, to_block_num_arg(block_number)))

    def storage_at(self, account, key, block_number=None):
        """Storage slot ``key`` of ``account``."""
        return _hex_bytes(
            self.call("eth_getStorageAt", account, key, to_block_num_arg(block_number))
        )

    def code_at(self, account, block_number=None):
        """Contract code of ``account``."""
        return _hex_bytes(self.call("eth_getCode", account, to_block_num_arg(block_number)))

    def nonce_at(self, account, block_number=None):
        """Nonce of ``account``."""
        return _hex_int(
            self.call("eth_getTransactionCount", account, to_block_num_arg(block_number))
        )

    def filter_logs(self, query):
        """Logs matching a FilterQuery."""
        return self.call("eth_getLogs", to_filter_arg(query)) or []

    def pending_balance_at(self, account):
        """Wei balance of ``account`` in the pending state."""
        return _hex_int(self.call("eth_getBalance", account, "pending"))

    def pending_storage_at(self, account, key):
        """Storage slot ``key`` of ``account`` in the pending state."""
        return _hex_bytes(self.call("eth_getStorageAt", account, key, "pending"))

    def pending_code_at(self, account):
        """Contract code of ``account`` in the pending state."""
        return _hex_bytes(self.call("eth_getCode", account, "pending"))

    def pending_nonce_at(self, account):
        """Nonce to use for the next transaction of ``account``."""
        return _hex_int(self.call("eth_getTransactionCount", account, "pending"))

    def pending_transaction_count(self):
        """Number of transactions in the pending state."""
        return _hex_int(self.call("eth_getBlockTransactionCountByNumber", "pending"))

    def call_contract(self, msg, block_number=None):
        """Execute a message call at ``block_number`` and return its output."""
        return _hex_bytes(self.call("eth_call", to_call_arg(msg), to_block_num_arg(block_number)))

    def pending_call_contract(self, msg):
        """Execute a message call against the pending state."""
        return _hex_bytes(self.call("eth_call", to_call_arg(msg), "pending"))

    def suggest_gas_price(self):
        """Suggested gas price in wei."""
        return _hex_int(self.call("eth_gasPrice"))

    def suggest_gas_tip_cap(self):
        """Suggested priority fee per gas in wei."""
        return _hex_int(self.call("eth_maxPriorityFeePerGas"))

    def estimate_gas(self, msg):
        """Estimated gas needed to execute ``msg``."""
        return _hex_int(self.call("eth_estimateGas", to_call_arg(msg)))

    def send_raw_transaction(self, raw):
        """Submit a signed, serialised transaction; returns the node's result."""
        return self.call("eth_sendRawTransaction", _encode_bytes(raw))