"""Wallet-level calls on an Ethereum node: blocks, nonces, balances, token balances."""

from dcwallet.eth_client import CallMsg, EthClient, FilterQuery

ADDRESS_LENGTH = 20
HASH_LENGTH = 32
WORD_LENGTH = 32

BALANCE_OF_SELECTOR = bytes.fromhex("70a08231")


def _hex_to_fixed(value, length):
    text = value[2:] if value.startswith(("0x", "0X")) else value
    if len(text) % 2:
        text = "0" + text
    try:
        raw = bytes.fromhex(text)
    except ValueError:
        raise ValueError(f"invalid hex string: {value!r}") from None
    raw = raw[-length:].rjust(length, b"\x00")
    return "0x" + raw.hex()


def hex_to_address(value):
    """Normalise a hex string to a 20-byte lower-case address.

    Longer input keeps its last 20 bytes; shorter input is zero-padded on the left.
    """
    return _hex_to_fixed(value, ADDRESS_LENGTH)


def hex_to_hash(value):
    """Normalise a hex string to a 32-byte lower-case hash."""
    return _hex_to_fixed(value, HASH_LENGTH)


def encode_balance_of(address):
    """Call data for the token method ``balanceOf(address)``."""
    raw = bytes.fromhex(hex_to_address(address)[2:])
    return BALANCE_OF_SELECTOR + raw.rjust(WORD_LENGTH, b"\x00")


def decode_uint256(data):
    """Decode the first 32-byte word of ``data`` as an unsigned integer."""
    data = bytes(data)
    if len(data) < WORD_LENGTH:
        raise ValueError("error call res")
    return int.from_bytes(data[:WORD_LENGTH], "big")


class EthRpc:
    """The node calls the wallet needs, with addresses and hashes taken as hex strings."""

    def __init__(self, client):
        self.client = EthClient(client) if isinstance(client, str) else client
        self._network_id = 0

    def block_number(self):
        """Number of the most recent block."""
        return self.client.block_number()

    def block_by_num(self, block_num):
        """Full block ``block_num``."""
        return self.client.block_by_number(block_num)

    def nonce_at(self, address):
        """Nonce of ``address`` at the latest block."""
        return self.client.nonce_at(hex_to_address(address))

    def network_id(self):
        """Network id of the chain, fetched once and then remembered."""
        if self._network_id:
            return self._network_id
        self._network_id = self.client.network_id()
        return self._network_id

    def send_transaction(self, raw):
        """Submit a signed, serialised transaction; returns the node's result."""
        return self.client.send_raw_transaction(raw)

    def transaction_by_hash(self, tx_hash):
        """The transaction ``tx_hash`` once mined, or None while it is pending."""
        tx, is_pending = self.client.transaction_by_hash(hex_to_hash(tx_hash))
        if is_pending:
            return None
        return tx

    def transaction_receipt(self, tx_hash):
        """Receipt of the mined transaction ``tx_hash``."""
        return self.client.transaction_receipt(hex_to_hash(tx_hash))

    def balance_at(self, address):
        """Wei balance of ``address`` at the latest block."""
        return self.client.balance_at(hex_to_address(address))

    def filter_logs(self, start_block, end_block, contract_addresses, event_id):
        """Logs of event ``event_id`` emitted by the contracts in a block range."""
        query = FilterQuery(
            addresses=[hex_to_address(address) for address in contract_addresses],
            topics=[[hex_to_hash(event_id)]],
            from_block=start_block,
            to_block=end_block,
        )
        return self.client.filter_logs(query)

    def token_balance(self, token_address, address):
        """Token balance of ``address`` held in contract ``token_address``."""
        owner = hex_to_address(address)
        msg = CallMsg(
            from_address=owner,
            to=hex_to_address(token_address),
            value=None,
            data=encode_balance_of(owner),
        )
        return decode_uint256(self.client.call_contract(msg))