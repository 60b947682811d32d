"""Client for the EOS node HTTP API."""

from dataclasses import asdict, dataclass, field

import requests

DEFAULT_TIMEOUT = 5 * 60


class RpcResponseError(Exception):
    """An error object returned by the node."""

    def __init__(self, payload):
        self.payload = payload
        self.code = payload.get("code", 0)
        self.message = payload.get("message", "")
        error = payload.get("error") or {}
        self.error_code = error.get("code", 0)
        self.error_name = error.get("name", "")
        self.error_what = error.get("what", "")
        self.details = list(error.get("details") or [])
        super().__init__(str(self))

    def __str__(self):
        text = f"{self.code}[{self.error_code}] {self.message}-{self.error_what}"
        if self.details:
            text += f"-{self.details[0].get('message', '')}"
        return text


@dataclass
class PushTransactionArg:
    """A signed, packed transaction ready to push."""

    packed_trx: str
    signatures: list = field(default_factory=list)
    compression: str = "none"
    packed_context_free_data: str = ""

    def to_dict(self):
        return asdict(self)


class EosClient:
    """Calls the chain and history endpoints of one node."""

    def __init__(self, uri, session=None, timeout=DEFAULT_TIMEOUT):
        self.uri = uri
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _request(self, path, args=None):
        kwargs = {"timeout": self.timeout}
        if args is not None:
            kwargs["json"] = args
        response = self.session.post(self.uri + path, **kwargs)
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"unexpected response from {path}: {payload!r}")
        if payload.get("code", 0) != 0:
            raise RpcResponseError(payload)
        return payload

    def chain_get_info(self):
        """Current chain state."""
        return self._request("/v1/chain/get_info")

    def chain_get_account(self, account):
        """Details of ``account``."""
        return self._request("/v1/chain/get_account", {"account_name": account})

    def chain_get_block(self, block_num):
        """Block ``block_num`` with its transactions."""
        return self._request("/v1/chain/get_block", {"block_num_or_id": block_num})

    def chain_push_transaction(self, arg):
        """Push a signed transaction; ``arg`` is a PushTransactionArg or mapping."""
        body = arg.to_dict() if isinstance(arg, PushTransactionArg) else dict(arg)
        return self._request("/v1/chain/push_transaction", body)

    def history_get_transaction(self, tx_id):
        """Look up transaction ``tx_id`` in the history plugin."""
        return self._request("/v1/history/get_transaction", {"id": tx_id})