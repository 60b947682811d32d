import json
import time

import pytest
import requests
import responses

from dcwallet.notify import NotifyOutcome, check_do_notify, evaluate_response
from dcwallet.values import NotifyStatus


@pytest.fixture
def mock_http():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


class FakeDb:
    def __init__(self, init_rows=(), fail_rows=(), lock_time=None):
        self.init_rows = list(init_rows)
        self.fail_rows = list(fail_rows)
        self.lock_time = lock_time
        self.selects = []
        self.updates = []
        self.lock_writes = []

    def get(self, query, params):
        if "t_app_lock" in query:
            if self.lock_time is None:
                return None
            return {"create_time": self.lock_time}
        return None

    def get_scalar(self, query, params):
        return None

    def select(self, query, params):
        self.selects.append(params)
        if "t_product_notify" in query:
            if params["handle_status"] == NotifyStatus.INIT:
                return list(self.init_rows)
            return list(self.fail_rows)
        return []

    def execute_count(self, query, params):
        if "t_product_notify" in query:
            self.updates.append(params)
        else:
            self.lock_writes.append(params)
        return 1

    def execute_last_id(self, query, params):
        self.lock_writes.append(params)
        return 1


def test_evaluate_accepts_error_key():
    body = json.dumps({"error": 0})
    assert evaluate_response(200, body) == NotifyOutcome(NotifyStatus.PASS, body)


def test_evaluate_bad_status():
    outcome = evaluate_response(500, "whatever")
    assert outcome.status == NotifyStatus.FAIL
    assert outcome.message == "http status: 500"


def test_evaluate_invalid_json_keeps_body():
    outcome = evaluate_response(200, "not json")
    assert outcome == NotifyOutcome(NotifyStatus.FAIL, "not json")


def test_evaluate_non_object_json_fails():
    outcome = evaluate_response(200, "[1, 2]")
    assert outcome.status == NotifyStatus.FAIL
    assert outcome.message == "[1, 2]"


def test_evaluate_missing_error_truncates():
    body = json.dumps({"ok": "x" * 1000})
    outcome = evaluate_response(200, body)
    assert outcome.status == NotifyStatus.FAIL
    assert len(outcome.message) == 500
    assert body.startswith(outcome.message)


def test_check_do_notify_sends_and_records(mock_http):
    mock_http.add(responses.POST, "http://localhost/a", json={"error": 0}, status=200)
    mock_http.add(responses.POST, "http://localhost/b", body="boom", status=502)
    db = FakeDb(
        init_rows=[{"id": 1, "url": "http://localhost/a", "msg": '{"n": 1}'}],
        fail_rows=[{"id": 2, "url": "http://localhost/b", "msg": '{"n": 2}'}],
    )
    now = 1_000_000
    outcomes = check_do_notify(db, requests.Session(), now)
    assert outcomes[1].status == NotifyStatus.PASS
    assert outcomes[2] == NotifyOutcome(NotifyStatus.FAIL, "http status: 502")
    assert mock_http.calls[0].request.body == b'{"n": 1}'
    by_id = {update["id"]: update for update in db.updates}
    assert by_id[1]["handle_status"] == NotifyStatus.PASS
    assert by_id[2]["handle_msg"] == "http status: 502"
    assert by_id[2]["update_time"] == now


def test_check_do_notify_retry_window(mock_http):
    db = FakeDb()
    now = 5_000_000
    check_do_notify(db, requests.Session(), now)
    times = sorted(params["update_time"] for params in db.selects)
    assert times == [now - 600, now]


def test_check_do_notify_connection_error(mock_http):
    mock_http.add(
        responses.POST,
        "http://localhost/down",
        body=requests.ConnectionError("refused"),
    )
    db = FakeDb(init_rows=[{"id": 7, "url": "http://localhost/down", "msg": "{}"}])
    outcomes = check_do_notify(db, requests.Session(), 100)
    assert outcomes[7].status == NotifyStatus.FAIL
    assert "refused" in outcomes[7].message
    assert db.updates[0]["handle_status"] == NotifyStatus.FAIL


def test_check_do_notify_skips_when_locked(mock_http):
    db = FakeDb(
        init_rows=[{"id": 1, "url": "http://localhost/a", "msg": "{}"}],
        lock_time=int(time.time()),
    )
    assert check_do_notify(db, requests.Session(), 100) == {}
    assert len(mock_http.calls) == 0
    assert db.updates == []


def test_check_do_notify_releases_lock(mock_http):
    db = FakeDb()
    check_do_notify(db, requests.Session(), 100)
    values = [write["v"] for write in db.lock_writes]
    assert values == [1, 0]


@pytest.mark.parametrize("status", [301, 404])
def test_evaluate_non_ok_statuses(status):
    assert evaluate_response(status, '{"error": 0}').status == NotifyStatus.FAIL