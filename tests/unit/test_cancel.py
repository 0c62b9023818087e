"""
Tests for cancellation tokens and their interrupt callbacks.
"""
import threading
import time

import pytest
from dbhelper.cancel import CancelToken
from dbhelper.exceptions import OperationCancelled


def test_token_without_deadline():
    token = CancelToken()
    assert not token.cancelled
    assert token.remaining() is None
    token.check()


def test_zero_timeout_means_no_deadline():
    assert CancelToken.with_timeout(0).deadline is None
    assert CancelToken.with_timeout(None).deadline is None


def test_cancel_keeps_first_reason():
    token = CancelToken()
    token.cancel('shutting down')
    token.cancel('again')
    assert token.cancelled
    assert token.reason == 'shutting down'
    with pytest.raises(OperationCancelled, match='shutting down'):
        token.check()


def test_deadline_passes():
    token = CancelToken(timeout=0.01)
    time.sleep(0.02)
    assert token.cancelled
    assert token.reason == 'deadline exceeded'
    assert token.remaining() == 0.0


def test_watch_refuses_cancelled_token():
    token = CancelToken()
    token.cancel()
    calls = []
    with pytest.raises(OperationCancelled), token.watch(lambda: calls.append(1)):
        pytest.fail('block should not run')
    assert calls == []


def test_cancel_fires_registered_interrupt():
    token = CancelToken()
    fired = threading.Event()
    with token.watch(fired.set):
        token.cancel()
    assert fired.is_set()


def test_deadline_fires_interrupt_from_timer():
    token = CancelToken(timeout=0.05)
    fired = threading.Event()
    with token.watch(fired.set):
        assert fired.wait(timeout=2)
    assert token.reason == 'deadline exceeded'


def test_interrupt_unregistered_after_block():
    token = CancelToken()
    fired = []
    with token.watch(lambda: fired.append(1)):
        pass
    token.cancel()
    assert fired == []


def test_failing_interrupt_is_logged(caplog):
    def interrupt():
        raise RuntimeError('connection already gone')

    token = CancelToken()
    with token.watch(interrupt):
        token.cancel()
    assert token.cancelled
    assert 'connection already gone' in caplog.text
