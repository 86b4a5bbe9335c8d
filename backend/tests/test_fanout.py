import threading

from services.fanout import CancellationToken, fan_out


def test_fan_out_keeps_item_order():
    outcomes = fan_out(lambda x: x * 10, [3, 1, 2], max_workers=3)
    assert [o.value for o in outcomes] == [30, 10, 20]
    assert all(o.ok for o in outcomes)


def test_one_failure_does_not_abort_the_rest():
    def work(x):
        if x == 2:
            raise RuntimeError("boom")
        return x

    outcomes = fan_out(work, [1, 2, 3])
    assert outcomes[0].value == 1
    assert not outcomes[1].ok
    assert isinstance(outcomes[1].error, RuntimeError)
    assert outcomes[2].value == 3


def test_empty_input():
    assert fan_out(lambda x: x, []) == []


def test_cancelled_token_skips_everything():
    token = CancellationToken()
    token.cancel()
    calls = []
    outcomes = fan_out(calls.append, [1, 2], token=token)
    assert calls == []
    assert all(o.cancelled and not o.ok for o in outcomes)


def test_cancel_while_running_skips_pending_items():
    token = CancellationToken()
    release = threading.Event()
    started = []

    def work(x):
        started.append(x)
        if x == 0:
            token.cancel()
            release.wait(timeout=2)
        return x

    try:
        outcomes = fan_out(work, list(range(5)), token=token, max_workers=1)
    finally:
        release.set()

    assert started == [0]
    assert all(o.cancelled for o in outcomes)
