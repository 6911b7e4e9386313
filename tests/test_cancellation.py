from lesson_uploader.domain.cancellation import AbortReason, CancellationToken


def test_new_token_is_not_cancelled() -> None:
    token = CancellationToken()

    assert not token.cancelled
    assert token.reason is None
    assert not token.wait(0)


def test_first_reason_wins() -> None:
    token = CancellationToken()

    token.cancel(AbortReason.PAUSE)
    token.cancel(AbortReason.TIMEOUT)

    assert token.cancelled
    assert token.reason == AbortReason.PAUSE
    assert token.is_deliberate
    assert token.wait(0)


def test_timeout_is_not_deliberate() -> None:
    token = CancellationToken()

    token.cancel(AbortReason.TIMEOUT)

    assert not token.is_deliberate
