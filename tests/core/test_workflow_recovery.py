import asyncio

import pytest

from authflow.core import notices
from authflow.core import state_machine as sm
from authflow.core.errors import ErrorKind, VerificationResult

EMPTY = ["", "", "", "", "", ""]


def _enter(wf, code):
    trail = []
    for i, ch in enumerate(code):
        assert wf.type_digit(i, ch) is True
        trail.append(wf.session.code.focus)
    return trail


def test_reset_scenario_invalid_code_then_success(reset_wf, client):
    wf = reset_wf

    async def scenario():
        assert await wf.submit_identifier("a@b.com") is True
        assert wf.step == sm.AWAIT_CODE
        assert wf.seconds_remaining == 60

        assert _enter(wf, "123456") == [1, 2, 3, 4, 5, 5]
        assert wf.session.code.is_complete() is True

        # recovery: the code screen makes no network call
        assert await wf.submit_code() is True
        assert wf.step == sm.COLLECT_SECRET
        assert client.count("confirm") == 0 and client.count("finalize") == 0

        client.script("finalize", VerificationResult.failed(ErrorKind.INVALID_CODE, "Invalid OTP"))
        assert await wf.submit_secret("newpassword", "newpassword") is False
        assert wf.step == sm.AWAIT_CODE
        assert wf.session.code.cells() == EMPTY
        assert wf.session.lastError == notices.INVALID_CODE
        assert wf.session.pendingSecret == ""
        # one step back keeps the running cooldown
        assert wf.seconds_remaining == 60

        _enter(wf, "654321")
        assert await wf.submit_code() is True
        assert await wf.submit_secret("newpassword", "newpassword") is True
        assert wf.step == sm.COMPLETED
        assert wf.session.lastError is None
        assert client.calls[-1] == ("finalize", "a@b.com", "654321", "newpassword")

    asyncio.run(scenario())
    view = wf.view()
    assert view["redirectTo"] == "/login"
    assert view["secondsRemaining"] == 0
    assert view["notices"][-1]["message"] == "Password reset successfully"


def test_code_expired_resets_to_start(reset_wf, client):
    wf = reset_wf

    async def scenario():
        await wf.submit_identifier("a@b.com")
        wf.paste_code("123456")
        await wf.submit_code()
        client.script("finalize", VerificationResult.failed(ErrorKind.CODE_EXPIRED, "OTP expired"))
        assert await wf.submit_secret("newpassword", "newpassword") is False

    asyncio.run(scenario())
    assert wf.step == sm.COLLECT_IDENTIFIER
    assert wf.session.code.cells() == EMPTY
    assert wf.seconds_remaining == 0
    assert wf.timer.deadline is None
    assert wf.session.lastError == notices.CODE_EXPIRED
    # draft stays prefilled for a fresh send
    assert wf.session.identifier == "a@b.com"


def test_transient_finalize_failure_keeps_step_and_allows_retry(reset_wf, client):
    wf = reset_wf

    async def scenario():
        await wf.submit_identifier("a@b.com")
        wf.paste_code("123456")
        await wf.submit_code()
        client.script("finalize", VerificationResult.failed(ErrorKind.TRANSIENT, "User not found"))
        assert await wf.submit_secret("newpassword", "newpassword") is False
        assert wf.step == sm.COLLECT_SECRET
        assert wf.session.lastError == "User not found"
        assert wf.session.code.value() == "123456"
        # retry with the values already held
        assert await wf.submit_secret() is True

    asyncio.run(scenario())
    assert wf.step == sm.COMPLETED
    assert client.count("finalize") == 2


@pytest.mark.parametrize("identifier", ["", "   ", "not-an-email", "a@b", "@x.io"])
def test_invalid_identifier_never_sends(reset_wf, client, identifier):
    wf = reset_wf
    assert asyncio.run(wf.submit_identifier(identifier)) is False
    assert client.count("send") == 0
    assert wf.step == sm.COLLECT_IDENTIFIER
    assert "identifier" in wf.session.fieldErrors
    assert wf.session.lastError is None


def test_send_failure_stays_on_identifier(reset_wf, client):
    wf = reset_wf
    client.script("send", VerificationResult.failed(ErrorKind.TRANSIENT, "User not found"))
    assert asyncio.run(wf.submit_identifier("a@b.com")) is False
    assert wf.step == sm.COLLECT_IDENTIFIER
    assert wf.session.lastError == "User not found"
    assert wf.seconds_remaining == 0
    assert wf.view()["notices"][-1] == {"level": "error", "message": "User not found", "ts": wf.session.notices[-1].ts}


@pytest.mark.parametrize(
    "secret,confirmation",
    [("newpassword", "newpassworD"), ("short", "short"), ("", ""), ("newpassword", "")],
)
def test_bad_secret_never_finalizes(reset_wf, client, secret, confirmation):
    wf = reset_wf

    async def scenario():
        await wf.submit_identifier("a@b.com")
        wf.paste_code("123456")
        await wf.submit_code()
        return await wf.submit_secret(secret, confirmation)

    assert asyncio.run(scenario()) is False
    assert client.count("finalize") == 0
    assert wf.step == sm.COLLECT_SECRET
    assert wf.session.fieldErrors


def test_incomplete_code_stays_on_code_screen(reset_wf, client):
    wf = reset_wf

    async def scenario():
        await wf.submit_identifier("a@b.com")
        _enter(wf, "123")
        return await wf.submit_code()

    assert asyncio.run(scenario()) is False
    assert wf.step == sm.AWAIT_CODE
    assert wf.session.fieldErrors == {"code": "Please enter a complete 6-digit OTP"}
    # typing clears the field error
    wf.type_digit(3, "4")
    assert "code" not in wf.session.fieldErrors


def test_resend_only_after_cooldown(reset_wf, client, clock):
    wf = reset_wf

    async def scenario():
        await wf.submit_identifier("a@b.com")
        assert wf.can_resend is False
        assert await wf.resend_code() is False
        assert client.count("send") == 1

        clock.advance(59)
        assert wf.seconds_remaining == 1
        assert await wf.resend_code() is False

        clock.advance(1)
        assert wf.seconds_remaining == 0
        assert wf.can_resend is True
        assert await wf.resend_code() is True
        assert client.count("send") == 2
        assert wf.seconds_remaining == 60
        assert wf.step == sm.AWAIT_CODE

    asyncio.run(scenario())
    assert wf.session.notices[-1].message == notices.CODE_RESENT


def test_failed_resend_leaves_resend_enabled(reset_wf, client, clock):
    wf = reset_wf

    async def scenario():
        await wf.submit_identifier("a@b.com")
        clock.advance(60)
        client.script("send", VerificationResult.failed(ErrorKind.TRANSIENT, ""))
        assert await wf.resend_code() is False

    asyncio.run(scenario())
    assert wf.session.lastError == notices.RESEND_FAILED
    assert wf.can_resend is True
    assert wf.step == sm.AWAIT_CODE


def test_change_identifier_clears_code_error_and_timer(reset_wf, client):
    wf = reset_wf

    async def scenario():
        await wf.submit_identifier("a@b.com")
        wf.paste_code("123456")
        await wf.submit_code()
        client.script("finalize", VerificationResult.failed(ErrorKind.INVALID_CODE, "Invalid OTP"))
        await wf.submit_secret("newpassword", "newpassword")
        _enter(wf, "99")
        assert wf.session.lastError is not None

    asyncio.run(scenario())
    assert wf.change_identifier() is True
    assert wf.step == sm.COLLECT_IDENTIFIER
    assert wf.session.code.cells() == EMPTY
    assert wf.session.lastError is None
    assert wf.seconds_remaining == 0
    # editable again
    assert wf.set_identifier("other@b.com") is True


def test_change_identifier_only_from_code_screen(reset_wf):
    assert reset_wf.change_identifier() is False
    assert reset_wf.step == sm.COLLECT_IDENTIFIER


def test_identifier_is_frozen_after_send(reset_wf):
    wf = reset_wf
    asyncio.run(wf.submit_identifier("  a@b.com "))
    assert wf.session.identifier == "a@b.com"
    assert wf.set_identifier("evil@b.com") is False
    assert wf.session.identifier == "a@b.com"


def test_completed_is_terminal(reset_wf, client):
    wf = reset_wf

    async def scenario():
        await wf.submit_identifier("a@b.com")
        wf.paste_code("123456")
        await wf.submit_code()
        await wf.submit_secret("newpassword", "newpassword")
        assert wf.step == sm.COMPLETED
        assert await wf.submit_identifier("a@b.com") is False
        assert await wf.submit_code() is False
        assert await wf.resend_code() is False
        assert await wf.submit_secret("newpassword", "newpassword") is False

    asyncio.run(scenario())
    assert wf.change_identifier() is False
    assert wf.paste_code("111111") is False
    assert wf.step == sm.COMPLETED
    assert client.count("send") == 1


def test_client_exception_is_transient(reset_wf, client):
    wf = reset_wf

    async def boom(flow, identifier):
        raise ConnectionError("socket closed")

    client.send_code = boom
    assert asyncio.run(wf.submit_identifier("a@b.com")) is False
    assert wf.step == sm.COLLECT_IDENTIFIER
    assert wf.session.lastError == "Something went wrong. Please try again."
    assert wf.session.inFlight["send"] is False


def test_admin_flow_shares_the_recovery_shape(make_workflow):
    from authflow.core.flows import ADMIN_PASSWORD_RESET

    wf = make_workflow(ADMIN_PASSWORD_RESET)

    async def scenario():
        await wf.submit_identifier("admin@shop.com")
        wf.paste_code("123456")
        await wf.submit_code()
        return await wf.submit_secret("adminpass1", "adminpass1")

    assert asyncio.run(scenario()) is True
    assert wf.step == sm.COMPLETED
    assert wf.view()["totalSteps"] == 4
