"""Unit tests for OTP verifiers."""

import asyncio
import logging
import pytest
from datetime import timedelta

from common.utils.exceptions import BadRequestException
from hirelocal.services.auth.otp import FixedOtpVerifier, LoggingOtpSender, OneTimeOtpVerifier

MOBILE = "9999999999"


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock(fixed_now):
    return Clock(fixed_now)


@pytest.fixture
def one_time(otp_store, otp_sender, clock):
    return OneTimeOtpVerifier(
        store=otp_store,
        sender=otp_sender,
        length=6,
        ttl=timedelta(minutes=5),
        max_attempts=3,
        clock=clock,
    )


# ─────────────────────────────────────────────────────────────────
# Fixed code
# ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fixed_verifier_accepts_configured_code():
    verifier = FixedOtpVerifier("123456")

    assert await verifier.verify(MOBILE, "123456") is True
    assert await verifier.verify(MOBILE, "123456") is True
    assert await verifier.verify(MOBILE, "654321") is False
    assert await verifier.verify(MOBILE, "") is False


@pytest.mark.asyncio
async def test_fixed_verifier_cannot_issue():
    verifier = FixedOtpVerifier("123456")

    with pytest.raises(BadRequestException) as exc_info:
        await verifier.issue(MOBILE)

    assert exc_info.value.code == "OTP_ISSUANCE_DISABLED"


def test_fixed_verifier_requires_code():
    with pytest.raises(ValueError):
        FixedOtpVerifier("")


# ─────────────────────────────────────────────────────────────────
# One-time codes
# ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_issue_sends_numeric_code_and_stores_only_hash(one_time, otp_store, otp_sender):
    await one_time.issue(MOBILE)

    sent_mobile, code = otp_sender.sent[0]
    assert sent_mobile == MOBILE
    assert len(code) == 6 and code.isdigit()
    record = otp_store.records[MOBILE]
    assert record.code_hash != code
    assert code not in record.code_hash


@pytest.mark.asyncio
async def test_code_is_single_use(one_time, otp_sender):
    await one_time.issue(MOBILE)
    code = otp_sender.sent[0][1]

    assert await one_time.verify(MOBILE, code) is True
    assert await one_time.verify(MOBILE, code) is False


@pytest.mark.asyncio
async def test_code_expires(one_time, otp_sender, clock):
    await one_time.issue(MOBILE)
    code = otp_sender.sent[0][1]

    clock.now = clock.now + timedelta(minutes=5, seconds=1)

    assert await one_time.verify(MOBILE, code) is False


@pytest.mark.asyncio
async def test_code_bound_to_mobile(one_time, otp_sender):
    await one_time.issue(MOBILE)
    code = otp_sender.sent[0][1]

    assert await one_time.verify("8888888888", code) is False
    assert await one_time.verify(MOBILE, code) is True


@pytest.mark.asyncio
async def test_code_locked_after_max_attempts(one_time, otp_sender):
    await one_time.issue(MOBILE)
    code = otp_sender.sent[0][1]
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(3):
        assert await one_time.verify(MOBILE, wrong) is False

    assert await one_time.verify(MOBILE, code) is False


@pytest.mark.asyncio
async def test_code_accepted_before_attempts_run_out(one_time, otp_sender):
    await one_time.issue(MOBILE)
    code = otp_sender.sent[0][1]
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(2):
        assert await one_time.verify(MOBILE, wrong) is False

    assert await one_time.verify(MOBILE, code) is True


@pytest.mark.asyncio
async def test_reissue_replaces_pending_code(one_time, otp_sender):
    await one_time.issue(MOBILE)
    await one_time.issue(MOBILE)
    first, second = otp_sender.sent[0][1], otp_sender.sent[1][1]

    if first != second:
        assert await one_time.verify(MOBILE, first) is False
    assert await one_time.verify(MOBILE, second) is True


@pytest.mark.asyncio
async def test_verify_without_pending_code(one_time):
    assert await one_time.verify(MOBILE, "123456") is False


# ─────────────────────────────────────────────────────────────────
# Parallel requests
# ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_parallel_verifies_accept_code_once(one_time, otp_sender):
    await one_time.issue(MOBILE)
    code = otp_sender.sent[0][1]

    results = await asyncio.gather(*(one_time.verify(MOBILE, code) for _ in range(3)))

    assert results.count(True) == 1


@pytest.mark.asyncio
async def test_parallel_guesses_cannot_exceed_attempt_limit(otp_store, otp_sender, clock):
    verifier = OneTimeOtpVerifier(store=otp_store, sender=otp_sender, max_attempts=5, clock=clock)
    await verifier.issue(MOBILE)
    code = otp_sender.sent[0][1]
    wrong = "000000" if code != "000000" else "111111"

    guesses = [wrong] * 19 + [code]
    results = await asyncio.gather(*(verifier.verify(MOBILE, guess) for guess in guesses))

    assert not any(results)
    assert otp_store.records[MOBILE].attempts == 5
    assert await verifier.verify(MOBILE, code) is False


# ─────────────────────────────────────────────────────────────────
# Delivery
# ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_logging_sender_keeps_code_out_of_info_logs(caplog):
    sender = LoggingOtpSender()

    with caplog.at_level(logging.INFO, logger="hirelocal.services.auth.otp"):
        await sender.send(MOBILE, "482913")
    assert "482913" not in caplog.text

    with caplog.at_level(logging.DEBUG, logger="hirelocal.services.auth.otp"):
        await sender.send(MOBILE, "482913")
    assert "482913" in caplog.text
    assert MOBILE not in caplog.text
