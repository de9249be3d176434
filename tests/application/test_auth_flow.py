"""Integration tests for the contact-step authentication flow."""

import asyncio

import pytest

from storefront.application import messages
from storefront.application.auth_flow import AuthenticationFlow, AuthErrorKind, AuthStage
from storefront.domain.exceptions import (
    OTP_EXPIRED,
    ApiError,
    CheckoutStateError,
    NetworkError,
    RateLimitedError,
    RequestInFlightError,
)
from storefront.domain.port.event_publisher import EventKind
from tests.fakes import OTP_CODE, FakeStorefrontApi, RecordingEventPublisher


def _setup():
    api = FakeStorefrontApi()
    api.add_customer("member@example.com", password="hunter22")
    api.add_customer("returning@example.com")
    events = RecordingEventPublisher()
    return api, events, AuthenticationFlow(api, events)


async def _otp_stage(flow, email="returning@example.com"):
    await flow.check(email)
    await flow.request_code()


class TestCheck:

    def test_new_email_is_guest(self):
        _, _, flow = _setup()

        asyncio.run(flow.check("new@example.com"))

        assert flow.stage is AuthStage.GUEST
        assert not flow.can_load_saved_details
        assert not flow.challenge_active

    def test_known_email_without_password(self):
        _, _, flow = _setup()

        asyncio.run(flow.check("returning@example.com"))

        assert flow.stage is AuthStage.GUEST
        assert flow.can_load_saved_details

    def test_registered_email_opens_password_prompt(self):
        _, _, flow = _setup()

        asyncio.run(flow.check("member@example.com"))

        assert flow.stage is AuthStage.PASSWORD
        assert flow.challenge_active

    def test_not_an_email(self):
        api, _, flow = _setup()

        assert asyncio.run(flow.check("member")) is None
        assert api.count("check_customer") == 0

    def test_same_email_checked_once(self):
        api, _, flow = _setup()

        async def scenario():
            await flow.check("member@example.com")
            await flow.check(" Member@Example.com ")

        asyncio.run(scenario())

        assert api.count("check_customer") == 1

    def test_changed_email_resets(self):
        _, _, flow = _setup()

        async def scenario():
            await flow.check("member@example.com")
            flow.email_changed("new@example.com")

        asyncio.run(scenario())

        assert flow.stage is AuthStage.CHECK
        assert flow.check_result is None

    def test_failure_sets_error(self):
        api, events, flow = _setup()
        api.fail("check_customer", ApiError("boom", status=500))

        assert asyncio.run(flow.check("member@example.com")) is None
        assert flow.error == messages.CHECK_EMAIL_FAILED
        assert flow.error_kind is AuthErrorKind.FAILED
        assert flow.stage is AuthStage.CHECK
        assert events.kinds() == [EventKind.AUTH_FAILED]

    def test_result_after_invalidate_is_discarded(self):
        api, _, flow = _setup()
        api.hold("check_customer")

        async def scenario():
            task = asyncio.create_task(flow.check("member@example.com"))
            await api.entered["check_customer"].wait()
            flow.invalidate()
            api.release("check_customer")
            return await task

        assert asyncio.run(scenario()) is None
        assert flow.stage is AuthStage.CHECK
        assert not flow.busy

    def test_one_request_at_a_time(self):
        api, _, flow = _setup()
        api.hold("check_customer")

        async def scenario():
            task = asyncio.create_task(flow.check("member@example.com"))
            await api.entered["check_customer"].wait()
            assert flow.busy
            with pytest.raises(RequestInFlightError):
                await flow.check("other@example.com")
            api.release("check_customer")
            await task

        asyncio.run(scenario())

        assert flow.stage is AuthStage.PASSWORD


class TestDismiss:

    def test_dismiss_is_sticky_for_same_email(self):
        _, _, flow = _setup()

        async def scenario():
            await flow.check("member@example.com")
            flow.dismiss()
            await flow.check("member@example.com")

        asyncio.run(scenario())

        assert flow.stage is AuthStage.DISMISSED
        assert not flow.challenge_active

    def test_dismiss_forgotten_when_email_changes(self):
        _, _, flow = _setup()

        async def scenario():
            await flow.check("returning@example.com")
            flow.dismiss()
            await flow.check("member@example.com")

        asyncio.run(scenario())

        assert flow.stage is AuthStage.PASSWORD


class TestPasswordLogin:

    def test_success(self):
        _, events, flow = _setup()

        async def scenario():
            await flow.check("member@example.com")
            return await flow.password_login("hunter22")

        assert asyncio.run(scenario())
        assert flow.is_authenticated
        assert flow.error is None
        assert EventKind.AUTH_SUCCEEDED in events.kinds()

    def test_wrong_password(self):
        _, events, flow = _setup()

        async def scenario():
            await flow.check("member@example.com")
            return await flow.password_login("nope")

        assert not asyncio.run(scenario())
        assert flow.stage is AuthStage.PASSWORD
        assert flow.error == "Invalid email or password"
        assert flow.error_kind is AuthErrorKind.INVALID_CREDENTIAL
        assert events.of(EventKind.AUTH_FAILED)[0].data["step"] == "customer"

    def test_rate_limited(self):
        api, _, flow = _setup()
        api.fail("password_login", RateLimitedError())

        async def scenario():
            await flow.check("member@example.com")
            return await flow.password_login("hunter22")

        assert not asyncio.run(scenario())
        assert flow.error == messages.RATE_LIMITED
        assert flow.error_kind is AuthErrorKind.RATE_LIMITED

    def test_not_available_without_password_prompt(self):
        _, _, flow = _setup()

        with pytest.raises(CheckoutStateError):
            asyncio.run(flow.password_login("x"))


class TestCode:

    def test_request_code_opens_prompt(self):
        _, _, flow = _setup()

        asyncio.run(_otp_stage(flow))

        assert flow.stage is AuthStage.OTP
        assert flow.otp.focus == 0

    def test_code_for_unknown_email_refused(self):
        _, _, flow = _setup()

        async def scenario():
            await flow.check("new@example.com")
            await flow.request_code()

        with pytest.raises(CheckoutStateError, match="known email"):
            asyncio.run(scenario())

    def test_registered_customer_can_use_code_instead(self):
        _, _, flow = _setup()

        async def scenario():
            await flow.check("member@example.com")
            await flow.request_code()
            flow.back_from_otp()

        asyncio.run(scenario())

        assert flow.stage is AuthStage.PASSWORD

    def test_typing_six_digits_verifies(self):
        api, _, flow = _setup()

        async def scenario():
            await _otp_stage(flow)
            results = [await flow.type_digit(i, d) for i, d in enumerate(OTP_CODE)]
            return results

        results = asyncio.run(scenario())

        assert results == [None] * 5 + [True]
        assert flow.is_authenticated
        assert api.count("verify_auth") == 1

    def test_paste_verifies(self):
        _, _, flow = _setup()

        async def scenario():
            await _otp_stage(flow)
            return await flow.paste_code(OTP_CODE)

        assert asyncio.run(scenario())
        assert flow.is_authenticated

    def test_paste_with_spaces_verifies(self):
        api, _, flow = _setup()

        async def scenario():
            await _otp_stage(flow)
            return await flow.paste_code("482 019")

        assert asyncio.run(scenario())
        assert api.verified_codes == [OTP_CODE]

    def test_partial_paste_waits(self):
        api, _, flow = _setup()

        async def scenario():
            await _otp_stage(flow)
            return await flow.paste_code("482")

        assert asyncio.run(scenario()) is None
        assert api.count("verify_auth") == 0

    def test_wrong_code_clears_input(self):
        _, _, flow = _setup()

        async def scenario():
            await _otp_stage(flow)
            return await flow.paste_code("000000")

        assert asyncio.run(scenario()) is False
        assert flow.stage is AuthStage.OTP
        assert flow.otp.code == ""
        assert flow.otp.focus == 0
        assert flow.error_kind is AuthErrorKind.INVALID_CREDENTIAL

    def test_typing_after_error_clears_it(self):
        _, _, flow = _setup()

        async def scenario():
            await _otp_stage(flow)
            await flow.paste_code("000000")
            await flow.type_digit(0, "4")

        asyncio.run(scenario())

        assert flow.error is None

    def test_expired_code(self):
        api, _, flow = _setup()
        api.fail("verify_auth", ApiError("Code expired", code=OTP_EXPIRED, status=422))

        async def scenario():
            await _otp_stage(flow)
            return await flow.paste_code(OTP_CODE)

        assert asyncio.run(scenario()) is False
        assert flow.error == messages.EXPIRED_CODE
        assert flow.otp.code == ""

    def test_network_failure_while_verifying(self):
        api, _, flow = _setup()
        api.fail("verify_auth", NetworkError())

        async def scenario():
            await _otp_stage(flow)
            return await flow.paste_code(OTP_CODE)

        assert asyncio.run(scenario()) is False
        assert flow.error_kind is AuthErrorKind.NETWORK

    def test_resend_clears_input_and_sends_again(self):
        api, _, flow = _setup()

        async def scenario():
            await _otp_stage(flow)
            await flow.paste_code("482")
            return await flow.resend_code()

        assert asyncio.run(scenario())
        assert flow.otp.code == ""
        assert api.count("send_auth") == 2

    def test_send_failure(self):
        api, _, flow = _setup()
        api.fail("send_auth", ApiError("nope", status=500))

        async def scenario():
            await flow.check("returning@example.com")
            await flow.request_code()

        asyncio.run(scenario())

        assert flow.stage is AuthStage.GUEST
        assert flow.error == messages.SEND_CODE_FAILED

    def test_backspace(self):
        _, _, flow = _setup()

        async def scenario():
            await _otp_stage(flow)
            await flow.type_digit(0, "4")
            flow.backspace(1)

        asyncio.run(scenario())

        assert flow.otp.focus == 0

    def test_otp_input_needs_prompt(self):
        _, _, flow = _setup()

        with pytest.raises(CheckoutStateError):
            asyncio.run(flow.type_digit(0, "1"))


class TestLogout:

    def test_logout_resets(self):
        api, _, flow = _setup()

        async def scenario():
            await flow.check("member@example.com")
            await flow.password_login("hunter22")
            await flow.logout()

        asyncio.run(scenario())

        assert flow.stage is AuthStage.CHECK
        assert api.logged_in is None

    def test_logout_failure_still_resets(self):
        api, _, flow = _setup()
        api.fail("logout", NetworkError())

        async def scenario():
            await flow.check("member@example.com")
            await flow.password_login("hunter22")
            await flow.logout()

        asyncio.run(scenario())

        assert not flow.is_authenticated
