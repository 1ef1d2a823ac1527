"""Send / verify / cancel orchestration on top of the OTP store."""

import logging
import secrets
import time
from datetime import timedelta

from ems.core.config import settings
from ems.core.enums import OTPPurpose
from ems.core.exceptions import DeliveryError, InvalidOrExpiredCode, InvalidRequest
from ems.core.security import create_verification_token, decode_verification_token
from ems.services.email import MailSender, render_otp_email, send_email
from ems.services.otp import OTPStore, normalize_email

logger = logging.getLogger(__name__)


class OTPWorkflow:
    """Entry point used by the HTTP layer for every one-time-code flow."""

    def __init__(
        self,
        store: OTPStore,
        mailer: MailSender = send_email,
        proof_ttl_seconds: int = settings.OTP_PROOF_EXPIRE_SECONDS,
    ):
        self.store = store
        self.mailer = mailer
        self.proof_ttl_seconds = proof_ttl_seconds

    async def request_code(self, email: str, purpose: OTPPurpose | str) -> None:
        """Issue a code for `purpose` and mail it to `email`.

        A delivery failure is reported as `DeliveryError`, but the stored code
        stays valid; the user retries once the cooldown has elapsed.
        """
        try:
            purpose = OTPPurpose(purpose)
        except ValueError:
            raise InvalidRequest() from None
        email = normalize_email(email)
        if not email:
            raise InvalidRequest()

        code = await self.store.put(email, purpose)
        subject, body = render_otp_email(code, purpose)
        sent, err = await self.mailer(email, subject, body)
        if not sent:
            logger.warning("OTP for %s stored but delivery failed: %s", email, err)
            raise DeliveryError("Failed to send verification code. Please try again later.")

    async def verify_code(self, email: str, code: str) -> OTPPurpose:
        """Consume a code; every failure surfaces as the same invalid/expired error."""
        try:
            return await self.store.verify(email, code)
        except InvalidOrExpiredCode as exc:
            logger.info("OTP verification failed for %s (%s)", normalize_email(email), type(exc).__name__)
            raise InvalidOrExpiredCode() from None

    async def consume_code(self, email: str, code: str, expected: OTPPurpose) -> None:
        """Verify a code issued for `expected`; a code for another flow is rejected."""
        purpose = await self.verify_code(email, code)
        if purpose is not expected:
            logger.info("OTP for %s was issued for %s, not %s", normalize_email(email), purpose.value, expected.value)
            raise InvalidOrExpiredCode()

    async def verify_for_proof(self, email: str, code: str) -> tuple[OTPPurpose, str]:
        """Consume a code and hand back a short-lived, single-use proof of it.

        Clients that check the code on its own screen before signing up or
        resetting a password pass the proof to that later call instead of
        the (already spent) code.
        """
        purpose = await self.verify_code(email, code)
        token = create_verification_token(
            normalize_email(email),
            purpose.value,
            secrets.token_urlsafe(16),
            timedelta(seconds=self.proof_ttl_seconds),
        )
        return purpose, token

    async def redeem_proof(self, email: str, token: str, expected: OTPPurpose) -> None:
        """Accept a proof from `verify_for_proof` exactly once, for the same email and flow."""
        claims = decode_verification_token(token)
        if (
            claims is None
            or claims.get("sub") != normalize_email(email)
            or claims.get("purpose") != expected.value
            or not claims.get("jti")
        ):
            raise InvalidOrExpiredCode()
        remaining = int(claims["exp"] - time.time())
        if not await self.store.claim_proof(claims["jti"], remaining):
            logger.info("Verification proof for %s was already used", normalize_email(email))
            raise InvalidOrExpiredCode()

    async def confirm(
        self,
        email: str,
        expected: OTPPurpose,
        *,
        code: str | None = None,
        proof: str | None = None,
    ) -> None:
        """Check a fresh code or a proof, whichever the client sent."""
        if proof:
            await self.redeem_proof(email, proof, expected)
        else:
            await self.consume_code(email, code or "", expected)

    async def cancel_code(self, email: str) -> None:
        await self.store.cancel(email)
