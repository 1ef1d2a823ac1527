"""HTTP route handlers for the one-time-code lifecycle."""

from fastapi import APIRouter, Depends

from ems.api import deps
from ems.schemas.common import Message
from ems.schemas.otp import OTPCancel, OTPRequest, OTPVerify, OTPVerifyResponse
from ems.services.auth import AuthService
from ems.services.verification import OTPWorkflow

router = APIRouter(prefix="/api/otp", tags=["otp"])


@router.post("/send", response_model=Message)
async def send_otp(
    payload: OTPRequest,
    auth_service: AuthService = Depends(deps.get_auth_service),
) -> Message:
    """Issue a code for signup or password reset and email it."""

    await auth_service.request_otp(payload.email, payload.purpose)
    return Message(message="OTP sent successfully.")


@router.post("/verify", response_model=OTPVerifyResponse)
async def verify_otp(
    payload: OTPVerify,
    otp_workflow: OTPWorkflow = Depends(deps.get_otp_workflow),
) -> OTPVerifyResponse:
    """Spend the code and return a single-use proof for the signup or reset call."""

    purpose, token = await otp_workflow.verify_for_proof(payload.email, payload.code)
    return OTPVerifyResponse(message="OTP verified successfully.", purpose=purpose, verification_token=token)


@router.post("/cancel", response_model=Message)
async def cancel_otp(
    payload: OTPCancel,
    otp_workflow: OTPWorkflow = Depends(deps.get_otp_workflow),
) -> Message:
    """Drop an abandoned code so the address can request a new one immediately."""

    await otp_workflow.cancel_code(payload.email)
    return Message(message="OTP cancelled successfully.")
