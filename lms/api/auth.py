from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from lms.api.responses import api_response
from lms.dependencies import get_current_user
from lms.models import User, get_db
from lms.schemas import Envelope
from lms.services import auth_flow
from lms.services.auth_tokens import IssuedSession
from lms.services.email_service import deliver_login_otp
from lms.services.otp import OtpNotifier

router = APIRouter()


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"email": "student@example.com", "password": "securepassword"}]}
    )


class VerifyOtpRequest(BaseModel):
    user_id: int
    otp: str = Field(min_length=6, max_length=6)


class ResendOtpRequest(BaseModel):
    user_id: int


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class LoginData(BaseModel):
    user_id: int
    message: str


class TokenData(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"


class MessageData(BaseModel):
    message: str


def _get_client_ip(request: Request) -> str | None:
    if not request.client:
        return None
    return request.client.host


def _get_user_agent(request: Request) -> str | None:
    user_agent = request.headers.get("user-agent")
    if not user_agent:
        return None
    return user_agent[:512]


def _queue_otp_email(background_tasks: BackgroundTasks) -> OtpNotifier:
    """Queue the code for delivery once the response has been sent."""

    def notify(user: User, code: str) -> None:
        background_tasks.add_task(deliver_login_otp, user.email, user.name, code)

    return notify


def _token_data(issued: IssuedSession) -> dict:
    return TokenData(access_token=issued.access_token, refresh_token=issued.refresh_token).model_dump()


@router.post(
    "/login",
    response_model=Envelope[LoginData],
    summary="Check credentials and email a login OTP",
)
def login(
    body: LoginRequest,
    background_tasks: BackgroundTasks,
    db: Annotated[Session, Depends(get_db)],
):
    """Validate email/password. On success an OTP is emailed; no token is issued yet."""
    user = auth_flow.login(db, body.email, body.password, _queue_otp_email(background_tasks))
    return api_response(
        "success",
        data=LoginData(user_id=user.id, message="OTP has been sent to your email").model_dump(),
        message="Please verify your email with the OTP sent",
    )


@router.post(
    "/verify-otp",
    response_model=Envelope[TokenData],
    summary="Verify login OTP and get access/refresh tokens",
)
def verify_otp(
    body: VerifyOtpRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """Exchange a pending OTP for a token pair. All earlier sessions of the user end."""
    issued = auth_flow.verify_login_otp(
        db,
        body.user_id,
        body.otp,
        ip=_get_client_ip(request),
        user_agent=_get_user_agent(request),
    )
    return api_response("success", data=_token_data(issued), message="Login successful")


@router.post(
    "/resend-otp",
    response_model=Envelope[MessageData],
    summary="Resend login OTP",
)
def resend_otp(
    body: ResendOtpRequest,
    background_tasks: BackgroundTasks,
    db: Annotated[Session, Depends(get_db)],
):
    """Issue a new OTP unless the previous one was sent less than two minutes ago."""
    auth_flow.resend_login_otp(db, body.user_id, _queue_otp_email(background_tasks))
    return api_response(
        "success",
        data=MessageData(message="OTP has been resent to your email").model_dump(),
        message="OTP resent successfully",
    )


@router.post(
    "/refresh",
    response_model=Envelope[TokenData],
    summary="Refresh access token pair",
)
def refresh_tokens(
    body: RefreshRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """Rotate the refresh token. The presented token can never be used again."""
    issued = auth_flow.refresh_session(
        db,
        body.refresh_token,
        ip=_get_client_ip(request),
        user_agent=_get_user_agent(request),
    )
    return api_response("success", data=_token_data(issued), message="Token refreshed successfully")


@router.post(
    "/logout",
    response_model=Envelope[dict],
    summary="Logout by revoking every token of the current user",
)
def logout(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    auth_flow.logout(db, current_user)
    return api_response("success", data={}, message="Logged out successfully")
