from typing import Optional
from fastapi import APIRouter, Depends, status
from api.dependencies import get_auth_service, get_current_user
from schemas.account_schema import UserAccount
from schemas.auth_schema import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordReset,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    VerifyPhoneRequest,
)
from services.auth_service import AuthService
from utils.responses import no_store_json

router = APIRouter(prefix="/auth")

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    result = await service.register(payload.full_name, payload.email, payload.phone, payload.password)
    return {"message": "User registered successfully. Verify your phone and email.", **result}

@router.post("/verify-phone")
async def verify_phone(payload: VerifyPhoneRequest, service: AuthService = Depends(get_auth_service)):
    return await service.verify_phone(payload.user_id, payload.otp)

@router.get("/verify-email")
async def verify_email(token: Optional[str] = None, service: AuthService = Depends(get_auth_service)):
    return await service.verify_email(token)

@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)):
    return no_store_json(await service.login(payload.phone, payload.password))

@router.post("/forgot-password/request")
async def forgot_password_request(payload: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return await service.forgot_password_request(payload.phone)

@router.post("/forgot-password/reset")
async def forgot_password_reset(payload: ForgotPasswordReset, service: AuthService = Depends(get_auth_service)):
    return await service.forgot_password_reset(payload.phone, payload.otp, payload.new_password)

@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: UserAccount = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return await service.change_password(current_user, payload.old_password, payload.new_password)

@router.get("/profile")
async def get_profile(
    current_user: UserAccount = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return no_store_json(service.get_profile(current_user))
