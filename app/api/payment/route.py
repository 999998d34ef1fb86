import hmac

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.payment.service import (
    PaymentLedgerService,
    PaymentVerificationService,
    group_payments_by_plan,
    require_user_data,
)
from app.common.http_response_model import CommonResponse
from app.config import settings
from app.database import db_session
from app.logger.logger import logger
from app.schemas import (
    BankTransferInitiateRequest,
    BankTransferVerifyRequest,
    CurrentUser,
    PayPalVerifyRequest,
    TestPaymentRequest,
)

router = APIRouter()


def is_valid_admin_key(admin_key) -> bool:
    if not admin_key or not settings.ADMIN_SECRET_KEY:
        return False
    return hmac.compare_digest(admin_key, settings.ADMIN_SECRET_KEY)


@router.post("/bank/initiate", name="Initiate a bank transfer")
async def initiate_bank_transfer(
    response: Response,
    data: BankTransferInitiateRequest,
    session: AsyncSession = Depends(db_session),
):
    try:
        user_data = require_user_data(data.user_data)
        ledger_service = PaymentLedgerService(session)
        transfer = await ledger_service.initiate_bank_transfer(
            user_id=user_data.uid,
            user_email=user_data.email,
            plan_name=data.plan_name,
            amount=data.amount,
            credits=data.credits,
        )
        payload = CommonResponse(
            message="Bank transfer initiated",
            success=True,
            payload=transfer,
        )
        response.status_code = status.HTTP_201_CREATED
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        logger.error(f"An error occurred while initiating bank transfer: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.post("/bank/verify", name="Verify a bank transfer")
async def verify_bank_transfer(
    response: Response,
    data: BankTransferVerifyRequest,
    session: AsyncSession = Depends(db_session),
):
    try:
        if not is_valid_admin_key(data.admin_key):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
            )
        if not data.reference_code:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing reference code",
            )

        ledger_service = PaymentLedgerService(session)
        payment = await ledger_service.verify_bank_transfer(data.reference_code)
        payload = CommonResponse(
            message="Bank transfer verified",
            success=True,
            payload=payment,
        )
        response.status_code = status.HTTP_200_OK
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        logger.error(f"An error occurred while verifying bank transfer: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.post("/paypal/verify", name="Verify a PayPal order")
async def verify_paypal_payment(
    response: Response,
    data: PayPalVerifyRequest,
    session: AsyncSession = Depends(db_session),
):
    try:
        verification_service = PaymentVerificationService(session)
        payment = await verification_service.verify_paypal_payment(data)
        payload = CommonResponse(
            message="Payment verified and recorded successfully",
            success=True,
            payload=payment,
        )
        response.status_code = status.HTTP_200_OK
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        logger.error(f"An error occurred while verifying paypal payment: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.post("/test/process", name="Process a test payment")
async def process_test_payment(
    response: Response,
    data: TestPaymentRequest,
    session: AsyncSession = Depends(db_session),
):
    try:
        verification_service = PaymentVerificationService(session)
        result = await verification_service.process_test_payment(data)
        payload = CommonResponse(
            message="Test payment processed",
            success=True,
            payload=result,
        )
        response.status_code = status.HTTP_200_OK
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        logger.error(f"An error occurred while processing test payment: {e}")
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload


@router.get("/history", name="Get payment history of the current user")
async def get_payment_history(
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
):
    try:
        ledger_service = PaymentLedgerService(session)
        payments = await ledger_service.get_user_payment_history(user.uid)
        payload = CommonResponse(
            message="Successfully fetched payment history",
            success=True,
            payload={
                "payments": payments,
                "by_plan": group_payments_by_plan(payments),
            },
        )
        response.status_code = status.HTTP_200_OK
        return payload

    except HTTPException as http_err:
        payload = CommonResponse(
            success=False, message=str(http_err.detail), payload=None
        )
        response.status_code = http_err.status_code
        return payload

    except Exception as e:
        payload = CommonResponse(success=False, message=str(e), payload=None)
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return payload
