# storefront/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from storefront.api.deps import get_notification_service, get_payment_client
from storefront.data.database import get_db
from storefront.domain.errors import PaymentSignatureInvalid
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient
from storefront.services.payment_service import PaymentService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    client: PaymentClient = Depends(get_payment_client),
    notifications: NotificationService = Depends(get_notification_service),
):
    # raw bytes, the signature is computed over exactly what was sent
    body = await request.body()
    signature = request.headers.get("stripe-signature")

    svc = PaymentService(db, client=client, notifications=notifications)
    try:
        result = await run_in_threadpool(svc.handle_webhook, body, signature)
    except PaymentSignatureInvalid as e:
        logger.warning(f"Webhook rejected: {e}")
        return JSONResponse({"error": "Invalid signature"}, status_code=400)
    except SQLAlchemyError:
        return JSONResponse({"error": "Database error"}, status_code=500)

    return result
