"""
Back-in-stock requests from shoppers, and the manual send trigger for staff.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from storefront.auth import Principal, require_staff
from storefront.db import DbClient
from storefront.dependencies import get_db_client, get_image_helper, get_mailer
from storefront.images import ImageURLHelper
from storefront.mailer import Mailer
from storefront.notifications import send_stock_notifications
from storefront.routes.common import audit, require_uuid
from storefront.schemas import StockNotificationRequest

router = APIRouter()
admin_router = APIRouter()


@router.post("/stock-notifications", status_code=201)
def create_stock_notification(
    payload: StockNotificationRequest,
    db: DbClient = Depends(get_db_client),
):
    if payload.notification_type == "email" and not payload.email:
        raise HTTPException(
            status_code=400, detail="email is required for email notifications"
        )
    if payload.notification_type == "mobile" and not (payload.mobile_number or "").strip():
        raise HTTPException(
            status_code=400,
            detail="mobile number is required for mobile notifications",
        )
    product_id = db.product_id_for_slug(payload.product_slug)
    if not product_id:
        raise HTTPException(status_code=404, detail="product not found")
    notification_id = db.create_stock_notification(
        product_id=product_id,
        product_slug=payload.product_slug,
        notification_type=payload.notification_type,
        email=payload.email.lower() if payload.email else None,
        mobile_number=(payload.mobile_number or "").strip() or None,
    )
    return {
        "message": "Notification request created successfully",
        "id": notification_id,
    }


@admin_router.post("/stock-notifications/{product_id}/send")
def send_notifications(
    product_id: str,
    db: DbClient = Depends(get_db_client),
    mailer: Mailer = Depends(get_mailer),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    require_uuid(product_id, "product")
    sent = send_stock_notifications(db, mailer, images, product_id)
    audit(db, user, "send", "stock_notification", product_id, {"sent": sent})
    return {"message": "stock notifications processed", "sent": sent}
