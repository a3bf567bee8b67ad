"""
Back-in-stock notifications.
"""

from __future__ import annotations

import logging
import smtplib

from storefront.db import DbClient
from storefront.images import ImageURLHelper
from storefront.mailer import Mailer

logger = logging.getLogger(__name__)


def send_stock_notifications(
    db: DbClient, mailer: Mailer, images: ImageURLHelper, product_id: str
) -> int:
    """
    Email everyone waiting on `product_id` and mark their requests notified.

    Mobile requests are marked too; there is no SMS channel. Returns the
    number of emails sent.
    """
    pending = db.pending_stock_notifications(product_id)
    if not pending:
        return 0
    product = db.product_notification_details(product_id)
    if not product:
        logger.warning("Stock notifications pending for unknown product %s", product_id)
        return 0

    image_url = images.format_image_url(product["image_path"])
    sent = 0
    for request in pending:
        if request["notification_type"] != "email" or not request["email"]:
            continue
        try:
            mailer.send_stock_notification(
                request["email"],
                slug=product["slug"],
                title=product["title"],
                image_url=image_url,
                price_cents=product["price_cents"],
            )
            sent += 1
        except (smtplib.SMTPException, OSError):
            logger.warning(
                "Failed to send stock notification to %s", request["email"], exc_info=True
            )
    marked = db.mark_stock_notifications_sent(product_id)
    logger.info(
        "Sent %d of %d stock notifications for product %s", sent, marked, product_id
    )
    return sent
