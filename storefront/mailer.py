"""
Outgoing email over SMTP, rendered from jinja2 templates.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from jinja2 import Environment, PackageLoader, select_autoescape

logger = logging.getLogger(__name__)

OTP_EXPIRY_MINUTES = 10

templates = Environment(
    loader=PackageLoader("storefront", "templates"),
    autoescape=select_autoescape(),
)


def format_rupees(price_cents: int) -> str:
    return f"{price_cents / 100:,.2f}"


@dataclass
class Mailer:
    host: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    from_name: str = "eTreasure"
    site_url: str = "http://localhost:4321"
    timeout: float = 15.0

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        message = EmailMessage()
        message["From"] = formataddr((self.from_name, self.username))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            smtp.login(self.username, self.password)
            smtp.send_message(message)
        logger.info("Sent '%s' email to %s", subject, to)

    def send_otp(self, to: str, otp: str) -> None:
        if not self.configured:
            logger.info("SMTP credentials not configured. OTP for %s: %s", to, otp)
            return
        html = templates.get_template("otp.html").render(
            otp=otp, expires_minutes=OTP_EXPIRY_MINUTES, store_name=self.from_name
        )
        text = (
            f"Your one-time password is {otp}. "
            f"It will expire in {OTP_EXPIRY_MINUTES} minutes."
        )
        self.send(to, f"Password Reset OTP - {self.from_name}", html, text)

    def send_stock_notification(
        self,
        to: str,
        *,
        slug: str,
        title: str,
        image_url: Optional[str],
        price_cents: int,
    ) -> None:
        product_url = f"{self.site_url.rstrip('/')}/product/{slug}"
        if not self.configured:
            logger.info(
                "SMTP credentials not configured. Back-in-stock notice for %s: %s",
                to,
                product_url,
            )
            return
        price = format_rupees(price_cents) if price_cents else None
        html = templates.get_template("stock_notification.html").render(
            title=title,
            image_url=image_url,
            price=price,
            product_url=product_url,
            store_name=self.from_name,
        )
        text = f"{title} is back in stock: {product_url}"
        self.send(to, f"{title} is back in stock!", html, text)
