"""
Email Service.
Sends invoice, estimate, reminder and receipt emails over SMTP and records
every attempt in the email log.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.mime.application import MIMEApplication
from email.utils import make_msgid, formataddr
from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.models.base import utcnow
from app.models.client import Client
from app.models.email_log import EmailLog, EmailType, DeliveryStatus
from app.models.estimate import Estimate
from app.models.invoice import Invoice
from app.models.payment import Payment
from app.models.user import User
from app.services.pdf import PDFService
from app.utils.email_retry import calculate_next_retry_time


logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending and logging emails."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.email_from = settings.EMAIL_FROM

    def _is_configured(self) -> bool:
        return settings.smtp_configured

    def _create_message(
        self,
        sender_name: str,
        reply_to: str,
        to_email: str,
        subject: str,
        body_html: str,
    ) -> MIMEMultipart:
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = formataddr((sender_name, self.email_from))
        msg['Reply-To'] = reply_to
        msg['To'] = to_email
        msg['Message-ID'] = make_msgid(domain=self.email_from.split("@")[-1])
        msg.attach(MIMEText(body_html, 'html', 'utf-8'))
        return msg

    def _attach_pdf(self, msg: MIMEMultipart, pdf_path: str, filename: str) -> None:
        path = Path(pdf_path)
        if path.exists():
            pdf = MIMEApplication(path.read_bytes(), _subtype='pdf')
            pdf.add_header('Content-Disposition', 'attachment', filename=filename)
            msg.attach(pdf)

    def _send(self, msg: MIMEMultipart, to_email: str) -> tuple[Optional[str], Optional[str]]:
        """
        Deliver a message over SMTP.

        Returns:
            (message_id, None) on success, (None, error) on failure
        """
        if not self._is_configured():
            logger.warning("SMTP not configured, email not sent")
            return None, "SMTP is not configured"

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.email_from, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return None, str(e)

        logger.info(f"Email sent to {to_email}")
        return msg['Message-ID'], None

    async def deliver(
        self,
        owner: User,
        to_email: str,
        subject: str,
        body_html: str,
        attachment: tuple[str, str] | None = None,
    ) -> tuple[Optional[str], Optional[str]]:
        """Build and send a message without logging it."""
        msg = self._create_message(owner.display_name, owner.email, to_email, subject, body_html)
        if attachment:
            self._attach_pdf(msg, *attachment)
        return await run_in_threadpool(self._send, msg, to_email)

    async def send_and_log(
        self,
        owner: User,
        to_email: str,
        subject: str,
        body_html: str,
        email_type: EmailType,
        invoice_id: int | None = None,
        attachment: tuple[str, str] | None = None,
    ) -> EmailLog:
        """
        Send an email and write its EmailLog row.
        Failed sends are scheduled for the first automatic retry.
        """
        message_id, error = await self.deliver(owner, to_email, subject, body_html, attachment)

        log = EmailLog(
            owner_id=owner.id,
            invoice_id=invoice_id,
            recipient_email=to_email,
            subject=subject,
            body=body_html,
            email_type=email_type,
            sent_at=utcnow(),
            success=error is None,
            error_message=error,
            message_id=message_id,
            delivery_status=DeliveryStatus.SENT if error is None else DeliveryStatus.FAILED,
            retry_count=0,
            next_retry_at=calculate_next_retry_time(0) if error else None,
        )
        self.db.add(log)
        await self.db.flush()
        return log

    def _layout(self, owner: User, color: str, title: str, content: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="background: {color}; color: white; padding: 20px; text-align: center;">
                <h1>{title}</h1>
            </div>
            <div style="padding: 20px;">
                {content}
                <p>Best regards,<br>{owner.display_name}</p>
            </div>
            <div style="background: #f5f5f5; padding: 15px; text-align: center; font-size: 12px;">
                <p>{owner.display_name}<br>{owner.company_address or ''}<br>{owner.company_phone or ''}</p>
            </div>
        </body>
        </html>
        """

    async def send_invoice(
        self,
        invoice: Invoice,
        owner: User,
        client: Client,
        pdf_path: str,
        custom_message: str | None = None,
    ) -> EmailLog:
        """Email an invoice with its PDF attached."""
        fmt = PDFService.format_currency
        subject = f"Invoice {invoice.invoice_number} from {owner.display_name}"
        content = f"""
            <p>Hello {client.name},</p>
            {f'<p>{custom_message}</p>' if custom_message else ''}
            <p>Please find your invoice attached.</p>
            <ul>
                <li>Invoice number: {invoice.invoice_number}</li>
                <li>Issue date: {PDFService.format_date(invoice.issue_date)}</li>
                <li>Due date: {PDFService.format_date(invoice.due_date)}</li>
            </ul>
            <p style="font-size: 24px; font-weight: bold;">Amount due: {fmt(invoice.balance_due, invoice.currency)}</p>
        """
        return await self.send_and_log(
            owner,
            client.email,
            subject,
            self._layout(owner, "#2563EB", f"Invoice {invoice.invoice_number}", content),
            EmailType.INVOICE,
            invoice_id=invoice.id,
            attachment=(pdf_path, f"{invoice.invoice_number}.pdf"),
        )

    async def send_estimate(
        self,
        estimate: Estimate,
        owner: User,
        client: Client,
        pdf_path: str,
    ) -> EmailLog:
        """Email an estimate with its PDF attached."""
        subject = f"Estimate {estimate.estimate_number} from {owner.display_name}"
        content = f"""
            <p>Hello {client.name},</p>
            <p>Please find our estimate attached.</p>
            <p style="background: #FEF3C7; padding: 10px;">
                This estimate is valid until {PDFService.format_date(estimate.valid_until)}.
            </p>
            <p style="font-size: 24px; font-weight: bold;">Total: {PDFService.format_currency(estimate.total, estimate.currency)}</p>
        """
        return await self.send_and_log(
            owner,
            client.email,
            subject,
            self._layout(owner, "#059669", f"Estimate {estimate.estimate_number}", content),
            EmailType.ESTIMATE,
            attachment=(pdf_path, f"{estimate.estimate_number}.pdf"),
        )

    async def send_payment_reminder(
        self,
        invoice: Invoice,
        owner: User,
        client: Client,
    ) -> EmailLog:
        """Remind a client about an unpaid invoice."""
        subject = f"Reminder: invoice {invoice.invoice_number} is awaiting payment"
        content = f"""
            <p>Hello {client.name},</p>
            <p><strong>Invoice {invoice.invoice_number} was due on {PDFService.format_date(invoice.due_date)}.</strong></p>
            <p style="font-size: 24px; font-weight: bold;">Balance due: {PDFService.format_currency(invoice.balance_due, invoice.currency)}</p>
            <p>If you have already paid, please ignore this message.</p>
        """
        return await self.send_and_log(
            owner,
            client.email,
            subject,
            self._layout(owner, "#DC2626", "Payment reminder", content),
            EmailType.REMINDER,
            invoice_id=invoice.id,
        )

    async def send_payment_receipt(
        self,
        invoice: Invoice,
        payment: Payment,
        owner: User,
        client: Client,
    ) -> EmailLog:
        """Confirm a received payment to the client."""
        fmt = PDFService.format_currency
        subject = f"Payment received for invoice {invoice.invoice_number}"
        content = f"""
            <p>Hello {client.name},</p>
            <p>We received your payment for invoice <strong>{invoice.invoice_number}</strong>.</p>
            <ul>
                <li>Amount: {fmt(payment.amount, payment.currency)}</li>
                <li>Date: {PDFService.format_date(payment.payment_date)}</li>
                <li>Remaining balance: {fmt(invoice.balance_due, invoice.currency)}</li>
            </ul>
            <p>Thank you for your business.</p>
        """
        return await self.send_and_log(
            owner,
            client.email,
            subject,
            self._layout(owner, "#059669", "Payment receipt", content),
            EmailType.RECEIPT,
            invoice_id=invoice.id,
        )
