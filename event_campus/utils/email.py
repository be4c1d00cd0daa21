import asyncio
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from html import escape
from typing import Optional

from event_campus import config




logger = logging.getLogger(__name__)

DATE_FORMAT = "%A, %d %B %Y - %H:%M UTC"

_LAYOUT = """<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background-color: {color}; color: white; padding: 20px; text-align: center;">
      <h1>{heading}</h1>
    </div>
    <div style="padding: 20px; background-color: #f9f9f9;">
      <p>Halo <strong>{name}</strong>,</p>
      {body}
    </div>
    <div style="padding: 20px; text-align: center; font-size: 12px; color: #666;">
      <p>Event Campus - Platform Manajemen Event Kampus</p>
    </div>
  </div>
</body>
</html>"""


def _render(color: str, heading: str, name: str, body: str) -> str:
    return _LAYOUT.format(color=color, heading=heading, name=escape(name), body=body)


def _format_date(value: datetime) -> str:
    return value.strftime(DATE_FORMAT)


class EmailSender:
    """SMTP notification sink.

    Every ``send_*`` method returns True when the message was handed to the
    relay and False otherwise; failures are logged, never raised. Without
    SMTP credentials the sender only logs what it would have sent.
    """

    def __init__(
        self,
        host: str = config.SMTP_HOST,
        port: int = config.SMTP_PORT,
        user: str = config.SMTP_USER,
        password: str = config.SMTP_PASSWORD,
        sender: str = config.SMTP_FROM,
        timeout: float = 10,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.user)

    def _deliver(self, message: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send_email(self, to: str, subject: str, html_body: str) -> bool:
        if not self.enabled:
            logger.info("SMTP disabled, email to %s not sent: %s", to, subject)
            return True

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html_body, subtype="html")

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send email to %s (%s): %s", to, subject, e)
            return False

        logger.info("Email sent to %s: %s", to, subject)
        return True

    async def send_registration_confirmation(
        self, to: str, user_name: str, event_title: str, event_date: datetime, registration_id: int
    ) -> bool:
        body = (
            f"<p>Terima kasih telah mendaftar untuk event <strong>{escape(event_title)}</strong>.</p>"
            f"<p>Tanggal: {_format_date(event_date)}</p>"
            f"<p>ID Pendaftaran: <strong>{registration_id}</strong></p>"
            "<p>Anda akan menerima email reminder H-1 sebelum event dimulai. "
            "Simpan ID pendaftaran ini untuk keperluan check-in.</p>"
        )
        return await self.send_email(
            to,
            f"Konfirmasi Pendaftaran: {event_title}",
            _render("#4CAF50", "Pendaftaran Berhasil!", user_name, body),
        )

    async def send_waitlist_notification(self, to: str, user_name: str, event_title: str, position: int) -> bool:
        body = (
            f"<p>Event <strong>{escape(event_title)}</strong> sudah penuh.</p>"
            f"<p>Anda berada di posisi <strong>#{position}</strong> dalam waiting list.</p>"
            "<p>Kami akan mengirim email jika ada kursi yang tersedia.</p>"
        )
        return await self.send_email(
            to,
            f"Waiting List: {event_title}",
            _render("#FF9800", "Anda Masuk Waiting List", user_name, body),
        )

    async def send_waitlist_promotion(
        self, to: str, user_name: str, event_title: str, event_date: datetime, registration_id: int
    ) -> bool:
        body = (
            f"<p>Ada kursi yang tersedia untuk event <strong>{escape(event_title)}</strong>.</p>"
            f"<p>Status Anda sekarang <strong>terdaftar</strong>.</p>"
            f"<p>Tanggal: {_format_date(event_date)}</p>"
            f"<p>ID Pendaftaran: <strong>{registration_id}</strong></p>"
        )
        return await self.send_email(
            to,
            f"Anda Terdaftar: {event_title}",
            _render("#2196F3", "Selamat! Anda Dipromosikan", user_name, body),
        )

    async def send_cancellation_confirmation(self, to: str, user_name: str, event_title: str) -> bool:
        body = f"<p>Pendaftaran Anda untuk event <strong>{escape(event_title)}</strong> telah dibatalkan.</p>"
        return await self.send_email(
            to,
            f"Pembatalan Pendaftaran: {event_title}",
            _render("#9E9E9E", "Pendaftaran Dibatalkan", user_name, body),
        )

    async def send_reminder(
        self,
        to: str,
        user_name: str,
        event_title: str,
        event_date: datetime,
        location: Optional[str],
        zoom_link: Optional[str],
        registration_id: int,
    ) -> bool:
        body = (
            f"<p>Event <strong>{escape(event_title)}</strong> akan dimulai besok.</p>"
            f"<p>Tanggal: {_format_date(event_date)}</p>"
        )
        if location:
            body += f"<p>Lokasi: {escape(location)}</p>"
        if zoom_link:
            body += f'<p>Link: <a href="{escape(zoom_link)}">{escape(zoom_link)}</a></p>'
        body += f"<p>ID Pendaftaran: <strong>{registration_id}</strong></p>"
        return await self.send_email(
            to,
            f"Reminder H-1: {event_title}",
            _render("#673AB7", "Reminder Event Besok", user_name, body),
        )

    async def send_whitelist_approval(self, to: str, user_name: str, organization_name: str) -> bool:
        body = (
            f"<p>Pengajuan organisasi <strong>{escape(organization_name)}</strong> telah disetujui.</p>"
            "<p>Anda sekarang dapat membuat dan mengelola event.</p>"
        )
        return await self.send_email(
            to,
            "Pengajuan Organisasi Disetujui",
            _render("#4CAF50", "Pengajuan Disetujui", user_name, body),
        )

    async def send_whitelist_rejection(
        self, to: str, user_name: str, organization_name: str, admin_notes: Optional[str] = None
    ) -> bool:
        body = f"<p>Pengajuan organisasi <strong>{escape(organization_name)}</strong> belum dapat disetujui.</p>"
        if admin_notes:
            body += f"<p>Catatan admin: {escape(admin_notes)}</p>"
        return await self.send_email(
            to,
            "Pengajuan Organisasi Ditolak",
            _render("#F44336", "Pengajuan Ditolak", user_name, body),
        )
