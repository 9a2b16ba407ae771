import smtplib
import ssl
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional
from pathlib import Path
import logging
from jinja2 import Environment, FileSystemLoader, select_autoescape
from billing.common.exceptions import DependencyFailure
from billing.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    SMTP delivery of invoice documents with Jinja2 templates.
    """

    def __init__(self):
        self.smtp_server = settings.EMAIL_SMTP_SERVER
        self.smtp_port = settings.EMAIL_SMTP_PORT
        self.username = settings.EMAIL_USERNAME
        self.password = settings.EMAIL_PASSWORD
        self.use_tls = settings.EMAIL_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME

        template_dir = Path(__file__).parent / "templates"
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def _create_smtp_connection(self):
        if self.use_tls:
            context = ssl.create_default_context()
            server = smtplib.SMTP(self.smtp_server, self.smtp_port)
            server.starttls(context=context)
        else:
            server = smtplib.SMTP_SSL(self.smtp_server, self.smtp_port)

        if self.username:
            server.login(self.username, self.password)
        return server

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        template = self.jinja_env.get_template(template_name)
        return template.render(**context)

    def send_email(
        self,
        to_emails: List[str],
        subject: str,
        html_content: str,
        attachment: Optional[bytes] = None,
        attachment_name: Optional[str] = None
    ):
        """
        Send one message, optionally with a PDF attachment.

        Raises:
            DependencyFailure: The SMTP server refused or could not be reached
        """
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = ', '.join(to_emails)
        msg.attach(MIMEText(html_content, 'html', 'utf-8'))

        if attachment is not None:
            part = MIMEApplication(attachment, _subtype="pdf")
            part.add_header('Content-Disposition', 'attachment', filename=attachment_name or "invoice.pdf")
            msg.attach(part)

        try:
            with self._create_smtp_connection() as server:
                server.sendmail(self.from_email, to_emails, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise DependencyFailure(f"Error sending email: {e}", service="smtp")

        logger.info(f"Email sent successfully to {', '.join(to_emails)}")

    def send_invoice_email(self, to_email: str, snapshot: Dict[str, Any], pdf: bytes):
        html_content = self.render_template("invoice_email.html", {
            "company_name": settings.COMPANY_NAME,
            "invoice": snapshot,
        })
        self.send_email(
            to_emails=[to_email],
            subject=f"Invoice {snapshot['invoice_number']} from {settings.COMPANY_NAME}",
            html_content=html_content,
            attachment=pdf,
            attachment_name=f"{snapshot['invoice_number']}.pdf"
        )


email_service = EmailService()
