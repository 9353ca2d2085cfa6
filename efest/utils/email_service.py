# utils/email_service.py
"""
SMTP notification sender.

Delivers one message per recipient and reports the outcome to the caller
instead of raising, so workflows can aggregate per-recipient results.
"""

import logging
import random
import smtplib
import time
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app, render_template

from efest.utils.data_processing import clean_email, is_valid_email


class SendResult:
    """Outcome of a single delivery attempt."""

    def __init__(self, recipient, success, error=None):
        self.recipient = recipient
        self.success = success
        self.error = error
        self.timestamp = datetime.now()

    def to_dict(self):
        return {
            'recipient': self.recipient,
            'success': self.success,
            'error': self.error,
            'timestamp': self.timestamp.isoformat()
        }

    def __repr__(self):
        return f'<SendResult {self.recipient} success={self.success}>'


class EmailService:
    def __init__(self, app=None):
        self.app = None
        self.outbox = []
        self.logger = logging.getLogger('email_service')

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Bind the service to a Flask app."""
        self.app = app
        self.outbox = []
        app.extensions['email_service'] = self

        if app.config.get('MAIL_SUPPRESS_SEND'):
            self.logger.info("Email delivery suppressed; messages are kept in the outbox")
        else:
            self.logger.info(
                f"Email config: {app.config.get('MAIL_SERVER')}:{app.config.get('MAIL_PORT')} "
                f"(SSL: {app.config.get('MAIL_USE_SSL')}, TLS: {app.config.get('MAIL_USE_TLS')})"
            )

    def send(self, recipient, payload):
        """
        Send one message.

        Args:
            recipient: Destination address
            payload: dict with 'subject', 'html_body' and/or 'text_body'

        Returns:
            SendResult: never raises for delivery problems
        """
        recipient = clean_email(recipient)

        if not is_valid_email(recipient):
            self.logger.warning(f"Refusing to send to invalid address: {recipient!r}")
            return SendResult(recipient, False, 'Invalid email address')

        try:
            message = self._build_message(recipient, payload)

            if current_app.config.get('MAIL_SUPPRESS_SEND'):
                self.outbox.append(message)
                self.logger.info(f"Email to {recipient} recorded (delivery suppressed)")
            else:
                self._deliver(message)
                self.logger.info(f"Email sent successfully to {recipient}")

            return SendResult(recipient, True)

        except Exception as e:
            self.logger.error(f"Email sending failed for {recipient}: {str(e)}", exc_info=True)
            return SendResult(recipient, False, str(e))

    def send_rejection_notice(self, recipient, module_title, participants, registration_token):
        """Render and send the application rejection email."""
        context = {
            'module_title': module_title,
            'participants': participants,
            'registration_token': registration_token,
            'site_name': current_app.config.get('SITE_NAME'),
            'support_email': current_app.config.get('CONTACT_EMAIL'),
            'current_year': datetime.now().year
        }

        payload = {
            'subject': f"Application Rejected - {module_title} - {current_app.config.get('SITE_NAME')}",
            'html_body': render_template('emails/application_rejected.html', **context),
            'text_body': render_template('emails/application_rejected.txt', **context)
        }

        return self.send(recipient, payload)

    def _build_message(self, recipient, payload):
        msg = MIMEMultipart('alternative')
        msg['Subject'] = payload['subject']
        msg['From'] = current_app.config['MAIL_DEFAULT_SENDER']
        msg['To'] = recipient

        if payload.get('text_body'):
            msg.attach(MIMEText(payload['text_body'], 'plain'))
        if payload.get('html_body'):
            msg.attach(MIMEText(payload['html_body'], 'html'))

        return msg

    def _deliver(self, msg):
        """Push a message through SMTP with exponential backoff on disconnects."""
        max_retries = current_app.config.get('MAIL_MAX_RETRIES', 3)
        base_delay = 1

        for attempt in range(max_retries):
            try:
                server = self._create_smtp_connection()
                server.login(current_app.config['MAIL_USERNAME'], current_app.config['MAIL_PASSWORD'])
                server.send_message(msg)
                server.quit()
                return

            except smtplib.SMTPServerDisconnected as e:
                if attempt == max_retries - 1:
                    self.logger.error(f"SMTP server disconnected after {max_retries} attempts: {str(e)}")
                    raise

                wait_time = base_delay * (2 ** attempt) + random.uniform(0, 1)
                self.logger.warning(
                    f"SMTP connection closed, retrying in {wait_time:.2f} seconds (attempt {attempt + 1})")
                time.sleep(wait_time)

            except (smtplib.SMTPAuthenticationError, smtplib.SMTPRecipientsRefused) as e:
                self.logger.error(f"SMTP rejected the message: {str(e)}")
                raise

            except Exception as e:
                self.logger.error(f"SMTP error on attempt {attempt + 1}: {str(e)}")
                if attempt == max_retries - 1:
                    raise
                time.sleep(base_delay * (2 ** attempt))

    def _create_smtp_connection(self):
        mail_server = current_app.config['MAIL_SERVER']
        mail_port = current_app.config['MAIL_PORT']

        if current_app.config.get('MAIL_USE_SSL', False):
            self.logger.debug(f"Creating SMTP_SSL connection to {mail_server}:{mail_port}")
            return smtplib.SMTP_SSL(mail_server, mail_port, timeout=30)

        self.logger.debug(f"Creating SMTP connection to {mail_server}:{mail_port}")
        server = smtplib.SMTP(mail_server, mail_port, timeout=30)
        if current_app.config.get('MAIL_USE_TLS', False):
            server.starttls()

        return server
