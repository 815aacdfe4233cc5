"""
Email Module
============

Mail transport used by campaign dispatch, debriefs and manager alerts.
A console transport logs would-be messages while sending is disabled;
the SMTP transport is built from a campaign's stored credentials.
"""

from .email_service import EmailService, ConsoleTransport, SmtpTransport

__all__ = ['EmailService', 'ConsoleTransport', 'SmtpTransport']
