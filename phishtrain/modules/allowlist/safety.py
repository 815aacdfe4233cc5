"""
Recipient safety checks applied before any address is stored or targeted.
"""

import re

from phishtrain.core import get_setting

# Rejects consecutive dots, leading/trailing dots in local part
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9_%+-]+(\.[a-zA-Z0-9_%+-]+)*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$')


def get_do_not_send_domains():
    domains = get_setting('DO_NOT_SEND_DOMAINS') or []
    if isinstance(domains, str):
        domains = domains.split(',')
    return [d.strip().lower() for d in domains if d and d.strip()]


def email_domain(email):
    if not email or '@' not in email:
        return None
    domain = email.rsplit('@', 1)[1].strip().lower()
    return domain or None


def is_domain_allowed(email):
    """False when the address has no domain or its domain is deny-listed"""
    domain = email_domain(email)
    if not domain:
        return False
    return domain not in get_do_not_send_domains()


def is_valid_email(email):
    return bool(email and EMAIL_REGEX.match(email))
