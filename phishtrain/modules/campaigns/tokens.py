import hashlib
import secrets
import time


def issue_token(seed):
    """Unguessable, URL-safe tracking token for one (campaign, recipient) pair.

    The seed only adds entropy; the 256 random bits are what make the token
    unpredictable. Uniqueness is enforced by the targets table.
    """
    material = f"{seed}:{time.time_ns()}:{secrets.token_hex(32)}"
    return hashlib.sha256(material.encode('utf-8')).hexdigest()
