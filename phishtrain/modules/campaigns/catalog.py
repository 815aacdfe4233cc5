"""
Template Catalog
================

Static simulation templates. Bodies use only the {{name}} and {{department}}
placeholders; anything else in the text is left as-is.
"""

TEMPLATES = [
    {
        'key': 'login-mimic',
        'name': 'Login Verification Notice',
        'subject': 'Action Required: Verify Your Account Access',
        'body': (
            "Hello {{name}},\n\n"
            "We noticed a login attempt to your {{department}} tools from a new device. "
            "Please confirm your identity by visiting the secure verification page.\n\n"
            "If you did not make this request, confirm immediately to avoid access interruption.\n\n"
            "Thank you,\nSecurity Team"
        ),
    },
    {
        'key': 'urgent-policy',
        'name': 'Updated Security Policy Acknowledgement',
        'subject': 'Immediate Acknowledgement Required: Updated Security Policy',
        'body': (
            "Hi {{name}},\n\n"
            "We have refreshed our company-wide security policy. To maintain compliance for the "
            "{{department}} team, review and acknowledge the update by the end of the day.\n\n"
            "Click the link below to review the summary and confirm your acknowledgement.\n\n"
            "Regards,\nCorporate Security"
        ),
    },
    {
        'key': 'package-delivery',
        'name': 'Package Delivery Confirmation',
        'subject': 'Package Arrival Confirmation Needed',
        'body': (
            "Hello {{name}},\n\n"
            "A package addressed to the {{department}} department requires your confirmation "
            "before it can be delivered.\n\n"
            "Provide confirmation using the secure link below.\n\n"
            "Thanks,\nMail Services"
        ),
    },
]

DEFAULT_NAME = 'Colleague'
DEFAULT_DEPARTMENT = 'your team'


class TemplateCatalog:

    def __init__(self, templates=None):
        self._templates = {t['key']: dict(t) for t in (templates or TEMPLATES)}

    def list(self):
        return [dict(t) for t in self._templates.values()]

    def find_by_key(self, key):
        """Template dict for `key`, or None"""
        if not isinstance(key, str):
            return None
        template = self._templates.get(key)
        return dict(template) if template else None

    @staticmethod
    def render(body, name=None, department=None):
        return (body
                .replace('{{name}}', name or DEFAULT_NAME)
                .replace('{{department}}', department or DEFAULT_DEPARTMENT))
