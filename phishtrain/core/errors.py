"""
Error taxonomy shared by every PhishTrain module.
"""


class PhishTrainError(Exception):
    """Base class for engine errors"""


class ValidationError(PhishTrainError):
    """Bad input or a forbidden operation. Nothing was changed.

    `offenders` names the recipients, domains or fields that caused the rejection.
    """

    def __init__(self, message, offenders=None):
        super().__init__(message)
        self.offenders = list(offenders or [])


class NotFoundError(PhishTrainError):
    """Unknown campaign, target or token"""


class TransportError(PhishTrainError):
    """A single message could not be handed to the mail transport"""


class IntegrityError(PhishTrainError):
    """Storage constraint violated (e.g. token collision) or storage unavailable"""
