# upsc_prep/core/exceptions.py
"""
Error taxonomy shared by the core, services and API layer
"""


class PrepPortalError(Exception):
    """Base class for all portal errors"""


class InvalidInputError(PrepPortalError, ValueError):
    """Empty question sets, unknown options, bad request values"""


class GeneratedContentError(InvalidInputError):
    """Generated content did not parse into the expected shape"""


class OutOfRangeError(PrepPortalError, IndexError):
    """Question index outside the session"""


class NotFoundError(PrepPortalError, LookupError):
    """Unknown session, test or stored record"""


class ExternalServiceError(PrepPortalError):
    """Generation or scraping collaborator failed"""


class PersistenceError(PrepPortalError):
    """Document store write or read failed"""
