"""
Error taxonomy for curriculum store operations
Each error carries a machine-readable kind and the HTTP status the API maps it to
"""


class CurriculumError(Exception):
    """Base class for errors surfaced to API callers"""
    kind = 'error'
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'message': self.message, 'error': self.kind}


class NotFoundError(CurriculumError):
    """Referenced id does not exist"""
    kind = 'not_found'
    status_code = 404


class ValidationError(CurriculumError):
    """Malformed input; one violation per error"""
    kind = 'validation'
    status_code = 400


class ProtectedEntityError(CurriculumError):
    """Attempted mutation of the system-managed Admin tab"""
    kind = 'protected_entity'
    status_code = 403


class IntegrityError(CurriculumError):
    """A transaction could not complete and was rolled back"""
    kind = 'integrity'
    status_code = 500
