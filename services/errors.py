class ServiceError(Exception):
    """Expected, typed failure returned to the caller as {"error": code}."""

    status = 400
    code = "BAD_REQUEST"

    def __init__(self, code: str = None):
        if code is not None:
            self.code = code
        super().__init__(self.code)


class ValidationError(ServiceError):
    status = 400
    code = "MISSING_FIELDS"


class PolicyViolation(ServiceError):
    status = 400
    code = "DAY_NOT_ALLOWED"


class NotFoundError(ServiceError):
    status = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    status = 409
    code = "CONFLICT"


class NotMemberError(ServiceError):
    status = 403
    code = "NOT_MEMBER"


class NoCreditsError(ServiceError):
    status = 402
    code = "NO_CREDITS"
