"""Custom exceptions for the quotation application."""

class QuotationError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(QuotationError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(QuotationError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class ReferenceDataError(BusinessLogicError):
    """Raised when a required reference (e.g. developer type) does not resolve."""
    def __init__(self, kind, record_id):
        message = f"Unknown {kind}: {record_id}"
        super().__init__(message, status_code=422, payload={'kind': kind, 'id': record_id})
        self.kind = kind
        self.record_id = record_id

class UnauthorizedError(QuotationError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access", payload=None):
        super().__init__(message, 403, payload)

class ApprovalPermissionError(UnauthorizedError):
    """Raised when the actor's role ranks below the required approval level."""
    def __init__(self, required_level, held_role, discount_percentage):
        message = (
            f"Insufficient role. {required_level.value} approval required for "
            f"{float(discount_percentage):.1f}% discount (you are {held_role.value})"
        )
        super().__init__(message, payload={
            'required_level': required_level.value,
            'held_role': held_role.value,
        })
        self.required_level = required_level
        self.held_role = held_role

class ApprovalStateError(BusinessLogicError):
    """Raised when deciding on a quotation that is not pending approval."""
    def __init__(self, quotation_number, actual_status):
        status_value = getattr(actual_status, 'value', actual_status)
        message = f"Quotation {quotation_number} is not pending approval (status: {status_value})"
        super().__init__(message, status_code=409, payload={'actual_status': status_value})
        self.actual_status = status_value
