"""Domain errors raised by the kitchen services.

Routers do not catch these; `app.main` maps them onto HTTP responses.
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(DomainError):
    """Missing or malformed input. Raised before anything is written."""
    status_code = 400


class UnauthorizedError(DomainError):
    status_code = 401


class ForbiddenError(DomainError):
    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class IllegalTransitionError(DomainError):
    """Requested order status is not reachable from the current one."""
    status_code = 409

    def __init__(self, order_id: int, current: str, target: str):
        super().__init__(f"Order {order_id} cannot move from '{current}' to '{target}'")
        self.order_id = order_id
        self.current = current
        self.target = target


class ConflictError(DomainError):
    status_code = 409
