from __future__ import annotations


class NotFoundError(ValueError):
    pass


class InvalidTransitionError(ValueError):
    pass


class MissingSupplierError(ValueError):
    pass


class NotificationError(RuntimeError):
    pass
