class WalletError(Exception):
    pass


class ValidationError(WalletError):
    pass


class NotFoundError(WalletError):
    pass


class InvalidStateError(WalletError):
    pass


class InsufficientBalanceError(WalletError):
    pass


class ReferenceResolutionError(WalletError):
    pass


class DuplicateRecordError(WalletError):
    pass
