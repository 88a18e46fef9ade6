from __future__ import annotations


class VaultServiceError(RuntimeError):
    pass


class UnauthorizedError(VaultServiceError):
    pass


class VaultLockedError(VaultServiceError):
    pass


class InvalidInputError(VaultServiceError):
    pass


class DuplicateNameError(InvalidInputError):
    pass


class S3ServiceError(VaultServiceError):
    pass


class NotProtectedError(VaultServiceError):
    pass


class AccessDeniedError(VaultServiceError):
    pass


class ProtectionFailure(VaultServiceError):
    """A delete that must be denied by the cloud tier went through."""


class MFAError(VaultServiceError):
    pass


class SessionExpiredError(MFAError):
    pass


class ProvisioningError(VaultServiceError):
    pass


class VerificationError(VaultServiceError):
    """A bootstrap check observed behaviour the vault guarantees rule out."""


class PollTimeoutError(VaultServiceError):
    pass


class SecureRandomUnavailable(VaultServiceError):
    pass
