from .accounts import AccountDocumentTakenError, AccountRepository, CredentialEmailTakenError
from .identities import IdentityConflictError, IdentityRepository
from .qualifications import QualificationRepository
from .unit_of_work import UnitOfWork

__all__ = [
    "AccountDocumentTakenError",
    "AccountRepository",
    "CredentialEmailTakenError",
    "IdentityConflictError",
    "IdentityRepository",
    "QualificationRepository",
    "UnitOfWork",
]
