"""
Typed Exception Hierarchy for the Procure Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the engine (API handlers, background jobs, tests) must react to
failures precisely: a permission failure becomes a 403, a stale write becomes
"reload and try again", a bad quantity becomes a field-level form error.
Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (document id, action, current state)

Example:
    try:
        machine.transition(quotation, "accept", actor_org_id)
    except UnauthorizedActionError as e:
        return api_error(403, code=e.code, action=e.action)
    except InvalidTransitionError as e:
        return api_error(409, code=e.code, state=e.current_state)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProcureKernelError (base)
    |
    +-- ValidationError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- UnauthorizedActionError
    |
    +-- DerivationError
    |   +-- MissingSourceDataError
    |   +-- AmbiguousSourceError
    |   +-- UnsupportedDerivationError
    |
    +-- PersistenceError
    |   +-- DocumentNotFoundError
    |
    +-- ConcurrencyError
        +-- ConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                    | When Raised
-------------|-------------------------|--------------------------------------------
Validation   | VALIDATION_ERROR        | Malformed or out-of-range input
-------------|-------------------------|--------------------------------------------
Workflow     | INVALID_TRANSITION      | Action not legal from current state
             | UNAUTHORIZED_ACTION     | Actor is not the entitled party
-------------|-------------------------|--------------------------------------------
Derivation   | MISSING_SOURCE_DATA     | Source lacks lines / counterparty fields
             | AMBIGUOUS_SOURCE        | More than one source supplied
             | UNSUPPORTED_DERIVATION  | No mapping table for (source, target)
-------------|-------------------------|--------------------------------------------
Persistence  | DOCUMENT_NOT_FOUND      | No document with that type and id
-------------|-------------------------|--------------------------------------------
Concurrency  | CONFLICT                | Stale write detected by storage (retryable)

===============================================================================
"""

from typing import Any


class ProcureKernelError(Exception):
    """
    Base exception for all procure kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROCURE_KERNEL_ERROR"
    retryable: bool = False


# Validation


class ValidationError(ProcureKernelError):
    """Malformed or out-of-range input.

    Always carries the failing field so the caller can attach the message
    to the right form control.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        message: str,
        value: Any = None,
        document_id: str | None = None,
    ):
        self.field = field
        self.value = value
        self.document_id = document_id
        self.reason = message
        prefix = f"{document_id}: " if document_id else ""
        super().__init__(f"{prefix}{field}: {message}")


# Workflow-related exceptions


class WorkflowError(ProcureKernelError):
    """Base exception for status machine errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Action is not legal from the document's current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        document_type: str,
        document_id: str,
        action: str,
        current_state: str,
        reason: str | None = None,
    ):
        self.document_type = document_type
        self.document_id = document_id
        self.action = action
        self.current_state = current_state
        self.reason = reason or (
            f"No transition from '{current_state}' via action '{action}'"
        )
        super().__init__(
            f"Cannot {action} {document_type} {document_id} "
            f"in state {current_state}: {self.reason}"
        )


class UnauthorizedActionError(WorkflowError):
    """Actor is not the party entitled to perform the action."""

    code: str = "UNAUTHORIZED_ACTION"

    def __init__(
        self,
        document_type: str,
        document_id: str,
        action: str,
        actor_org_id: str,
        required_party: str,
    ):
        self.document_type = document_type
        self.document_id = document_id
        self.action = action
        self.actor_org_id = actor_org_id
        self.required_party = required_party
        super().__init__(
            f"Organization {actor_org_id} may not {action} {document_type} "
            f"{document_id}: only the {required_party} may"
        )


# Derivation-related exceptions


class DerivationError(ProcureKernelError):
    """Base exception for create-X-from-Y failures."""

    code: str = "DERIVATION_ERROR"


class MissingSourceDataError(DerivationError):
    """Source document lacks data the target type requires."""

    code: str = "MISSING_SOURCE_DATA"

    def __init__(
        self,
        source_type: str,
        source_id: str,
        target_type: str,
        missing: tuple[str, ...],
    ):
        self.source_type = source_type
        self.source_id = source_id
        self.target_type = target_type
        self.missing = missing
        super().__init__(
            f"Cannot derive {target_type} from {source_type} {source_id}: "
            f"missing {', '.join(missing)}"
        )


class AmbiguousSourceError(DerivationError):
    """More than one source document was supplied for a single-source target."""

    code: str = "AMBIGUOUS_SOURCE"

    def __init__(self, target_type: str, source_ids: tuple[str, ...]):
        self.target_type = target_type
        self.source_ids = source_ids
        super().__init__(
            f"{target_type} must be derived from exactly one source, "
            f"got {len(source_ids)}: {', '.join(source_ids)}"
        )


class UnsupportedDerivationError(DerivationError):
    """No mapping table exists for the (source, target) pair."""

    code: str = "UNSUPPORTED_DERIVATION"

    def __init__(self, source_type: str, target_type: str):
        self.source_type = source_type
        self.target_type = target_type
        super().__init__(
            f"No derivation defined from {source_type} to {target_type}"
        )


# Persistence-related exceptions


class PersistenceError(ProcureKernelError):
    """Base exception for repository errors."""

    code: str = "PERSISTENCE_ERROR"


class DocumentNotFoundError(PersistenceError):
    """Document with given type and id was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_type: str, document_id: str):
        self.document_type = document_type
        self.document_id = document_id
        super().__init__(f"{document_type} not found: {document_id}")


# Concurrency-related exceptions


class ConcurrencyError(ProcureKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"
    retryable: bool = True


class ConflictError(ConcurrencyError):
    """Stale write: the document was modified by another writer.

    Retryable -- the caller should reload the document and re-attempt.
    """

    code: str = "CONFLICT"

    def __init__(
        self,
        document_type: str,
        document_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.document_type = document_type
        self.document_id = document_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Conflict on {document_type} {document_id}: "
            f"expected version {expected_version}, found {actual_version}; "
            "reload and retry"
        )
