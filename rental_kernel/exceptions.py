"""
Typed Exception Hierarchy for the Rental Kernel.

===============================================================================
USAGE
===============================================================================

Every failure a caller can recover from has its own class.  The orchestration
layer translates these into client-visible responses by TYPE and by the
machine-readable ``code`` attribute, never by parsing the message.

    try:
        orchestrator.activate(actor, contract_id)
    except VehicleUnavailableError as e:
        return {"error": e.code, "conflicts": e.conflicting_contract_ids}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RentalKernelError (base)
    |
    +-- LifecycleError
    |   +-- InvalidTransitionError
    |   |   +-- ClosureBlockedError
    |   |   +-- ContractDisabledError
    |   +-- ContractLockedError
    |   +-- EditReasonRequiredError
    |
    +-- ConcurrencyError
    |   +-- StateConflictError
    |
    +-- AvailabilityError
    |   +-- VehicleUnavailableError
    |
    +-- AuthorizationError
    |   +-- ForbiddenRoleError
    |
    +-- NotFoundError
    |   +-- ContractNotFoundError
    |   +-- CustomerNotFoundError
    |   +-- VehicleNotFoundError
    |   +-- PersonNotFoundError
    |   +-- DirectoryRecordDisabledError
    |
    +-- ValidationError
    |   +-- ContractValidationError
    |   +-- ProtectedFieldError
    |   +-- InvalidCurrencyError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Lifecycle       | INVALID_TRANSITION          | Action not legal from current status
                | CLOSURE_BLOCKED             | Close with balance due and no final payment
                | CONTRACT_DISABLED           | Operation on a soft-deleted contract
                | CONTRACT_LOCKED             | Edit of a non-draft contract
                | EDIT_REASON_REQUIRED        | Edit without a non-blank reason
----------------|-----------------------------|-----------------------------------------
Concurrency     | STATE_CONFLICT              | Concurrent transition won the race
----------------|-----------------------------|-----------------------------------------
Availability    | VEHICLE_UNAVAILABLE         | Overlapping blocking contract exists
----------------|-----------------------------|-----------------------------------------
Authorization   | FORBIDDEN_ROLE              | Caller lacks the required capability
----------------|-----------------------------|-----------------------------------------
Not found       | NOT_FOUND                   | Contract/customer/vehicle/person missing
                | DIRECTORY_RECORD_DISABLED   | Directory record exists but is disabled
----------------|-----------------------------|-----------------------------------------
Validation      | CONTRACT_VALIDATION         | Bad rental terms or settlement inputs
                | PROTECTED_FIELD             | Caller tried to set a derived field
                | INVALID_CURRENCY            | Not a valid ISO 4217 code
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying an append-only/sealed record
                | AUDIT_CHAIN_BROKEN          | Audit hash chain fails verification

===============================================================================
PROPAGATION
===============================================================================

All of the above are recoverable and user-facing.  Audit-write failures are
NOT raised: the audit recorder logs them at ERROR and the parent operation
proceeds.  Database errors are not wrapped; they propagate and the caller's
transaction is rolled back.
"""


class RentalKernelError(Exception):
    """
    Base exception for all rental kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RENTAL_KERNEL_ERROR"


# Lifecycle-related exceptions


class LifecycleError(RentalKernelError):
    """Base exception for contract lifecycle errors."""

    code: str = "LIFECYCLE_ERROR"


class InvalidTransitionError(LifecycleError):
    """Action invoked from a status that does not permit it."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, contract_id: str, action: str, status: str, reason: str | None = None):
        self.contract_id = contract_id
        self.action = action
        self.status = status
        self.reason = reason
        message = f"Cannot {action} contract {contract_id} from status '{status}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ClosureBlockedError(InvalidTransitionError):
    """Close attempted while a balance is outstanding and no final payment exists."""

    code: str = "CLOSURE_BLOCKED"

    def __init__(self, contract_id: str, outstanding_balance: str):
        self.outstanding_balance = outstanding_balance
        super().__init__(
            contract_id,
            "close",
            "completed",
            reason=f"outstanding balance {outstanding_balance} and no final payment received",
        )


class ContractDisabledError(InvalidTransitionError):
    """Operation attempted on a soft-deleted contract."""

    code: str = "CONTRACT_DISABLED"

    def __init__(self, contract_id: str, action: str, status: str):
        super().__init__(contract_id, action, status, reason="contract is disabled")


class ContractLockedError(LifecycleError):
    """Edit attempted on a contract that is no longer a draft."""

    code: str = "CONTRACT_LOCKED"

    def __init__(self, contract_id: str, status: str):
        self.contract_id = contract_id
        self.status = status
        super().__init__(
            f"Contract {contract_id} is locked for editing (status '{status}')"
        )


class EditReasonRequiredError(LifecycleError):
    """Edit attempted without a human-supplied reason."""

    code: str = "EDIT_REASON_REQUIRED"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"An edit reason is required to modify contract {contract_id}")


# Concurrency-related exceptions


class ConcurrencyError(RentalKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StateConflictError(ConcurrencyError):
    """A concurrent operation changed the contract first; reload and retry."""

    code: str = "STATE_CONFLICT"

    def __init__(self, contract_id: str, action: str, expected_status: str):
        self.contract_id = contract_id
        self.action = action
        self.expected_status = expected_status
        super().__init__(
            f"State conflict on contract {contract_id} during {action}: "
            f"expected status '{expected_status}' was changed by another transaction"
        )


# Availability-related exceptions


class AvailabilityError(RentalKernelError):
    """Base exception for vehicle availability errors."""

    code: str = "AVAILABILITY_ERROR"


class VehicleUnavailableError(AvailabilityError):
    """Vehicle is held by another blocking contract for an overlapping window."""

    code: str = "VEHICLE_UNAVAILABLE"

    def __init__(
        self,
        vehicle_id: str,
        start_date: str,
        end_date: str,
        conflicting_contract_ids: tuple[str, ...] = (),
    ):
        self.vehicle_id = vehicle_id
        self.start_date = start_date
        self.end_date = end_date
        self.conflicting_contract_ids = conflicting_contract_ids
        super().__init__(
            f"Vehicle {vehicle_id} is not available from {start_date} to {end_date}"
        )


# Authorization-related exceptions


class AuthorizationError(RentalKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class ForbiddenRoleError(AuthorizationError):
    """Caller lacks the capability required for the requested operation."""

    code: str = "FORBIDDEN_ROLE"

    def __init__(self, user_id: str, role: str, action: str):
        self.user_id = user_id
        self.role = role
        self.action = action
        super().__init__(f"User {user_id} with role '{role}' may not {action}")


# Lookup-related exceptions


class NotFoundError(RentalKernelError):
    """Referenced record does not exist."""

    code: str = "NOT_FOUND"
    entity_type: str = "Record"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class ContractNotFoundError(NotFoundError):
    entity_type = "Contract"


class CustomerNotFoundError(NotFoundError):
    entity_type = "Customer"


class VehicleNotFoundError(NotFoundError):
    entity_type = "Vehicle"


class PersonNotFoundError(NotFoundError):
    entity_type = "Person"


class DirectoryRecordDisabledError(NotFoundError):
    """Directory record exists but has been disabled."""

    code: str = "DIRECTORY_RECORD_DISABLED"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        RentalKernelError.__init__(self, f"{entity_type} {entity_id} is disabled")


# Validation-related exceptions


class ValidationError(RentalKernelError):
    """Base exception for input validation errors."""

    code: str = "VALIDATION_ERROR"


class ContractValidationError(ValidationError):
    """Rental terms or settlement inputs are invalid."""

    code: str = "CONTRACT_VALIDATION"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class ProtectedFieldError(ValidationError):
    """Caller attempted to set a field only the kernel may derive."""

    code: str = "PROTECTED_FIELD"

    def __init__(self, fields: tuple[str, ...]):
        self.fields = fields
        super().__init__(
            f"Fields cannot be set by the caller: {', '.join(sorted(fields))}"
        )


class InvalidCurrencyError(ValidationError):
    """Not a valid ISO 4217 currency code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


# Immutability-related exceptions


class ImmutabilityError(RentalKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    ContractEdit and AuditLogEntry rows are append-only; closed contracts
    are sealed apart from their refund and soft-delete fields.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class AuditChainBrokenError(ImmutabilityError):
    """Audit log hash chain does not verify; an entry was altered or removed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, entry_id: str, expected_hash: str, actual_hash: str):
        self.entry_id = entry_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at entry {entry_id}: "
            f"expected {expected_hash}, found {actual_hash}"
        )
