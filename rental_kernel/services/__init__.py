"""Kernel services: the imperative shell around the pure domain."""

from rental_kernel.services.audit_recorder import AuditRecorder
from rental_kernel.services.availability_service import AvailabilityService
from rental_kernel.services.contract_service import ContractService
from rental_kernel.services.edit_tracker import EditTracker
from rental_kernel.services.lifecycle_orchestrator import ContractLifecycleOrchestrator
from rental_kernel.services.sequence_service import ContractNumberAllocator, SequenceService

__all__ = [
    "AuditRecorder",
    "AvailabilityService",
    "ContractLifecycleOrchestrator",
    "ContractNumberAllocator",
    "ContractService",
    "EditTracker",
    "SequenceService",
]
