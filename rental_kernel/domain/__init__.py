"""Pure domain layer: value objects, workflows, and the financial calculator."""

from rental_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from rental_kernel.domain.dtos import (
    AuditEntryInfo,
    ContractInfo,
    ContractTerms,
    EditRecordInfo,
    HandoverInputs,
    SettlementInputs,
)
from rental_kernel.domain.identity import Actor, Capability, Role
from rental_kernel.domain.policy import ContractPolicy

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ContractTerms",
    "HandoverInputs",
    "SettlementInputs",
    "ContractInfo",
    "EditRecordInfo",
    "AuditEntryInfo",
    "Actor",
    "Role",
    "Capability",
    "ContractPolicy",
]
