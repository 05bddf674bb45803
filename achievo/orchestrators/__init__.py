"""Orchestrators: one per aggregate, each sequencing content, ledger and index."""

from achievo.orchestrators.certificate import CertificateOrchestrator
from achievo.orchestrators.nft import NFTOrchestrator
from achievo.orchestrators.payment import PaymentOrchestrator
from achievo.orchestrators.registration import RegistrationOrchestrator
from achievo.orchestrators.reward import RewardOrchestrator
from achievo.orchestrators.role import RoleOrchestrator
from achievo.orchestrators.validation import ValidationService

__all__ = [
    "CertificateOrchestrator",
    "NFTOrchestrator",
    "PaymentOrchestrator",
    "RegistrationOrchestrator",
    "RewardOrchestrator",
    "RoleOrchestrator",
    "ValidationService",
]
