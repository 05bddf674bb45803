"""Service container.

Everything a request needs is built once by the application lifespan and
stored on ``app.state.services``. Nothing is created lazily on first use.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from fastapi import Request

from achievo.audit.logger import AuditLogger
from achievo.auth.guard import AuthorizationGuard
from achievo.auth.resolver import RoleResolver
from achievo.clients.content import PinataClient
from achievo.clients.index import IndexStore
from achievo.clients.ledger import LedgerClient
from achievo.orchestrators import (
    CertificateOrchestrator,
    NFTOrchestrator,
    PaymentOrchestrator,
    RegistrationOrchestrator,
    RewardOrchestrator,
    RoleOrchestrator,
    ValidationService,
)

log = logging.getLogger(__name__)


@dataclass
class Services:
    ledger: LedgerClient
    content: PinataClient
    index: IndexStore
    audit: AuditLogger
    resolver: RoleResolver
    guard: AuthorizationGuard
    certificates: CertificateOrchestrator
    nft: NFTOrchestrator
    rewards: RewardOrchestrator
    roles: RoleOrchestrator
    payments: PaymentOrchestrator
    registration: RegistrationOrchestrator
    validation: ValidationService

    async def aclose(self) -> None:
        await self.ledger.aclose()
        await self.content.aclose()


def build_services(
    ledger: LedgerClient,
    content: PinataClient,
    index: IndexStore,
    audit: AuditLogger | None = None,
    *,
    allow_set: Iterable[str] = (),
    unavailable_policy: str = "deny",
    payment_mode: str = "ledger",
    payment_gas: str = "300000000000000",
    reward_default_amount: str = "100",
) -> Services:
    """Wire the orchestrators to the given store clients."""
    audit = audit or AuditLogger()
    resolver = RoleResolver(ledger)
    guard = AuthorizationGuard(
        resolver,
        allow_set=allow_set,
        unavailable_policy=unavailable_policy,
        audit=audit,
    )

    services = Services(
        ledger=ledger,
        content=content,
        index=index,
        audit=audit,
        resolver=resolver,
        guard=guard,
        certificates=CertificateOrchestrator(ledger, content, index, guard, audit),
        nft=NFTOrchestrator(ledger, index, audit),
        rewards=RewardOrchestrator(ledger, index, audit, default_amount=reward_default_amount),
        roles=RoleOrchestrator(ledger, index, audit, resolver),
        payments=PaymentOrchestrator(ledger, index, audit, mode=payment_mode, gas=payment_gas),
        registration=RegistrationOrchestrator(ledger, index, audit),
        validation=ValidationService(ledger, index, audit),
    )
    log.info(
        f"Services ready: contract={ledger.contract_id} payment_mode={services.payments.mode} "
        f"role_unavailable_policy={guard.unavailable_policy}"
    )
    return services


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the container built at startup."""
    return request.app.state.services
