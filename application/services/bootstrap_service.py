"""One-time infrastructure bootstrap for a static site.

Sequence: hosted zone -> bucket -> certificate (validation records, issuance
wait) -> CDN distribution -> DNS alias records -> persist distribution id.

Every step reads live cloud state before mutating it, so an interrupted run
can simply be re-run. Resources created by earlier steps are never rolled
back. There is no distributed lock: two concurrent setup runs against the
same domain are not supported.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional, Sequence

from application.ports.cloud import (
    AlreadyExistsError,
    CdnClient,
    CertificateClient,
    CertificateDetails,
    CloudError,
    ConflictError,
    DistributionSpec,
    DnsClient,
    IdentityClient,
    ObjectStore,
)
from application.ports.config_store import ConfigStore
from application.services.preflight import verify_credentials
from application.utils.polling import PollExhausted, poll_until
from core.config import BootstrapSettings
from core.logging_config import get_logger
from domain.common.exceptions import (
    BootstrapError,
    CertificateValidationError,
    DeployException,
    DnsRecordMismatchError,
    PollTimeoutError,
)
from domain.deploy.config import DeployConfig
from domain.deploy.entities import (
    BootstrapState,
    BootstrapStep,
    CertificateStatus,
    ValidationRecord,
)
from domain.deploy.naming import root_domain, site_domains, website_endpoint

logger = get_logger(__name__)

INDEX_DOCUMENT = "index.html"

_TERMINAL_CERTIFICATE_STATUSES = frozenset({
    CertificateStatus.FAILED.value,
    CertificateStatus.VALIDATION_TIMED_OUT.value,
    CertificateStatus.REVOKED.value,
})

StepHandler = Callable[[BootstrapState], Awaitable[None]]


def _same_dns_value(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return a.strip().rstrip(".").lower() == b.strip().rstrip(".").lower()


class BootstrapService:
    """Idempotent state machine provisioning DNS, TLS, storage and CDN."""

    def __init__(
        self,
        config: DeployConfig,
        store: ObjectStore,
        dns: DnsClient,
        certificates: CertificateClient,
        cdn: CdnClient,
        identity: IdentityClient,
        config_store: Optional[ConfigStore] = None,
        settings: Optional[BootstrapSettings] = None,
        placeholders: Sequence[str] = (),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.store = store
        self.dns = dns
        self.certificates = certificates
        self.cdn = cdn
        self.identity = identity
        self.config_store = config_store
        self.settings = settings or BootstrapSettings()
        self.placeholders = tuple(placeholders)
        self.sleep = sleep
        self.clock = clock

    def _caller_reference(self, kind: str) -> str:
        return f"{self.settings.caller_reference_prefix}-{kind}-{int(self.clock() * 1000)}"

    def initial_state(self) -> BootstrapState:
        domain = (self.config.domain or "").strip().lower()
        return BootstrapState(
            domain=domain,
            bucket=self.config.bucket_name or "",
            region=self.config.region or self.settings.default_region,
            domains=site_domains(domain),
        )

    def steps(self) -> list[tuple[BootstrapStep, StepHandler]]:
        return [
            (BootstrapStep.ZONE, self.resolve_zone),
            (BootstrapStep.BUCKET, self.provision_bucket),
            (BootstrapStep.CERTIFICATE, self.provision_certificate),
            (BootstrapStep.DISTRIBUTION, self.provision_distribution),
            (BootstrapStep.ALIAS_RECORDS, self.create_alias_records),
            (BootstrapStep.PERSIST, self.persist),
        ]

    async def run(self) -> BootstrapState:
        self.config.ensure_deployable(self.placeholders)
        await verify_credentials(self.identity, self.config.aws.profile)

        state = self.initial_state()
        logger.info(
            "bootstrap_started",
            domain=state.domain,
            bucket=state.bucket,
            region=state.region,
            domains=state.domains,
        )
        for step, handler in self.steps():
            await self._run_step(step, handler, state)

        logger.info(
            "bootstrap_completed",
            domain=state.domain,
            distribution_id=state.distribution_id,
            certificate_arn=state.certificate_arn,
            hosted_zone_id=state.hosted_zone_id,
        )
        return state

    async def _run_step(self, step: BootstrapStep, handler: StepHandler, state: BootstrapState) -> None:
        logger.info("bootstrap_step_started", step=step.value)
        try:
            await handler(state)
        except DeployException:
            raise
        except PollExhausted as exc:
            raise PollTimeoutError(step.value, exc.what, exc.attempts, exc.interval) from exc
        except CloudError as exc:
            logger.error("bootstrap_step_failed", step=step.value, code=exc.code, error=str(exc))
            raise BootstrapError(
                step.value,
                str(exc),
                details={"code": exc.code, "operation": exc.operation},
            ) from exc
        state.mark(step)

    # ------------------------------------------------------------------
    # 1. Hosted zone
    # ------------------------------------------------------------------
    async def resolve_zone(self, state: BootstrapState) -> None:
        zone_domain = root_domain(state.domain)
        state.zone_domain = zone_domain

        zone = await self.dns.find_hosted_zone(zone_domain)
        if zone is not None:
            logger.info("hosted_zone_found", zone=zone_domain, hosted_zone_id=zone.id)
        else:
            zone = await self.dns.create_hosted_zone(zone_domain, self._caller_reference("zone"))
            state.zone_created = True
            state.name_servers = list(zone.name_servers)
            logger.warning(
                "hosted_zone_created",
                zone=zone_domain,
                hosted_zone_id=zone.id,
                name_servers=state.name_servers,
                action="update the nameservers at your domain registrar",
            )
        state.hosted_zone_id = zone.id

    # ------------------------------------------------------------------
    # 2. Bucket
    # ------------------------------------------------------------------
    async def provision_bucket(self, state: BootstrapState) -> None:
        if await self.store.bucket_exists():
            if await self.store.website_configured():
                logger.info("bucket_exists", bucket=state.bucket)
                return
            # Earlier run stopped between create and configure
            logger.warning("bucket_website_missing", bucket=state.bucket)
        else:
            logger.info("bucket_creating", bucket=state.bucket, region=state.region)
            await self.store.create_bucket(state.region)
            state.bucket_created = True

        await self.store.disable_public_access_block()
        await self.store.enable_versioning()
        # Error document is the index too so client-side routes resolve
        await self.store.configure_website(INDEX_DOCUMENT, INDEX_DOCUMENT)
        await self.store.put_public_read_policy()
        logger.info("bucket_configured", bucket=state.bucket)

    # ------------------------------------------------------------------
    # 3-5. Certificate
    # ------------------------------------------------------------------
    async def find_certificate(self, domains: list[str]) -> Optional[CertificateDetails]:
        """Issued certificate covering every domain, else a pending one."""
        pending: Optional[CertificateDetails] = None
        arns = await self.certificates.list_certificates(
            [CertificateStatus.ISSUED.value, CertificateStatus.PENDING.value]
        )
        for arn in arns:
            details = await self.certificates.describe_certificate(arn)
            if not details.covers(domains):
                continue
            if details.status == CertificateStatus.ISSUED.value:
                return details
            if pending is None and details.status == CertificateStatus.PENDING.value:
                pending = details
        return pending

    async def provision_certificate(self, state: BootstrapState) -> None:
        existing = await self.find_certificate(state.domains)
        if existing is not None and existing.status == CertificateStatus.ISSUED.value:
            state.certificate_arn = existing.arn
            state.certificate_status = existing.status
            state.certificate_reused = True
            logger.info(
                "certificate_reused",
                certificate_arn=existing.arn,
                covers=sorted(existing.domains),
            )
            return

        if existing is not None:
            arn = existing.arn
            state.certificate_reused = True
            logger.info("certificate_pending_reused", certificate_arn=arn)
        else:
            arn = await self.certificates.request_certificate(state.domains[0], state.domains[1:])
            logger.info("certificate_requested", certificate_arn=arn, domains=state.domains)
        state.certificate_arn = arn
        state.certificate_status = CertificateStatus.PENDING.value

        details = await self.wait_for_validation_records(arn)
        state.validation_records = [v.record for v in details.validations if v.record is not None]
        state.mark(BootstrapStep.CERTIFICATE)

        await self._run_step(BootstrapStep.VALIDATION_RECORDS, self.create_validation_records, state)
        await self._run_step(BootstrapStep.CERTIFICATE_VALIDATION, self.wait_for_issuance, state)

    async def wait_for_validation_records(self, arn: str) -> CertificateDetails:
        """Poll until every domain validation option exposes its record."""

        async def probe() -> Optional[CertificateDetails]:
            try:
                details = await self.certificates.describe_certificate(arn)
            except CloudError as exc:
                logger.warning("certificate_describe_failed", certificate_arn=arn, error=str(exc))
                return None
            if details.records_ready:
                return details
            pending = [v.domain for v in details.validations if v.record is None]
            logger.info("validation_records_not_ready", certificate_arn=arn, pending=pending)
            return None

        return await poll_until(
            probe,
            interval=self.settings.records_poll_interval,
            max_attempts=self.settings.records_poll_attempts,
            what="certificate validation records",
            sleep=self.sleep,
        )

    async def create_validation_records(self, state: BootstrapState) -> None:
        if not state.validation_records:
            raise BootstrapError(
                BootstrapStep.VALIDATION_RECORDS.value,
                "Certificate exposes no validation records",
            )

        seen: set[tuple[str, str]] = set()
        for record in state.validation_records:
            ident = (record.name.lower(), record.type)
            if ident in seen:
                continue
            seen.add(ident)
            await self._upsert_validation_record(state.hosted_zone_id or "", record)
        logger.info("validation_records_created", count=len(seen))

    async def _upsert_validation_record(self, zone_id: str, record: ValidationRecord) -> None:
        try:
            await self.dns.upsert_record(
                zone_id,
                record.name,
                record.type,
                self.settings.validation_record_ttl,
                record.value,
            )
            logger.info("validation_record_upserted", name=record.name)
        except ConflictError as exc:
            logger.warning("validation_record_upsert_rejected", name=record.name, error=str(exc))
            existing = await self.dns.get_record_value(zone_id, record.name, record.type)
            if not _same_dns_value(existing, record.value):
                raise DnsRecordMismatchError(record.name, record.value, existing) from exc
            logger.info("validation_record_matches", name=record.name)

    async def wait_for_issuance(self, state: BootstrapState) -> None:
        arn = state.certificate_arn or ""

        async def probe() -> Optional[str]:
            try:
                details = await self.certificates.describe_certificate(arn)
            except CloudError as exc:
                logger.warning("certificate_describe_failed", certificate_arn=arn, error=str(exc))
                return None
            state.certificate_status = details.status
            if details.status == CertificateStatus.ISSUED.value:
                return details.status
            if details.status in _TERMINAL_CERTIFICATE_STATUSES:
                raise CertificateValidationError(arn, details.status)
            return None

        await poll_until(
            probe,
            interval=self.settings.issuance_poll_interval,
            max_attempts=self.settings.issuance_poll_attempts,
            what="certificate issuance",
            sleep=self.sleep,
        )
        logger.info("certificate_issued", certificate_arn=arn)

    # ------------------------------------------------------------------
    # 6. Distribution
    # ------------------------------------------------------------------
    def distribution_spec(self, state: BootstrapState) -> DistributionSpec:
        return DistributionSpec(
            origin_domain=website_endpoint(state.bucket, state.region),
            aliases=list(state.domains),
            certificate_arn=state.certificate_arn or "",
            caller_reference=self._caller_reference("distribution"),
            comment=f"Static site distribution for {state.domain}",
            price_class=self.settings.price_class,
            minimum_protocol_version=self.settings.minimum_protocol_version,
            index_document=INDEX_DOCUMENT,
        )

    async def provision_distribution(self, state: BootstrapState) -> None:
        info = None
        configured_id = self.config.cloudfront.distribution_id
        if configured_id:
            info = await self.cdn.get_distribution(configured_id)
            if info is None:
                logger.warning("configured_distribution_missing", distribution_id=configured_id)
        if info is None:
            info = await self.cdn.find_distribution_by_alias(state.domains[0])

        if info is not None:
            logger.info("distribution_found", distribution_id=info.id, domain=info.domain_name)
        else:
            info = await self.cdn.create_distribution(self.distribution_spec(state))
            state.distribution_created = True
            logger.info("distribution_created", distribution_id=info.id, domain=info.domain_name)

        state.distribution_id = info.id
        state.distribution_domain = info.domain_name

    # ------------------------------------------------------------------
    # 7. DNS alias records
    # ------------------------------------------------------------------
    async def create_alias_records(self, state: BootstrapState) -> None:
        zone_id = state.hosted_zone_id or ""
        target = state.distribution_domain or ""
        for name in state.domains:
            current = await self.dns.get_record_value(zone_id, name, "A")
            if _same_dns_value(current, target):
                logger.info("alias_record_exists", name=name, target=target)
                state.alias_records.append(name)
                continue
            try:
                await self.dns.create_alias_record(
                    zone_id,
                    name,
                    target,
                    self.settings.cloudfront_hosted_zone_id,
                )
                logger.info("alias_record_created", name=name, target=target)
            except AlreadyExistsError:
                logger.warning("alias_record_already_exists", name=name, current=current)
            state.alias_records.append(name)

    # ------------------------------------------------------------------
    # 8. Persist
    # ------------------------------------------------------------------
    async def persist(self, state: BootstrapState) -> None:
        if self.config_store is None or not state.distribution_id:
            return
        try:
            self.config_store.set_distribution_id(state.distribution_id)
        except (OSError, DeployException) as exc:
            logger.warning(
                "config_update_failed",
                distribution_id=state.distribution_id,
                error=str(exc),
                action="add deploy.cloudfront.distributionId to the site config manually",
            )
            return
        state.persisted = True
        logger.info("config_updated", distribution_id=state.distribution_id)
