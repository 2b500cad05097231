import pytest

from application.ports.cloud import CloudError
from application.services.bootstrap_service import BootstrapService
from core.config import BootstrapSettings
from domain.common.exceptions import (
    BootstrapError,
    CertificateValidationError,
    CredentialsError,
    DnsRecordMismatchError,
    PollTimeoutError,
)
from domain.deploy.config import DeployConfig, SiteConfig
from domain.deploy.entities import BootstrapStep
from infrastructure.config_store import JsonConfigStore

DOMAINS = ["example.com", "www.example.com"]
ISSUED_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/issued"


def _service(config, store, dns, certificates, cdn, identity, sleep, **kwargs):
    kwargs.setdefault("settings", BootstrapSettings())
    return BootstrapService(
        config,
        store,
        dns,
        certificates,
        cdn,
        identity,
        sleep=sleep,
        clock=lambda: 1700000000.0,
        **kwargs,
    )


@pytest.fixture()
def config():
    return DeployConfig(bucket_name="example.com", region="us-east-1", domain="example.com")


@pytest.fixture()
def provisioned(store, dns, certificates, cdn, make_certificate):
    """Every resource already exists, as after a completed earlier run."""
    zone = dns.add_zone("example.com", "Z123")
    certificates.add(make_certificate(ISSUED_ARN, DOMAINS))
    dist = cdn.add("EEXIST", "dexist.cloudfront.net", list(DOMAINS))
    for name in DOMAINS:
        dns.records[(zone.id, name, "A")] = f"{dist.domain_name}."
    return dist


@pytest.mark.asyncio
async def test_rerun_on_provisioned_account_creates_nothing(
    config, store, dns, certificates, cdn, identity, sleep, provisioned
):
    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert dns.zones_created == []
    assert store.calls == []
    assert certificates.requested == []
    assert cdn.created == []
    assert dns.aliases_created == []
    assert dns.upserts == []
    assert sleep.intervals == []

    assert state.hosted_zone_id == "Z123"
    assert state.certificate_arn == ISSUED_ARN
    assert state.certificate_reused
    assert state.distribution_id == "EEXIST"
    assert state.alias_records == DOMAINS
    assert state.completed == [
        BootstrapStep.ZONE,
        BootstrapStep.BUCKET,
        BootstrapStep.CERTIFICATE,
        BootstrapStep.DISTRIBUTION,
        BootstrapStep.ALIAS_RECORDS,
        BootstrapStep.PERSIST,
    ]


@pytest.mark.asyncio
async def test_fresh_account_full_sequence(
    config, store, dns, certificates, cdn, identity, sleep, make_certificate
):
    store.exists = False
    arn = certificates.NEW_ARN
    certificates.on_request = [
        make_certificate(arn, DOMAINS, status="PENDING_VALIDATION", with_records=False),
        make_certificate(arn, DOMAINS, status="PENDING_VALIDATION"),
        make_certificate(arn, DOMAINS, status="PENDING_VALIDATION"),
        make_certificate(arn, DOMAINS, status="ISSUED"),
    ]

    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert dns.zones_created == ["example.com"]
    assert state.zone_created
    assert state.name_servers == ["ns-1.awsdns-01.org", "ns-2.awsdns-02.com"]

    assert store.calls == [
        "create_bucket:us-east-1",
        "disable_public_access_block",
        "enable_versioning",
        "configure_website:index.html:index.html",
        "put_public_read_policy",
    ]

    assert certificates.requested == [("example.com", ["www.example.com"])]
    assert [name for name, _ in dns.upserts] == ["_x1.example.com.", "_x1.www.example.com."]
    # one wait for the validation records, one for issuance
    assert sleep.intervals == [2.0, 10.0]
    assert state.certificate_status == "ISSUED"

    spec = cdn.created[0]
    assert spec.origin_domain == "example.com.s3-website-us-east-1.amazonaws.com"
    assert spec.aliases == DOMAINS
    assert spec.certificate_arn == arn
    assert spec.caller_reference == "sitedeploy-distribution-1700000000000"

    assert dns.aliases_created == DOMAINS
    assert state.distribution_id == "ENEW123"
    assert BootstrapStep.VALIDATION_RECORDS in state.completed
    assert BootstrapStep.CERTIFICATE_VALIDATION in state.completed


@pytest.mark.asyncio
async def test_subdomain_secures_single_name(store, dns, certificates, cdn, identity, sleep, make_certificate):
    config = DeployConfig(bucket_name="blog.example.com", region="us-east-1", domain="blog.example.com")
    dns.add_zone("example.com")
    certificates.add(make_certificate(ISSUED_ARN, ["blog.example.com"]))

    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert state.zone_domain == "example.com"
    assert state.domains == ["blog.example.com"]
    assert cdn.created[0].aliases == ["blog.example.com"]
    assert dns.aliases_created == ["blog.example.com"]


@pytest.mark.asyncio
async def test_certificate_must_cover_full_domain_set(
    config, store, dns, certificates, cdn, identity, sleep, make_certificate
):
    dns.add_zone("example.com")
    # covers the apex only, so it cannot be reused
    certificates.add(make_certificate("arn:partial", ["example.com"]))
    certificates.on_request = [make_certificate(certificates.NEW_ARN, DOMAINS)]

    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert certificates.requested == [("example.com", ["www.example.com"])]
    assert state.certificate_arn == certificates.NEW_ARN


@pytest.mark.asyncio
async def test_pending_certificate_is_reused(
    config, store, dns, certificates, cdn, identity, sleep, make_certificate
):
    dns.add_zone("example.com")
    certificates.add(
        make_certificate("arn:pending", DOMAINS, status="PENDING_VALIDATION"),
        make_certificate("arn:pending", DOMAINS, status="PENDING_VALIDATION"),
        make_certificate("arn:pending", DOMAINS, status="ISSUED"),
    )

    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert certificates.requested == []
    assert state.certificate_arn == "arn:pending"
    assert state.certificate_status == "ISSUED"


@pytest.mark.asyncio
async def test_validation_records_gate_times_out(
    config, store, dns, certificates, cdn, identity, sleep, make_certificate
):
    dns.add_zone("example.com")
    certificates.on_request = [
        make_certificate(certificates.NEW_ARN, DOMAINS, status="PENDING_VALIDATION", with_records=False)
    ]
    settings = BootstrapSettings(records_poll_attempts=3)

    with pytest.raises(PollTimeoutError) as exc_info:
        await _service(config, store, dns, certificates, cdn, identity, sleep, settings=settings).run()

    assert exc_info.value.step == "certificate"
    assert sleep.intervals == [2.0, 2.0]
    # nothing was written to DNS and no distribution was attempted
    assert dns.upserts == []
    assert cdn.created == []


@pytest.mark.asyncio
async def test_existing_validation_record_with_other_value_is_fatal(
    config, store, dns, certificates, cdn, identity, sleep, make_certificate
):
    zone = dns.add_zone("example.com")
    certificates.on_request = [make_certificate(certificates.NEW_ARN, DOMAINS, status="PENDING_VALIDATION")]
    dns.conflicting.add("_x1.example.com")
    dns.records[(zone.id, "_x1.example.com", "CNAME")] = "_stale.acm-validations.aws."

    with pytest.raises(DnsRecordMismatchError) as exc_info:
        await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert exc_info.value.details["found"] == "_stale.acm-validations.aws."
    assert exc_info.value.step == "validation-records"
    assert cdn.created == []


@pytest.mark.asyncio
async def test_existing_validation_record_with_same_value_is_accepted(
    config, store, dns, certificates, cdn, identity, sleep, make_certificate
):
    zone = dns.add_zone("example.com")
    arn = certificates.NEW_ARN
    certificates.on_request = [
        make_certificate(arn, DOMAINS, status="PENDING_VALIDATION"),
        make_certificate(arn, DOMAINS, status="ISSUED"),
    ]
    dns.conflicting.add("_x1.example.com")
    dns.records[(zone.id, "_x1.example.com", "CNAME")] = "_Y1.example.com.acm-validations.aws"

    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()
    assert state.certificate_status == "ISSUED"


@pytest.mark.asyncio
async def test_failed_certificate_status_stops_polling(
    config, store, dns, certificates, cdn, identity, sleep, make_certificate
):
    dns.add_zone("example.com")
    arn = certificates.NEW_ARN
    certificates.on_request = [
        make_certificate(arn, DOMAINS, status="PENDING_VALIDATION"),
        make_certificate(arn, DOMAINS, status="FAILED"),
    ]

    with pytest.raises(CertificateValidationError) as exc_info:
        await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert exc_info.value.details["status"] == "FAILED"
    assert sleep.intervals == []
    assert cdn.created == []


@pytest.mark.asyncio
async def test_alias_already_exists_is_not_fatal(
    config, store, dns, certificates, cdn, identity, sleep, make_certificate
):
    dns.add_zone("example.com")
    certificates.add(make_certificate(ISSUED_ARN, DOMAINS))
    dns.alias_conflicts.add("www.example.com")

    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert dns.aliases_created == ["example.com"]
    assert state.alias_records == DOMAINS
    assert BootstrapStep.ALIAS_RECORDS in state.completed


@pytest.mark.asyncio
async def test_configured_distribution_is_reused(
    store, dns, certificates, cdn, identity, sleep, make_certificate
):
    config = DeployConfig.model_validate({
        "bucketName": "example.com",
        "region": "us-east-1",
        "domain": "example.com",
        "cloudfront": {"distributionId": "ECONF"},
    })
    dns.add_zone("example.com")
    certificates.add(make_certificate(ISSUED_ARN, DOMAINS))
    cdn.add("ECONF", "dconf.cloudfront.net", [])

    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert cdn.created == []
    assert state.distribution_id == "ECONF"


@pytest.mark.asyncio
async def test_distribution_id_is_persisted(
    tmp_path, config, store, dns, certificates, cdn, identity, sleep, provisioned
):
    path = tmp_path / "site.config.json"
    config_store = JsonConfigStore(path)
    config_store.save(SiteConfig(deploy=config))

    state = await _service(
        config, store, dns, certificates, cdn, identity, sleep, config_store=config_store
    ).run()

    assert state.persisted
    assert config_store.load().deploy.cloudfront.distribution_id == "EEXIST"


@pytest.mark.asyncio
async def test_persist_failure_is_a_warning(
    config, store, dns, certificates, cdn, identity, sleep, provisioned
):
    class ReadOnlyStore:
        def set_distribution_id(self, distribution_id):
            raise PermissionError("read-only file system")

    state = await _service(
        config, store, dns, certificates, cdn, identity, sleep, config_store=ReadOnlyStore()
    ).run()

    assert not state.persisted
    assert state.distribution_id == "EEXIST"


@pytest.mark.asyncio
async def test_cloud_failure_names_the_step(config, store, dns, certificates, cdn, identity, sleep):
    async def broken(name):
        raise CloudError("list_hosted_zones_by_name failed (AccessDenied)", code="AccessDenied")

    dns.find_hosted_zone = broken

    with pytest.raises(BootstrapError) as exc_info:
        await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert exc_info.value.step == "hosted-zone"
    assert exc_info.value.details["code"] == "AccessDenied"


@pytest.mark.asyncio
async def test_bad_credentials_stop_before_any_step(
    config, store, dns, certificates, cdn, failing_identity, sleep
):
    with pytest.raises(CredentialsError):
        await _service(config, store, dns, certificates, cdn, failing_identity, sleep).run()
    assert dns.zones_created == []


@pytest.mark.asyncio
async def test_existing_bucket_without_website_is_configured(
    config, store, dns, certificates, cdn, identity, sleep, provisioned
):
    store.website = False

    state = await _service(config, store, dns, certificates, cdn, identity, sleep).run()

    assert store.calls == [
        "disable_public_access_block",
        "enable_versioning",
        "configure_website:index.html:index.html",
        "put_public_read_policy",
    ]
    assert not state.bucket_created
    assert BootstrapStep.BUCKET in state.completed
