"""Pytest bootstrap configuration.

Ensure environment defaults are set before test collection and module
imports that depend on application settings, and provide in-memory fakes
for the cloud ports.
"""
import os
from pathlib import Path
from typing import Optional

import pytest

# Never reach real AWS from the test suite
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("SITEDEPLOY_DEBUG", "false")

from application.ports.cloud import (  # noqa: E402
    AlreadyExistsError,
    CertificateDetails,
    CloudError,
    ConflictError,
    DistributionInfo,
    DistributionSpec,
    DomainValidation,
    HostedZone,
    ObjectHead,
)
from domain.deploy.config import DeployConfig  # noqa: E402
from domain.deploy.entities import ValidationRecord  # noqa: E402


class FakeObjectStore:
    def __init__(self, bucket: str = "example.com", exists: bool = True):
        self.bucket = bucket
        self.exists = exists
        self.website = exists
        self.objects: dict[str, dict] = {}
        self.calls: list[str] = []
        self.fail_keys: set[str] = set()
        self.fail_list = False

    async def put_file(self, path, key, content_type, cache_control, content_encoding=None):
        self.calls.append(f"put:{key}")
        if key in self.fail_keys:
            raise CloudError(f"put_object failed for {key}", code="InternalError", status=500)
        self.objects[key] = {
            "body": Path(path).read_bytes(),
            "content_type": content_type,
            "cache_control": cache_control,
            "content_encoding": content_encoding,
        }

    async def list_keys(self, prefix=""):
        if self.fail_list:
            raise CloudError("list failed", code="AccessDenied")
        return sorted(k for k in self.objects if k.startswith(prefix))

    async def delete_keys(self, keys):
        self.calls.append(f"delete:{len(keys)}")
        for key in keys:
            self.objects.pop(key, None)
        return {key: True for key in keys}

    async def head(self, key):
        obj = self.objects[key]
        return ObjectHead(
            key=key,
            content_type=obj.get("content_type"),
            content_encoding=obj.get("content_encoding"),
            cache_control=obj.get("cache_control"),
        )

    async def replace_metadata(self, key, content_type, cache_control, content_encoding=None):
        if key in self.fail_keys:
            raise CloudError(f"copy_object failed for {key}", code="AccessDenied")
        self.objects[key].update(
            content_type=content_type,
            cache_control=cache_control,
            content_encoding=content_encoding,
        )

    async def bucket_exists(self):
        return self.exists

    async def create_bucket(self, region):
        self.calls.append(f"create_bucket:{region}")
        self.exists = True

    async def disable_public_access_block(self):
        self.calls.append("disable_public_access_block")

    async def enable_versioning(self):
        self.calls.append("enable_versioning")

    async def website_configured(self):
        return self.website

    async def configure_website(self, index_document, error_document):
        self.calls.append(f"configure_website:{index_document}:{error_document}")
        self.website = True

    async def put_public_read_policy(self):
        self.calls.append("put_public_read_policy")


class FakeCdn:
    def __init__(self):
        self.distributions: dict[str, DistributionInfo] = {}
        self.invalidations: list[dict] = []
        self.created: list[DistributionSpec] = []
        self.fail_invalidation = False

    def add(self, dist_id: str, domain_name: str, aliases: list[str]) -> DistributionInfo:
        info = DistributionInfo(id=dist_id, domain_name=domain_name, status="Deployed", aliases=aliases)
        self.distributions[dist_id] = info
        return info

    async def create_invalidation(self, distribution_id, paths, caller_reference):
        if self.fail_invalidation:
            raise CloudError("create_invalidation failed (TooManyInvalidationsInProgress)")
        self.invalidations.append(
            {"distribution_id": distribution_id, "paths": list(paths), "caller_reference": caller_reference}
        )
        return f"I{len(self.invalidations)}"

    async def get_distribution(self, distribution_id):
        return self.distributions.get(distribution_id)

    async def find_distribution_by_alias(self, alias):
        for info in self.distributions.values():
            if alias in info.aliases:
                return info
        return None

    async def create_distribution(self, spec):
        self.created.append(spec)
        return self.add("ENEW123", "dnew123.cloudfront.net", list(spec.aliases))


def _key(name: str) -> str:
    return name.rstrip(".").lower()


class FakeDns:
    def __init__(self):
        self.zones: dict[str, HostedZone] = {}
        self.records: dict[tuple[str, str, str], str] = {}
        self.zones_created: list[str] = []
        self.upserts: list[tuple[str, str]] = []
        self.aliases_created: list[str] = []
        # names whose UPSERT is rejected as a conflict
        self.conflicting: set[str] = set()
        # names whose alias CREATE reports "already exists"
        self.alias_conflicts: set[str] = set()

    def add_zone(self, name: str, zone_id: str = "Z123") -> HostedZone:
        zone = HostedZone(id=zone_id, name=f"{name}.")
        self.zones[_key(name)] = zone
        return zone

    async def find_hosted_zone(self, name):
        return self.zones.get(_key(name))

    async def create_hosted_zone(self, name, caller_reference):
        self.zones_created.append(name)
        zone = HostedZone(
            id="ZNEW",
            name=f"{name}.",
            name_servers=["ns-1.awsdns-01.org", "ns-2.awsdns-02.com"],
        )
        self.zones[_key(name)] = zone
        return zone

    async def upsert_record(self, zone_id, name, record_type, ttl, value):
        if _key(name) in self.conflicting:
            raise ConflictError(f"InvalidChangeBatch for {name}", code="InvalidChangeBatch")
        self.upserts.append((name, value))
        self.records[(zone_id, _key(name), record_type)] = value

    async def get_record_value(self, zone_id, name, record_type):
        return self.records.get((zone_id, _key(name), record_type))

    async def create_alias_record(self, zone_id, name, target_dns_name, target_zone_id):
        if _key(name) in self.alias_conflicts:
            raise AlreadyExistsError(f"record {name} already exists", code="InvalidChangeBatch")
        self.aliases_created.append(name)
        self.records[(zone_id, _key(name), "A")] = target_dns_name


def certificate(
    arn: str,
    domains: list[str],
    status: str = "ISSUED",
    with_records: bool = True,
) -> CertificateDetails:
    validations = [
        DomainValidation(
            domain=d,
            record=ValidationRecord(
                domain=d,
                name=f"_x1.{d}.",
                type="CNAME",
                value=f"_y1.{d}.acm-validations.aws.",
            ) if with_records else None,
        )
        for d in domains
    ]
    return CertificateDetails(
        arn=arn,
        domain_name=domains[0],
        status=status,
        subject_alternative_names=list(domains),
        validations=validations,
    )


class FakeCertificates:
    """Each describe pops the next scripted state until one is left."""

    NEW_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/new"

    def __init__(self):
        self.scripts: dict[str, list[CertificateDetails]] = {}
        self.requested: list[tuple[str, list[str]]] = []
        self.describes = 0
        self.on_request: Optional[list[CertificateDetails]] = None

    def add(self, *states: CertificateDetails) -> None:
        self.scripts[states[0].arn] = list(states)

    async def list_certificates(self, statuses):
        return [arn for arn, states in self.scripts.items() if states[0].status in statuses]

    async def describe_certificate(self, arn):
        self.describes += 1
        states = self.scripts[arn]
        return states.pop(0) if len(states) > 1 else states[0]

    async def request_certificate(self, domain_name, subject_alternative_names):
        self.requested.append((domain_name, list(subject_alternative_names)))
        self.scripts[self.NEW_ARN] = list(self.on_request or [])
        return self.NEW_ARN


class FakeIdentity:
    def __init__(self, fail: bool = False):
        self.fail = fail

    async def caller_identity(self):
        if self.fail:
            raise CloudError("get_caller_identity failed (InvalidClientTokenId)", code="InvalidClientTokenId")
        return {"account": "123456789012", "arn": "arn:aws:iam::123456789012:user/deployer", "user_id": "AID"}


class RecordingSleep:
    def __init__(self):
        self.intervals: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.intervals.append(seconds)


@pytest.fixture()
def store():
    return FakeObjectStore()


@pytest.fixture()
def cdn():
    return FakeCdn()


@pytest.fixture()
def dns():
    return FakeDns()


@pytest.fixture()
def certificates():
    return FakeCertificates()


@pytest.fixture()
def identity():
    return FakeIdentity()


@pytest.fixture()
def sleep():
    return RecordingSleep()


@pytest.fixture()
def deploy_config():
    return DeployConfig.model_validate({
        "bucketName": "example.com",
        "region": "us-east-1",
        "domain": "example.com",
        "aws": {"profile": "default"},
        "cloudfront": {"distributionId": "E123ABC", "autoInvalidate": True},
    })


@pytest.fixture()
def build_dir(tmp_path):
    """A small build tree: root page, a hashed asset and a clean-URL page."""
    root = tmp_path / "dist"
    (root / "assets").mkdir(parents=True)
    (root / "about").mkdir()
    (root / "index.html").write_text("<html><body>home</body></html>" * 20)
    (root / "assets" / "app-3f2a1.js").write_text("console.log('app');" * 50)
    (root / "about" / "index.html").write_text("<html><body>about</body></html>" * 20)
    return root


@pytest.fixture()
def make_certificate():
    return certificate


@pytest.fixture()
def failing_identity():
    return FakeIdentity(fail=True)
