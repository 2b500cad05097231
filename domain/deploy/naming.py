"""Domain-name helpers shared by the bootstrap steps."""
from __future__ import annotations


def _labels(domain: str) -> list[str]:
    return [label for label in domain.strip().rstrip(".").lower().split(".") if label]


def root_domain(domain: str) -> str:
    """Registrable root used for the hosted zone: the last two labels."""
    labels = _labels(domain)
    if len(labels) <= 2:
        return ".".join(labels)
    return ".".join(labels[-2:])


def is_subdomain(domain: str) -> bool:
    return len(_labels(domain)) > 2


def site_domains(domain: str) -> list[str]:
    """Names secured by the certificate and aliased to the distribution.

    Apex domains also get a ``www.`` variant; subdomains never do.
    """
    name = ".".join(_labels(domain))
    if is_subdomain(name):
        return [name]
    return [name, f"www.{name}"]


def fqdn(name: str) -> str:
    """Route 53 returns record and zone names with a trailing dot."""
    return name if name.endswith(".") else f"{name}."


# Older regions use "s3-website-<region>", the rest "s3-website.<region>"
_DASH_WEBSITE_REGIONS = frozenset({
    "us-east-1",
    "us-west-1",
    "us-west-2",
    "ap-southeast-1",
    "ap-southeast-2",
    "ap-northeast-1",
    "eu-west-1",
    "sa-east-1",
    "us-gov-west-1",
})


def website_endpoint(bucket: str, region: str) -> str:
    """Static-website endpoint of a bucket, used as the CDN origin."""
    separator = "-" if region in _DASH_WEBSITE_REGIONS else "."
    return f"{bucket}.s3-website{separator}{region}.amazonaws.com"
