"""AWS Certificate Manager (always queried in the CloudFront region)."""
from __future__ import annotations

import hashlib
from typing import Optional

from application.ports.cloud import CertificateDetails, DomainValidation
from domain.deploy.entities import ValidationRecord
from .base import AwsAdapter


def idempotency_token(domains: list[str]) -> str:
    """Stable token so a retried request does not issue a second certificate.

    ACM accepts at most 32 word characters.
    """
    return hashlib.md5(",".join(domains).encode("utf-8")).hexdigest()[:32]


def _validation(option: dict) -> DomainValidation:
    record: Optional[ValidationRecord] = None
    resource = option.get("ResourceRecord")
    if resource:
        record = ValidationRecord(
            domain=option["DomainName"],
            name=resource["Name"],
            type=resource["Type"],
            value=resource["Value"],
        )
    return DomainValidation(domain=option["DomainName"], record=record)


class AcmCertificates(AwsAdapter):
    async def list_certificates(self, statuses: list[str]) -> list[str]:
        summaries = await self._paginate(
            "list_certificates",
            lambda page: page.get("CertificateSummaryList", []),
            CertificateStatuses=list(statuses),
        )
        return [s["CertificateArn"] for s in summaries]

    async def describe_certificate(self, arn: str) -> CertificateDetails:
        response = await self._call("describe_certificate", CertificateArn=arn)
        cert = response["Certificate"]
        return CertificateDetails(
            arn=cert["CertificateArn"],
            domain_name=cert["DomainName"],
            status=cert["Status"],
            subject_alternative_names=list(cert.get("SubjectAlternativeNames", [])),
            validations=[_validation(o) for o in cert.get("DomainValidationOptions", [])],
        )

    async def request_certificate(
        self,
        domain_name: str,
        subject_alternative_names: list[str],
    ) -> str:
        kwargs: dict = {
            "DomainName": domain_name,
            "ValidationMethod": "DNS",
            "IdempotencyToken": idempotency_token([domain_name, *subject_alternative_names]),
        }
        if subject_alternative_names:
            kwargs["SubjectAlternativeNames"] = list(subject_alternative_names)
        response = await self._call("request_certificate", **kwargs)
        return response["CertificateArn"]
