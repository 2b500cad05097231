"""AWS adapters implementing the application cloud ports with boto3."""
from .acm import AcmCertificates
from .cloudfront import CloudFrontCdn, build_distribution_config
from .factory import AwsClients, build_aws_clients
from .route53 import Route53Dns
from .s3 import S3ObjectStore, public_read_policy
from .sts import StsIdentity

__all__ = [
    "AcmCertificates",
    "CloudFrontCdn",
    "build_distribution_config",
    "AwsClients",
    "build_aws_clients",
    "Route53Dns",
    "S3ObjectStore",
    "public_read_policy",
    "StsIdentity",
]
