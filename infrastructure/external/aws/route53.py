"""AWS Route 53 hosted zones and record sets."""
from __future__ import annotations

from typing import Optional

from application.ports.cloud import HostedZone
from domain.deploy.naming import fqdn
from .base import AwsAdapter

_ZONE_PREFIX = "/hostedzone/"


def _zone_id(raw: str) -> str:
    return raw[len(_ZONE_PREFIX):] if raw.startswith(_ZONE_PREFIX) else raw


def _record_value(record_set: dict) -> Optional[str]:
    alias = record_set.get("AliasTarget")
    if alias:
        return alias.get("DNSName")
    records = record_set.get("ResourceRecords") or []
    return records[0]["Value"] if records else None


class Route53Dns(AwsAdapter):
    async def find_hosted_zone(self, name: str) -> Optional[HostedZone]:
        """Public hosted zone named exactly ``name``."""
        wanted = fqdn(name)
        response = await self._call("list_hosted_zones_by_name", DNSName=wanted, MaxItems="10")
        for zone in response.get("HostedZones", []):
            if zone["Name"].lower() != wanted:
                continue
            if zone.get("Config", {}).get("PrivateZone"):
                continue
            return HostedZone(id=_zone_id(zone["Id"]), name=zone["Name"])
        return None

    async def create_hosted_zone(self, name: str, caller_reference: str) -> HostedZone:
        response = await self._call(
            "create_hosted_zone",
            Name=name,
            CallerReference=caller_reference,
            HostedZoneConfig={"Comment": f"Static site zone for {name}", "PrivateZone": False},
        )
        zone = response["HostedZone"]
        return HostedZone(
            id=_zone_id(zone["Id"]),
            name=zone["Name"],
            name_servers=list(response.get("DelegationSet", {}).get("NameServers", [])),
        )

    async def _change(self, zone_id: str, change: dict) -> None:
        await self._call(
            "change_resource_record_sets",
            HostedZoneId=zone_id,
            ChangeBatch={"Changes": [change]},
        )

    async def upsert_record(
        self,
        zone_id: str,
        name: str,
        record_type: str,
        ttl: int,
        value: str,
    ) -> None:
        await self._change(
            zone_id,
            {
                "Action": "UPSERT",
                "ResourceRecordSet": {
                    "Name": name,
                    "Type": record_type,
                    "TTL": ttl,
                    "ResourceRecords": [{"Value": value}],
                },
            },
        )

    async def get_record_value(
        self,
        zone_id: str,
        name: str,
        record_type: str,
    ) -> Optional[str]:
        """Value (or alias target) of the record set, None when absent."""
        wanted = fqdn(name)
        response = await self._call(
            "list_resource_record_sets",
            HostedZoneId=zone_id,
            StartRecordName=wanted,
            StartRecordType=record_type,
            MaxItems="1",
        )
        for record_set in response.get("ResourceRecordSets", []):
            # Listing starts at the name, so the first set may be a later one
            if record_set["Name"].lower() == wanted and record_set["Type"] == record_type:
                return _record_value(record_set)
        return None

    async def create_alias_record(
        self,
        zone_id: str,
        name: str,
        target_dns_name: str,
        target_zone_id: str,
    ) -> None:
        await self._change(
            zone_id,
            {
                "Action": "CREATE",
                "ResourceRecordSet": {
                    "Name": name,
                    "Type": "A",
                    "AliasTarget": {
                        "HostedZoneId": target_zone_id,
                        "DNSName": target_dns_name,
                        "EvaluateTargetHealth": False,
                    },
                },
            },
        )
