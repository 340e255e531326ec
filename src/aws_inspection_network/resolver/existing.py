"""Read VPC CIDRs already present in the target account."""

from typing import Optional

import boto3

from ..core.logging import get_logger

logger = get_logger("existing")


class ExistingNetworkReader:
    """Lists VPC CIDR blocks in one region of the target account.

    The result feeds TopologyValidator, which warns when a planned VPC
    overlaps a network that is already deployed under a different name.
    """

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        session: Optional[boto3.Session] = None,
    ):
        self.session = session or (
            boto3.Session(profile_name=profile) if profile else boto3.Session()
        )
        self.region = region or self.session.region_name or "us-east-1"

    def vpc_cidrs(self) -> list[dict]:
        ec2 = self.session.client("ec2", region_name=self.region)
        networks = []
        paginator = ec2.get_paginator("describe_vpcs")
        for page in paginator.paginate():
            for vpc in page.get("Vpcs", []):
                name = next(
                    (t["Value"] for t in vpc.get("Tags", []) if t["Key"] == "Name"),
                    None,
                )
                cidrs = [
                    assoc["CidrBlock"]
                    for assoc in vpc.get("CidrBlockAssociationSet", [])
                    if assoc.get("CidrBlockState", {}).get("State") == "associated"
                ] or [vpc["CidrBlock"]]
                for cidr in cidrs:
                    networks.append({"id": vpc["VpcId"], "name": name, "cidr": cidr})
        logger.debug(
            "Found %d existing VPC CIDR(s) in %s", len(networks), self.region
        )
        return networks
