"""
Network module
VPC with public and private subnets per availability zone, an internet
gateway, NAT gateways and route tables.
"""

import ipaddress
from typing import Any, Dict, List
from ..model.resources import ResourceSet
from .base import InputSpec, Module

NAME_PATTERN = r"[a-z][a-z0-9-]{1,38}"


def allocate_subnets(vpc_cidr: str, prefixes: List[int]) -> List[str]:
    """
    Carve non-overlapping subnets out of a VPC CIDR.

    Blocks are handed out largest first so every block stays aligned; the
    result is returned in the order of ``prefixes``.

    Raises:
        ValueError: If a prefix is shorter than the VPC's or space runs out
    """
    network = ipaddress.ip_network(vpc_cidr, strict=True)
    order = sorted(range(len(prefixes)), key=lambda i: prefixes[i])
    allocated: Dict[int, str] = {}
    cursor = int(network.network_address)
    end = int(network.broadcast_address) + 1

    for idx in order:
        prefix = prefixes[idx]
        if prefix < network.prefixlen or prefix > network.max_prefixlen:
            raise ValueError(f"/{prefix} does not fit inside {vpc_cidr}")
        size = 2 ** (network.max_prefixlen - prefix)
        if cursor + size > end:
            raise ValueError(f"{vpc_cidr} has no room left for another /{prefix}")
        allocated[idx] = str(ipaddress.ip_network((cursor, prefix)))
        cursor += size

    return [allocated[i] for i in range(len(prefixes))]


def _check(values: Dict[str, Any]) -> List[str]:
    problems = []
    zones = values["availability_zones"]
    for field in ("public_subnet_cidrs", "private_subnet_cidrs"):
        cidrs = values[field]
        if cidrs and len(cidrs) != len(zones):
            problems.append(f"{field}: expected {len(zones)} entries (one per availability zone), got {len(cidrs)}")
        for cidr in cidrs:
            try:
                subnet = ipaddress.ip_network(cidr, strict=True)
            except ValueError as e:
                problems.append(f"{field}: invalid CIDR block: {e}")
                continue
            if not subnet.subnet_of(ipaddress.ip_network(values["vpc_cidr"])):
                problems.append(f"{field}: {cidr} is outside {values['vpc_cidr']}")

    if len(set(zones)) != len(zones):
        problems.append("availability_zones: entries must be unique")

    if not values["public_subnet_cidrs"] or not values["private_subnet_cidrs"]:
        try:
            _subnet_plan(values)
        except ValueError as e:
            problems.append(f"vpc_cidr: {e}")
    return problems


def _subnet_plan(values: Dict[str, Any]):
    zones = values["availability_zones"]
    prefixes = [values["private_subnet_prefix"]] * len(zones) + [values["public_subnet_prefix"]] * len(zones)
    carved = allocate_subnets(values["vpc_cidr"], prefixes)
    private = values["private_subnet_cidrs"] or carved[:len(zones)]
    public = values["public_subnet_cidrs"] or carved[len(zones):]
    return public, private


def build_network(resources: ResourceSet, values: Dict[str, Any]) -> Dict[str, Any]:
    name = values["name"]
    zones = values["availability_zones"]
    extra_tags = values["tags"]
    cluster_tag = {f"kubernetes.io/cluster/{values['cluster_name']}": "shared"} if values["cluster_name"] else {}
    public_cidrs, private_cidrs = _subnet_plan(values)

    vpc = resources.define_resource("aws_vpc", "main", {
        "cidr_block": values["vpc_cidr"],
        "enable_dns_hostnames": values["enable_dns_hostnames"],
        "enable_dns_support": True,
        "tags": {**extra_tags, "Name": f"{name}-vpc"},
    })

    igw = resources.define_resource("aws_internet_gateway", "main", {
        "vpc_id": vpc.id,
        "tags": {**extra_tags, "Name": f"{name}-igw"},
    })

    public_rt = resources.define_resource("aws_route_table", "public", {
        "vpc_id": vpc.id,
        "tags": {**extra_tags, "Name": f"{name}-public-rt"},
    })
    resources.define_resource("aws_route", "public_internet", {
        "route_table_id": public_rt.id,
        "destination_cidr_block": "0.0.0.0/0",
        "gateway_id": igw.id,
    })

    public_subnets = []
    for az, cidr in zip(zones, public_cidrs):
        subnet = resources.define_resource("aws_subnet", f"public-{az}", {
            "vpc_id": vpc.id,
            "cidr_block": cidr,
            "availability_zone": az,
            "map_public_ip_on_launch": True,
            "tags": {**extra_tags, **cluster_tag, "Name": f"{name}-public-{az}", "kubernetes.io/role/elb": "1"},
        })
        resources.define_resource("aws_route_table_association", f"public-{az}", {
            "subnet_id": subnet.id,
            "route_table_id": public_rt.id,
        })
        public_subnets.append(subnet)

    nat_gateways = []
    if values["enable_nat_gateway"]:
        nat_zones = zones[:1] if values["single_nat_gateway"] else zones
        for az, subnet in zip(nat_zones, public_subnets):
            eip = resources.define_resource("aws_eip", f"nat-{az}", {
                "domain": "vpc",
                "tags": {**extra_tags, "Name": f"{name}-nat-eip-{az}"},
            })
            nat = resources.define_resource("aws_nat_gateway", f"nat-{az}", {
                "allocation_id": eip.id,
                "subnet_id": subnet.id,
                "connectivity_type": "public",
                "tags": {**extra_tags, "Name": f"{name}-nat-{az}"},
            }, depends_on=[igw])
            nat_gateways.append(nat)

    private_subnets = []
    for idx, (az, cidr) in enumerate(zip(zones, private_cidrs)):
        subnet = resources.define_resource("aws_subnet", f"private-{az}", {
            "vpc_id": vpc.id,
            "cidr_block": cidr,
            "availability_zone": az,
            "map_public_ip_on_launch": False,
            "tags": {**extra_tags, **cluster_tag, "Name": f"{name}-private-{az}", "kubernetes.io/role/internal-elb": "1"},
        })
        route_table = resources.define_resource("aws_route_table", f"private-{az}", {
            "vpc_id": vpc.id,
            "tags": {**extra_tags, "Name": f"{name}-private-rt-{az}"},
        })
        if nat_gateways:
            nat = nat_gateways[min(idx, len(nat_gateways) - 1)]
            resources.define_resource("aws_route", f"private-nat-{az}", {
                "route_table_id": route_table.id,
                "destination_cidr_block": "0.0.0.0/0",
                "nat_gateway_id": nat.id,
            })
        resources.define_resource("aws_route_table_association", f"private-{az}", {
            "subnet_id": subnet.id,
            "route_table_id": route_table.id,
        })
        private_subnets.append(subnet)

    return {
        "vpc_id": vpc.id,
        "vpc_cidr_block": vpc["cidr_block"],
        "internet_gateway_id": igw.id,
        "public_subnet_ids": [s.id for s in public_subnets],
        "private_subnet_ids": [s.id for s in private_subnets],
        "nat_gateway_ids": [n.id for n in nat_gateways],
    }


NETWORK = Module(
    name="network",
    description="VPC with public/private subnets, internet and NAT gateways, route tables",
    inputs=[
        InputSpec(name="name", description="Name prefix for every resource", pattern=NAME_PATTERN),
        InputSpec(name="vpc_cidr", type="cidr", default="10.0.0.0/16", description="VPC CIDR block"),
        InputSpec(name="availability_zones", type="list(string)", min_items=1,
                  description="Availability zones to spread subnets across"),
        InputSpec(name="public_subnet_cidrs", type="list(string)", default=[],
                  description="Explicit public subnet CIDRs; carved from vpc_cidr when empty"),
        InputSpec(name="private_subnet_cidrs", type="list(string)", default=[],
                  description="Explicit private subnet CIDRs; carved from vpc_cidr when empty"),
        InputSpec(name="public_subnet_prefix", type="integer", default=24, min_value=16, max_value=28),
        InputSpec(name="private_subnet_prefix", type="integer", default=20, min_value=16, max_value=28),
        InputSpec(name="enable_nat_gateway", type="bool", default=True),
        InputSpec(name="single_nat_gateway", type="bool", default=False,
                  description="Share one NAT gateway across all zones"),
        InputSpec(name="enable_dns_hostnames", type="bool", default=True),
        InputSpec(name="cluster_name", default="", description="Adds kubernetes.io/cluster/<name> tags to subnets"),
        InputSpec(name="tags", type="map(string)", default={}),
    ],
    build=build_network,
    checks=_check,
)
