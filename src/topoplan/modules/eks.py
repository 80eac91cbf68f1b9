"""EKS module: the network module and the cluster module wired together."""

from typing import Any, Dict
from ..model.resources import ResourceSet
from .base import InputSpec, Module
from .cluster import CLUSTER, CLUSTER_NAME_PATTERN
from .network import NAME_PATTERN, NETWORK


def build_eks(resources: ResourceSet, values: Dict[str, Any]) -> Dict[str, Any]:
    network = NETWORK.instantiate({
        "name": values["name"],
        "vpc_cidr": values["vpc_cidr"],
        "availability_zones": values["availability_zones"],
        "single_nat_gateway": values["single_nat_gateway"],
        "cluster_name": values["cluster_name"],
        "tags": values["tags"],
    }, resources.scope("network"))

    cluster = CLUSTER.instantiate({
        "cluster_name": values["cluster_name"],
        "kubernetes_version": values["kubernetes_version"],
        "subnet_ids": network.outputs["private_subnet_ids"],
        "node_instance_types": values["node_instance_types"],
        "node_desired_size": values["node_desired_size"],
        "node_min_size": values["node_min_size"],
        "node_max_size": values["node_max_size"],
        "irsa_namespace": values["irsa_namespace"],
        "irsa_service_account": values["irsa_service_account"],
        "irsa_policy_arns": values["irsa_policy_arns"],
        "tags": values["tags"],
    }, resources.scope("cluster"))

    outputs = {
        "vpc_id": network.outputs["vpc_id"],
        "public_subnet_ids": network.outputs["public_subnet_ids"],
        "private_subnet_ids": network.outputs["private_subnet_ids"],
    }
    for name in ("cluster_name", "cluster_endpoint", "oidc_provider_arn", "node_role_arn", "irsa_role_arn"):
        if name in cluster.outputs:
            outputs[name] = cluster.outputs[name]
    return outputs


def _check(values: Dict[str, Any]) -> list:
    if len(values["availability_zones"]) < 2:
        return ["availability_zones: EKS needs subnets in at least two availability zones"]
    return []


EKS = Module(
    name="eks",
    description="VPC networking plus an EKS cluster on its private subnets",
    inputs=[
        InputSpec(name="name", pattern=NAME_PATTERN),
        InputSpec(name="cluster_name", pattern=CLUSTER_NAME_PATTERN),
        InputSpec(name="vpc_cidr", type="cidr", default="10.0.0.0/16"),
        InputSpec(name="availability_zones", type="list(string)", min_items=1),
        InputSpec(name="single_nat_gateway", type="bool", default=True),
        InputSpec(name="kubernetes_version", default="1.30"),
        InputSpec(name="node_instance_types", type="list(string)", default=["t3.medium"]),
        InputSpec(name="node_desired_size", type="integer", default=2),
        InputSpec(name="node_min_size", type="integer", default=1),
        InputSpec(name="node_max_size", type="integer", default=3),
        InputSpec(name="irsa_namespace", default="kube-system"),
        InputSpec(name="irsa_service_account", default=""),
        InputSpec(name="irsa_policy_arns", type="list(string)", default=[]),
        InputSpec(name="tags", type="map(string)", default={}),
    ],
    build=build_eks,
    checks=_check,
)
