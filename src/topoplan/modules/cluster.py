"""
Cluster module
EKS control plane, managed node group, IAM roles, and the OIDC provider
used for IAM roles for service accounts (IRSA).
"""

from typing import Any, Dict, List
from ..model.resources import ResourceSet
from .base import InputSpec, Module

CLUSTER_NAME_PATTERN = r"[0-9A-Za-z][A-Za-z0-9_-]{0,99}"

CLUSTER_POLICIES = [
    "arn:aws:iam::aws:policy/AmazonEKSClusterPolicy",
]

NODE_POLICIES = [
    "arn:aws:iam::aws:policy/AmazonEKSWorkerNodePolicy",
    "arn:aws:iam::aws:policy/AmazonEKS_CNI_Policy",
    "arn:aws:iam::aws:policy/AmazonEC2ContainerRegistryReadOnly",
]

# Root CA thumbprint for oidc.eks.*.amazonaws.com
EKS_OIDC_THUMBPRINT = "9e99a48a9960b14926bb7f3b02e22da2b0ab7280"


def _assume_role_policy(service: str) -> Dict[str, Any]:
    return {
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"Service": service},
            "Action": "sts:AssumeRole",
        }],
    }


def _policy_name(arn: str) -> str:
    return arn.rsplit("/", 1)[-1]


def _check(values: Dict[str, Any]) -> List[str]:
    problems = []
    low, desired, high = values["node_min_size"], values["node_desired_size"], values["node_max_size"]
    if not low <= desired <= high:
        problems.append(f"node_desired_size: must satisfy node_min_size <= desired <= node_max_size ({low} <= {desired} <= {high})")
    if values["irsa_service_account"] and not values["enable_irsa"]:
        problems.append("irsa_service_account: requires enable_irsa")
    if not values["endpoint_public_access"] and not values["endpoint_private_access"]:
        problems.append("endpoint_private_access: at least one of public or private endpoint access must be enabled")
    return problems


def build_cluster(resources: ResourceSet, values: Dict[str, Any]) -> Dict[str, Any]:
    name = values["cluster_name"]
    tags = values["tags"]

    cluster_role = resources.define_resource("aws_iam_role", "cluster", {
        "name": f"{name}-cluster-role",
        "assume_role_policy": _assume_role_policy("eks.amazonaws.com"),
        "tags": dict(tags),
    })
    cluster_attachments = [
        resources.define_resource("aws_iam_role_policy_attachment", f"cluster-{_policy_name(arn)}", {
            "role": cluster_role["name"],
            "policy_arn": arn,
        })
        for arn in CLUSTER_POLICIES
    ]

    node_role = resources.define_resource("aws_iam_role", "node", {
        "name": f"{name}-node-role",
        "assume_role_policy": _assume_role_policy("ec2.amazonaws.com"),
        "tags": dict(tags),
    })
    node_attachments = [
        resources.define_resource("aws_iam_role_policy_attachment", f"node-{_policy_name(arn)}", {
            "role": node_role["name"],
            "policy_arn": arn,
        })
        for arn in NODE_POLICIES
    ]

    cluster = resources.define_resource("aws_eks_cluster", "main", {
        "name": name,
        "version": values["kubernetes_version"],
        "role_arn": cluster_role["arn"],
        "vpc_config": {
            "subnet_ids": list(values["subnet_ids"]),
            "endpoint_public_access": values["endpoint_public_access"],
            "endpoint_private_access": values["endpoint_private_access"],
        },
        "tags": dict(tags),
    }, depends_on=cluster_attachments)

    node_group = resources.define_resource("aws_eks_node_group", "default", {
        "cluster_name": cluster["name"],
        "node_group_name": f"{name}-default",
        "node_role_arn": node_role["arn"],
        "subnet_ids": list(values["node_subnet_ids"] or values["subnet_ids"]),
        "instance_types": list(values["node_instance_types"]),
        "scaling_config": {
            "desired_size": values["node_desired_size"],
            "min_size": values["node_min_size"],
            "max_size": values["node_max_size"],
        },
        "tags": dict(tags),
    }, depends_on=node_attachments)

    outputs = {
        "cluster_name": cluster["name"],
        "cluster_arn": cluster["arn"],
        "cluster_endpoint": cluster["endpoint"],
        "cluster_certificate_authority": cluster["certificate_authority"],
        "cluster_role_arn": cluster_role["arn"],
        "node_role_arn": node_role["arn"],
        "node_group_id": node_group.id,
    }

    if not values["enable_irsa"]:
        return outputs

    oidc = resources.define_resource("aws_iam_openid_connect_provider", "cluster", {
        "url": cluster["oidc_issuer"],
        "client_id_list": ["sts.amazonaws.com"],
        "thumbprint_list": [EKS_OIDC_THUMBPRINT],
        "tags": dict(tags),
    })
    outputs["oidc_issuer"] = cluster["oidc_issuer"]
    outputs["oidc_provider_arn"] = oidc["arn"]

    account = values["irsa_service_account"]
    if account:
        namespace = values["irsa_namespace"]
        # Conditions carry the issuer as a reference; rendering the
        # "<issuer-host>:sub" key is left to the provider.
        irsa_role = resources.define_resource("aws_iam_role", "irsa", {
            "name": f"{name}-{namespace}-{account}",
            "assume_role_policy": {
                "Version": "2012-10-17",
                "Statement": [{
                    "Effect": "Allow",
                    "Principal": {"Federated": oidc["arn"]},
                    "Action": "sts:AssumeRoleWithWebIdentity",
                    "Conditions": [
                        {"test": "StringEquals", "issuer": oidc["url"], "claim": "sub",
                         "values": [f"system:serviceaccount:{namespace}:{account}"]},
                        {"test": "StringEquals", "issuer": oidc["url"], "claim": "aud",
                         "values": ["sts.amazonaws.com"]},
                    ],
                }],
            },
            "tags": dict(tags),
        })
        for arn in values["irsa_policy_arns"]:
            resources.define_resource("aws_iam_role_policy_attachment", f"irsa-{_policy_name(arn)}", {
                "role": irsa_role["name"],
                "policy_arn": arn,
            })
        outputs["irsa_role_arn"] = irsa_role["arn"]

    return outputs


CLUSTER = Module(
    name="cluster",
    description="EKS cluster, managed node group, IAM roles and IRSA wiring",
    inputs=[
        InputSpec(name="cluster_name", pattern=CLUSTER_NAME_PATTERN),
        InputSpec(name="kubernetes_version", default="1.30", pattern=r"1\.\d{2}"),
        InputSpec(name="subnet_ids", type="list", min_items=2, description="Subnets for the control plane ENIs"),
        InputSpec(name="node_subnet_ids", type="list", default=[], description="Node subnets; defaults to subnet_ids"),
        InputSpec(name="endpoint_public_access", type="bool", default=True),
        InputSpec(name="endpoint_private_access", type="bool", default=True),
        InputSpec(name="node_instance_types", type="list(string)", default=["t3.medium"], min_items=1),
        InputSpec(name="node_desired_size", type="integer", default=2, min_value=0),
        InputSpec(name="node_min_size", type="integer", default=1, min_value=0),
        InputSpec(name="node_max_size", type="integer", default=3, min_value=1),
        InputSpec(name="enable_irsa", type="bool", default=True),
        InputSpec(name="irsa_namespace", default="kube-system", pattern=r"[a-z0-9]([-a-z0-9]*[a-z0-9])?"),
        InputSpec(name="irsa_service_account", default="", description="Service account bound to an IRSA role"),
        InputSpec(name="irsa_policy_arns", type="list(string)", default=[]),
        InputSpec(name="tags", type="map(string)", default={}),
    ],
    build=build_cluster,
    checks=_check,
)
