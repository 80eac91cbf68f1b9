"""Per-type resource schemas: immutable attributes, tag support, id prefixes."""

from typing import Dict, FrozenSet, Iterable, List, Optional
from pydantic import BaseModel, Field


class ResourceSchema(BaseModel):
    """What the planner and providers need to know about one resource type."""
    type: str
    immutable: FrozenSet[str] = Field(default_factory=frozenset, description="Attributes whose change forces replacement")
    taggable: bool = Field(True, description="Whether default tags are merged into this type")
    id_prefix: str = Field("res", description="Prefix for provider-assigned identifiers")
    service: str = Field("generic", description="ARN service segment")
    computed_outputs: List[str] = Field(default_factory=list, description="Outputs only known after apply")

    class Config:
        frozen = True


AWS_SCHEMAS = [
    ResourceSchema(type="aws_vpc", immutable=frozenset({"cidr_block", "instance_tenancy"}),
                   id_prefix="vpc", service="ec2", computed_outputs=["default_route_table_id"]),
    ResourceSchema(type="aws_subnet", immutable=frozenset({"vpc_id", "cidr_block", "availability_zone"}),
                   id_prefix="subnet", service="ec2"),
    ResourceSchema(type="aws_internet_gateway", id_prefix="igw", service="ec2"),
    ResourceSchema(type="aws_eip", immutable=frozenset({"domain"}), id_prefix="eipalloc",
                   service="ec2", computed_outputs=["public_ip"]),
    ResourceSchema(type="aws_nat_gateway", immutable=frozenset({"subnet_id", "allocation_id", "connectivity_type"}),
                   id_prefix="nat", service="ec2"),
    ResourceSchema(type="aws_route_table", immutable=frozenset({"vpc_id"}), id_prefix="rtb", service="ec2"),
    ResourceSchema(type="aws_route", immutable=frozenset({"route_table_id", "destination_cidr_block"}),
                   taggable=False, id_prefix="r", service="ec2"),
    ResourceSchema(type="aws_route_table_association", immutable=frozenset({"subnet_id"}),
                   taggable=False, id_prefix="rtbassoc", service="ec2"),
    ResourceSchema(type="aws_security_group", immutable=frozenset({"name", "vpc_id"}), id_prefix="sg", service="ec2"),
    ResourceSchema(type="aws_iam_role", immutable=frozenset({"name"}), id_prefix="role", service="iam"),
    ResourceSchema(type="aws_iam_role_policy_attachment", immutable=frozenset({"role", "policy_arn"}),
                   taggable=False, id_prefix="attach", service="iam"),
    ResourceSchema(type="aws_iam_openid_connect_provider", immutable=frozenset({"url"}),
                   id_prefix="oidc", service="iam"),
    ResourceSchema(type="aws_eks_cluster", immutable=frozenset({"name", "role_arn"}), id_prefix="eks",
                   service="eks", computed_outputs=["endpoint", "oidc_issuer", "certificate_authority"]),
    ResourceSchema(type="aws_eks_node_group",
                   immutable=frozenset({"cluster_name", "node_group_name", "node_role_arn", "subnet_ids", "instance_types"}),
                   id_prefix="ng", service="eks"),
]


class SchemaRegistry:
    """Lookup of resource schemas by type, with a permissive fallback."""

    def __init__(self, schemas: Optional[Iterable[ResourceSchema]] = None):
        self._schemas: Dict[str, ResourceSchema] = {}
        for schema in schemas or []:
            self.register(schema)

    def register(self, schema: ResourceSchema) -> None:
        self._schemas[schema.type] = schema

    def get(self, resource_type: str) -> ResourceSchema:
        """Schema for a type; unknown types have no immutable attributes."""
        schema = self._schemas.get(resource_type)
        if schema is None:
            return ResourceSchema(type=resource_type)
        return schema

    def immutable_attributes(self, resource_type: str) -> FrozenSet[str]:
        return self.get(resource_type).immutable

    def types(self) -> List[str]:
        return list(self._schemas)


def default_registry() -> SchemaRegistry:
    """Registry preloaded with the AWS network and cluster types."""
    return SchemaRegistry(AWS_SCHEMAS)
